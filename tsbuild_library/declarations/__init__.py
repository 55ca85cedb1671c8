"""Declaration file generation."""

from .supervisor import DeclarationSupervisor

__all__ = ["DeclarationSupervisor"]

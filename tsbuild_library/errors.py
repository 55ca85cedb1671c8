"""Exception types for the build pipeline.

Per-file errors (resolution, transformation) are caught by the file compiler
and reported. Process-level errors propagate to the worker entry point and
terminate the run.
"""

from pathlib import Path


class TsBuildError(Exception):
    """Base class for all build pipeline errors."""

    pass


class ImportResolutionError(TsBuildError):
    """Raised when an import specifier cannot be resolved to a file on disk."""

    def __init__(self, specifier: str, importer: Path) -> None:
        self.specifier = specifier
        self.importer = importer
        super().__init__(f"Cannot resolve import '{specifier}' from {importer}")


class TransformError(TsBuildError):
    """Raised when the transformation engine rejects a source file."""

    def __init__(self, path: Path, message: str) -> None:
        self.path = path
        self.message = message
        super().__init__(f"Transform failed for {path}: {message}")


class SourceRootError(TsBuildError):
    """Raised when the source root cannot be enumerated."""

    pass


class SubprocessStartupError(TsBuildError):
    """Raised when a required external tool or script cannot be started."""

    pass


class DeclarationError(TsBuildError):
    """Raised when one-shot declaration generation exits with a nonzero code."""

    def __init__(self, returncode: int) -> None:
        self.returncode = returncode
        super().__init__(f"Declaration process exited with code {returncode}")

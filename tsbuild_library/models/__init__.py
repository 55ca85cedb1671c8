"""Shared data structures for tsbuild_library."""

from .build import BuildReport
from .build import CompiledUnit
from .build import FileOutcome
from .build import ImportReference
from .build import SourceFile
from .build import SourceOrigin
from .build import WatchEvent
from .build import WatchEventKind
from .processes import ProcessState

__all__ = [
    "BuildReport",
    "CompiledUnit",
    "FileOutcome",
    "ImportReference",
    "ProcessState",
    "SourceFile",
    "SourceOrigin",
    "WatchEvent",
    "WatchEventKind",
]

"""Data structures that flow through one compile.

All of these are transient: they live for one compile invocation, one
rewrite pass, or one watcher event. Only the written output persists.
"""

from __future__ import annotations

from dataclasses import dataclass
from dataclasses import field
from enum import Enum
from pathlib import Path


class SourceOrigin(str, Enum):
    """How a source file came to be compiled."""

    SCAN = "scan"
    WATCH = "watch"


class FileOutcome(str, Enum):
    """Result of compiling one source file.

    - WRITTEN: Output differed and was written
    - UNCHANGED: Output matched the existing file, nothing written
    - FAILED: Resolution, transformation, or filesystem error
    """

    WRITTEN = "written"
    UNCHANGED = "unchanged"
    FAILED = "failed"


@dataclass(frozen=True)
class SourceFile:
    """A source module selected for compilation.

    Attributes:
        path: Absolute path to the .ts/.tsx file
        origin: Initial scan or watcher event
    """

    path: Path
    origin: SourceOrigin = SourceOrigin.SCAN


@dataclass
class CompiledUnit:
    """Result of transforming one source file, before the write decision.

    Attributes:
        code: Transformed code with rewritten imports
        map: Source map text, if the engine produced one
        output_path: Target .js path under the output root
        map_path: Sibling .map path
    """

    code: str
    map: str | None
    output_path: Path
    map_path: Path


@dataclass(frozen=True)
class ImportReference:
    """One import specifier occurrence found in compiled code.

    Attributes:
        kind: "import" for import-from statements, "require" for require calls
        prefix: Text before the opening quote
        quote: Opening quote character
        specifier: The module specifier
        suffix: Closing quote and trailing syntax
    """

    kind: str
    prefix: str
    quote: str
    specifier: str
    suffix: str

    def render(self, specifier: str) -> str:
        """Render this occurrence with a replacement specifier."""
        return f"{self.prefix}{self.quote}{specifier}{self.suffix}"


@dataclass
class BuildReport:
    """Aggregate result of one batch build."""

    written: int = 0
    unchanged: int = 0
    failed: int = 0
    failures: list[Path] = field(default_factory=list)

    @property
    def total(self) -> int:
        """Number of files processed."""
        return self.written + self.unchanged + self.failed

    def record(self, path: Path, outcome: FileOutcome) -> None:
        """Count one file outcome."""
        if outcome is FileOutcome.WRITTEN:
            self.written += 1
        elif outcome is FileOutcome.UNCHANGED:
            self.unchanged += 1
        else:
            self.failed += 1
            self.failures.append(path)


class WatchEventKind(str, Enum):
    """Kinds of messages the watcher posts to the controller."""

    ADDED = "added"
    CHANGED = "changed"
    ERROR = "error"


@dataclass(frozen=True)
class WatchEvent:
    """A filesystem change or watcher failure.

    Attributes:
        kind: Event kind
        path: Affected file (None for errors without a path)
        error: Error description for ERROR events
    """

    kind: WatchEventKind
    path: Path | None = None
    error: str | None = None

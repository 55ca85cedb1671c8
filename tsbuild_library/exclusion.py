"""Exclusion rules shared by the batch enumerator and the watcher.

Patterns come from the tsconfig.json "exclude" array and are matched
against paths relative to the directory they were declared in. A pattern
that names a directory also excludes everything below it, so "node_modules"
and "dist/**" behave the way TypeScript treats them.
"""

from __future__ import annotations

import fnmatch
from pathlib import Path
from pathlib import PurePosixPath


class ExcludeRuleSet:
    """Ordered, immutable collection of glob-style exclusion patterns.

    Example:
        >>> rules = ExcludeRuleSet(["node_modules", "**/*.spec.ts"], Path("/proj"))
        >>> rules.matches(Path("/proj/node_modules/x/index.ts"))
        True
        >>> rules.matches(Path("/proj/src/a.spec.ts"))
        True
        >>> rules.matches(Path("/proj/src/a.ts"))
        False
    """

    def __init__(self, patterns: list[str] | tuple[str, ...], base_dir: Path) -> None:
        self._patterns = tuple(_normalize(p) for p in patterns if p.strip())
        self._base_dir = base_dir.absolute()
        self._bases = (self._base_dir, base_dir.resolve())

    @property
    def patterns(self) -> tuple[str, ...]:
        return self._patterns

    @property
    def base_dir(self) -> Path:
        return self._base_dir

    def __bool__(self) -> bool:
        return bool(self._patterns)

    def __repr__(self) -> str:
        return f"ExcludeRuleSet({list(self._patterns)!r}, base_dir={str(self._base_dir)!r})"

    def matches(self, path: Path) -> bool:
        """Check whether a path is excluded.

        Args:
            path: Absolute path, or a path relative to base_dir

        Returns:
            True if any pattern matches the path or one of its parent directories
        """
        if not self._patterns:
            return False

        candidate = path if path.is_absolute() else self._base_dir / path
        rel = PurePosixPath(candidate.as_posix())
        for base in self._bases:
            if candidate.is_relative_to(base):
                rel = PurePosixPath(candidate.relative_to(base).as_posix())
                break

        # Check the path itself and every ancestor, so directory patterns
        # exclude their whole subtree
        prefixes = [rel, *[p for p in rel.parents if str(p) not in (".", "/")]]
        for pattern in self._patterns:
            for prefix in prefixes:
                if _glob_match(str(prefix), pattern):
                    return True
        return False


def _normalize(pattern: str) -> str:
    pattern = pattern.strip().replace("\\", "/")
    pattern = pattern.removeprefix("./")
    return pattern.rstrip("/")


def _glob_match(path: str, pattern: str) -> bool:
    if fnmatch.fnmatchcase(path, pattern):
        return True
    # "**/" also matches zero leading directories
    if pattern.startswith("**/") and fnmatch.fnmatchcase(path, pattern[3:]):
        return True
    # "dir/**" excludes the directory itself
    return pattern.endswith("/**") and path == pattern[:-3]

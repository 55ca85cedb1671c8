"""On-disk module resolution for import specifiers.

Follows the Node.js CommonJS lookup order closely enough to answer the two
questions the rewriter asks: does the specifier point at a real file, and
is that file a directory index or an installed dependency.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from ..errors import ImportResolutionError

logger = logging.getLogger(__name__)

# Suffixes tried after the literal specifier, in order
SPECIFIER_SUFFIXES = ("", ".ts", ".tsx", ".js")

# Conditions honoured in package.json "exports", in priority order
EXPORT_CONDITIONS = ("require", "node", "default")

# Extensions a loader would append to a bare file path
LOADER_EXTENSIONS = (".ts", ".tsx", ".js", ".json", ".node")

INDEX_NAMES = ("index.ts", "index.tsx", "index.js")

DEPENDENCY_DIR = "node_modules"


@dataclass(frozen=True)
class ResolvedImport:
    """Where a specifier landed on disk.

    Attributes:
        path: Resolved absolute file path
        via_directory: True when the file was reached through directory index lookup
    """

    path: Path
    via_directory: bool = False

    @property
    def is_dependency(self) -> bool:
        return DEPENDENCY_DIR in self.path.parts

    @property
    def is_index(self) -> bool:
        return self.via_directory and self.path.name in INDEX_NAMES


def is_relative(specifier: str) -> bool:
    return specifier.startswith(("./", "../")) or specifier in (".", "..")


def resolve_import(specifier: str, importer: Path) -> ResolvedImport:
    """Resolve a specifier relative to the file that imports it.

    Args:
        specifier: Module specifier as written in the import
        importer: Absolute path of the file containing the import

    Returns:
        The resolved file

    Raises:
        ImportResolutionError: If no candidate exists on disk
    """
    if not is_relative(specifier) and not Path(specifier).is_absolute():
        exported = _resolve_package_export(specifier, importer)
        if exported is not None:
            logger.debug(f"Resolved '{specifier}' from {importer} through package exports to {exported.path}")
            return exported

    for suffix in SPECIFIER_SUFFIXES:
        request = f"{specifier}{suffix}"
        for base in _search_bases(request, importer):
            resolved = _resolve_path(base)
            if resolved is not None:
                logger.debug(f"Resolved '{specifier}' from {importer} to {resolved.path}")
                return resolved
    raise ImportResolutionError(specifier, importer)


def _search_bases(request: str, importer: Path) -> list[Path]:
    if is_relative(request) or Path(request).is_absolute():
        return [(importer.parent / request).resolve()]
    # Package subpath such as "pkg/sub" or "@scope/pkg/sub"
    return [directory / DEPENDENCY_DIR / request for directory in importer.parents]


def _resolve_path(base: Path) -> ResolvedImport | None:
    if base.is_file():
        return ResolvedImport(base)
    for ext in LOADER_EXTENSIONS:
        candidate = base.with_name(base.name + ext)
        if candidate.is_file():
            return ResolvedImport(candidate)
    if base.is_dir():
        main = _package_main(base)
        if main is not None:
            return ResolvedImport(main)
        for name in INDEX_NAMES:
            candidate = base / name
            if candidate.is_file():
                return ResolvedImport(candidate, via_directory=True)
    return None


def _package_main(directory: Path) -> Path | None:
    manifest = directory / "package.json"
    if not manifest.is_file():
        return None
    try:
        main = json.loads(manifest.read_text(encoding="utf-8")).get("main")
    except (OSError, ValueError, AttributeError):
        return None
    if not isinstance(main, str):
        return None
    target = (directory / main).resolve()
    if target.is_file():
        return target
    for ext in LOADER_EXTENSIONS:
        candidate = target.with_name(target.name + ext)
        if candidate.is_file():
            return candidate
    return None


def split_package_specifier(specifier: str) -> tuple[str, str]:
    """Split "pkg/sub" or "@scope/pkg/sub" into the package name and "./sub" subpath.

    Example:
        >>> split_package_specifier("@scope/pkg/fp")
        ('@scope/pkg', './fp')
        >>> split_package_specifier("pkg")
        ('pkg', '.')
    """
    parts = specifier.split("/")
    count = 2 if specifier.startswith("@") else 1
    name = "/".join(parts[:count])
    rest = "/".join(parts[count:])
    return name, f"./{rest}" if rest else "."


def _resolve_package_export(specifier: str, importer: Path) -> ResolvedImport | None:
    name, subpath = split_package_specifier(specifier)
    for directory in importer.parents:
        package_dir = directory / DEPENDENCY_DIR / name
        manifest = package_dir / "package.json"
        if not manifest.is_file():
            continue
        try:
            exports = json.loads(manifest.read_text(encoding="utf-8")).get("exports")
        except (OSError, ValueError, AttributeError):
            return None
        target = _match_export(exports, subpath)
        if target is None:
            return None
        path = (package_dir / target).resolve()
        return ResolvedImport(path) if path.is_file() else None
    return None


def _match_export(exports: Any, subpath: str) -> str | None:
    """Find the target for a subpath in an "exports" field.

    Handles the string shorthand, subpath maps with a single "*" wildcard,
    and nested condition objects.
    """
    if exports is None:
        return None
    if isinstance(exports, str) or not _is_subpath_map(exports):
        return _select_condition(exports) if subpath == "." else None

    if subpath in exports:
        return _select_condition(exports[subpath])
    for key, value in exports.items():
        if key.count("*") != 1:
            continue
        prefix, suffix = key.split("*")
        if subpath.startswith(prefix) and subpath.endswith(suffix) and len(subpath) >= len(prefix) + len(suffix):
            match = subpath[len(prefix) : len(subpath) - len(suffix)]
            target = _select_condition(value)
            return target.replace("*", match) if target is not None else None
    return None


def _is_subpath_map(exports: Any) -> bool:
    return isinstance(exports, dict) and any(key.startswith(".") for key in exports)


def _select_condition(target: Any) -> str | None:
    if isinstance(target, str):
        return target
    if isinstance(target, list):
        for item in target:
            selected = _select_condition(item)
            if selected is not None:
                return selected
        return None
    if isinstance(target, dict):
        for condition in EXPORT_CONDITIONS:
            if condition in target:
                selected = _select_condition(target[condition])
                if selected is not None:
                    return selected
    return None

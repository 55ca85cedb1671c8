"""Import specifier rewriting for emitted modules.

Emitted code is loaded by a runtime that performs no extension or directory
index lookup, so every relative specifier has to name the exact .js file it
will load. External packages are left for the runtime's own dependency
lookup.

Contract:
- Inputs: Compiled code text, absolute path of the source file it came from
- Outputs: Code text with rewritten specifiers
- Side Effects: Reads the filesystem to resolve specifiers
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from pathlib import PurePosixPath

from ..errors import ImportResolutionError
from ..models import ImportReference
from .resolver import resolve_import

logger = logging.getLogger(__name__)

EMITTED_EXTENSION = ".js"
SOURCE_EXTENSIONS = (".ts", ".tsx")

# Specifiers with these extensions are already loadable as written
PASSTHROUGH_EXTENSIONS = frozenset({".json", ".node", ".wasm", ".css", ".js", ".mjs", ".cjs"})

BARE_PACKAGE_PATTERN = re.compile(r"^(?:@[a-zA-Z0-9_-]+/)?[a-zA-Z0-9_-]+$")

# Node.js core modules; their subpaths ("fs/promises") are served by the runtime
NODE_BUILTIN_MODULES = frozenset(
    {
        "assert", "async_hooks", "buffer", "child_process", "cluster", "console", "constants",
        "crypto", "dgram", "diagnostics_channel", "dns", "domain", "events", "fs", "http", "http2",
        "https", "inspector", "module", "net", "os", "path", "perf_hooks", "process", "punycode",
        "querystring", "readline", "repl", "stream", "string_decoder", "sys", "timers", "tls",
        "trace_events", "tty", "url", "util", "v8", "vm", "wasi", "worker_threads", "zlib",
    }
)

# Both syntactic forms in one alternation so every occurrence is visited once
IMPORT_PATTERN = re.compile(
    r"""(?P<import_prefix>import[\s\S]*?from\s+)(?P<import_quote>['"])(?P<import_spec>.*?)(?P<import_suffix>['"]\s*;)"""
    r"""|(?P<require_prefix>require\s*\(\s*)(?P<require_quote>['"])(?P<require_spec>.*?)(?P<require_suffix>['"]\s*\))"""
)


def rewrite_specifier(specifier: str, compiled_file_path: Path) -> str:
    """Map an import specifier to one the output tree can load directly.

    Args:
        specifier: Specifier as written in the compiled code
        compiled_file_path: Absolute path of the source file being compiled

    Returns:
        The corrected specifier, or the original when it needs no change

    Raises:
        ImportResolutionError: If a relative specifier points at nothing on disk

    Example:
        >>> rewrite_specifier("lodash", Path("/proj/src/a.ts"))
        'lodash'
    """
    if PurePosixPath(specifier).suffix in PASSTHROUGH_EXTENSIONS:
        return specifier

    if BARE_PACKAGE_PATTERN.match(specifier) or is_builtin_module(specifier):
        return specifier

    try:
        resolved = resolve_import(specifier, compiled_file_path)
    except ImportResolutionError:
        logger.error(f"Error while processing import {specifier} from {compiled_file_path}")
        raise

    if resolved.is_dependency:
        return specifier

    if resolved.is_index:
        return f"{specifier.rstrip('/')}/index{EMITTED_EXTENSION}"

    for ext in SOURCE_EXTENSIONS:
        if specifier.endswith(ext):
            return f"{specifier[: -len(ext)]}{EMITTED_EXTENSION}"

    return f"{specifier}{EMITTED_EXTENSION}"


def is_builtin_module(specifier: str) -> bool:
    """True for "node:" specifiers and core modules, including their subpaths."""
    if specifier.startswith("node:"):
        return True
    return specifier.split("/", 1)[0] in NODE_BUILTIN_MODULES


def find_import_references(code: str) -> list[ImportReference]:
    """Collect every import-from and require occurrence in the code."""
    return [_to_reference(match) for match in IMPORT_PATTERN.finditer(code)]


def rewrite_imports(code: str, compiled_file_path: Path) -> str:
    """Rewrite all specifiers in compiled code.

    Args:
        code: Transformed code
        compiled_file_path: Absolute path of the source file

    Returns:
        Code with every import/require specifier rewritten

    Raises:
        ImportResolutionError: On the first specifier that cannot be resolved
    """

    def replace(match: re.Match[str]) -> str:
        ref = _to_reference(match)
        return ref.render(rewrite_specifier(ref.specifier, compiled_file_path))

    return IMPORT_PATTERN.sub(replace, code)


def _to_reference(match: re.Match[str]) -> ImportReference:
    kind = "import" if match.group("import_prefix") is not None else "require"
    return ImportReference(
        kind=kind,
        prefix=match.group(f"{kind}_prefix"),
        quote=match.group(f"{kind}_quote"),
        specifier=match.group(f"{kind}_spec"),
        suffix=match.group(f"{kind}_suffix"),
    )

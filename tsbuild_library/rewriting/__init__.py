"""Import specifier rewriting.

Public Interface:
    - rewrite_specifier: Correct one specifier for the output tree
    - rewrite_imports: Rewrite every specifier in a code string
    - find_import_references: List import/require occurrences
    - resolve_import: Locate a specifier on disk
"""

from .imports import EMITTED_EXTENSION
from .imports import SOURCE_EXTENSIONS
from .imports import find_import_references
from .imports import is_builtin_module
from .imports import rewrite_imports
from .imports import rewrite_specifier
from .resolver import ResolvedImport
from .resolver import resolve_import

__all__ = [
    "EMITTED_EXTENSION",
    "SOURCE_EXTENSIONS",
    "ResolvedImport",
    "find_import_references",
    "is_builtin_module",
    "resolve_import",
    "rewrite_imports",
    "rewrite_specifier",
]

"""tsbuild library layer.

Business logic of the build pipeline, independent of how it is launched.
tsbuildd (the process layer) wires these pieces into a worker process.

Public Interface:
    Modules:
    - config: Settings and option loading
    - models: Shared data structures
    - exclusion: Exclusion rules
    - rewriting: Import specifier rewriting
    - compilation: Engine adapter, file compiler, batch builder
    - watching: Watch controller
    - declarations: Declaration compiler supervision
"""

from .errors import DeclarationError
from .errors import ImportResolutionError
from .errors import SourceRootError
from .errors import SubprocessStartupError
from .errors import TransformError
from .errors import TsBuildError
from .exclusion import ExcludeRuleSet

__all__ = [
    "DeclarationError",
    "ExcludeRuleSet",
    "ImportResolutionError",
    "SourceRootError",
    "SubprocessStartupError",
    "TransformError",
    "TsBuildError",
]

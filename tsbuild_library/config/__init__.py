"""Configuration module for tsbuild_library.

Public Interface:
    - BuildSettings: Process-level settings model
    - BuildOptions: Per-run inputs
    - load_config: Load settings from YAML and environment
    - load_transform_options: Load engine options (.swcrc)
    - load_exclude_patterns: Read tsconfig.json exclude list
    - DEFAULT_TRANSFORM_OPTIONS: Engine defaults
"""

from .loader import DEFAULT_TRANSFORM_OPTIONS
from .loader import get_config_path
from .loader import load_config
from .loader import load_exclude_patterns
from .loader import load_transform_options
from .settings import BuildOptions
from .settings import BuildSettings

__all__ = [
    "BuildSettings",
    "BuildOptions",
    "DEFAULT_TRANSFORM_OPTIONS",
    "get_config_path",
    "load_config",
    "load_exclude_patterns",
    "load_transform_options",
]

"""Configuration loading for the build pipeline.

This module handles loading process settings from YAML files and environment
variables, transformation options from .swcrc files, and exclusion patterns
from tsconfig.json.

Contract:
- Inputs: Config file paths, environment variables
- Outputs: BuildSettings objects, option dicts, pattern lists
- Side Effects: None (never creates files)
"""

import copy
import json
import logging
import os
from pathlib import Path
from typing import Any

import yaml

from .settings import BuildSettings

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILENAME = "tsbuild.yaml"

DEFAULT_TRANSFORM_OPTIONS: dict[str, Any] = {
    "jsc": {
        "parser": {
            "syntax": "typescript",
            "tsx": False,
            "decorators": True,
        },
        "transform": {
            "legacyDecorator": True,
            "decoratorMetadata": True,
        },
        "target": "es2021",
        "keepClassNames": True,
    },
    "module": {
        "type": "commonjs",
        "importInterop": "swc",
    },
    "sourceMaps": True,
}


def get_config_path() -> Path:
    """Get path to the settings file.

    Returns:
        Path to tsbuild.yaml in the current working directory, or the
        location named by TSBUILD_CONFIG_FILE
    """
    env_override = os.environ.get("TSBUILD_CONFIG_FILE")
    if env_override is not None:
        return Path(env_override).resolve()
    return Path.cwd() / DEFAULT_CONFIG_FILENAME


def load_config(config_path: Path | None = None) -> BuildSettings:
    """Load process settings from YAML and environment.

    Environment variables take precedence over YAML settings.
    Variables are prefixed with TSBUILD_ (e.g., TSBUILD_GRACE_PERIOD).
    A missing file is not an error; defaults apply.

    Args:
        config_path: Optional config file path (default: tsbuild.yaml in cwd)

    Returns:
        Validated build settings

    Example:
        >>> settings = load_config()
        >>> assert isinstance(settings, BuildSettings)
    """
    if config_path is None:
        config_path = get_config_path()

    yaml_settings: dict[str, Any] = {}
    if config_path.exists():
        try:
            with open(config_path, encoding="utf-8") as f:
                yaml_settings = yaml.safe_load(f) or {}
            logger.debug(f"Loaded config from {config_path}")
        except (OSError, yaml.YAMLError) as e:
            logger.warning(f"Failed to load config from {config_path}: {e}")
            logger.info("Using default settings and environment variables")

    # Only pass YAML values that don't have corresponding env vars
    filtered_yaml = {}
    for key, value in yaml_settings.items():
        env_key = f"TSBUILD_{key.upper()}"
        if env_key not in os.environ:
            filtered_yaml[key] = value

    return BuildSettings(**filtered_yaml)


def load_transform_options(options_path: Path | None) -> dict[str, Any]:
    """Load transformation engine options.

    Args:
        options_path: Path to a JSON options file (.swcrc), or None for defaults

    Returns:
        Options dictionary (a fresh copy, safe to mutate)

    Raises:
        OSError: If the file cannot be read
        json.JSONDecodeError: If the file is not valid JSON
    """
    if options_path is None:
        return copy.deepcopy(DEFAULT_TRANSFORM_OPTIONS)

    with open(options_path, encoding="utf-8") as f:
        options = json.load(f)
    logger.debug(f"Loaded transform options from {options_path}")
    return options


def load_exclude_patterns(tsconfig_path: Path | None) -> list[str]:
    """Read the exclude list from a tsconfig.json.

    Args:
        tsconfig_path: Path to tsconfig.json, or None

    Returns:
        Exclude patterns, or an empty list when the file is missing,
        unreadable, or has no exclude array
    """
    if tsconfig_path is None:
        return []

    try:
        with open(tsconfig_path, encoding="utf-8") as f:
            tsconfig = json.load(f)
    except (OSError, json.JSONDecodeError):
        logger.warning(
            f"Could not read or parse tsconfig.json at {tsconfig_path}. Ignoring exclude paths."
        )
        return []

    exclude = tsconfig.get("exclude") if isinstance(tsconfig, dict) else None
    if isinstance(exclude, list):
        return [str(pattern) for pattern in exclude]
    return []

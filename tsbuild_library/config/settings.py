"""Settings models for the build pipeline.

Contract:
- Inputs: Environment variables, YAML files, command-line options
- Outputs: Validated settings and build option objects
- Side Effects: None (read-only)
"""

from pathlib import Path
from typing import Any

from pydantic import BaseModel
from pydantic import Field
from pydantic import field_validator
from pydantic_settings import BaseSettings
from pydantic_settings import SettingsConfigDict


class BuildSettings(BaseSettings):
    """Process-level tuning for the build worker and coordinator.

    These values are independent of any single project; per-run inputs
    live in BuildOptions.

    Attributes:
        grace_period: Seconds the coordinator waits after SIGTERM before SIGKILL
        restart_backoff: Seconds between declaration process restarts in watch mode
        declaration_command: Command prefix used to run the TypeScript compiler
        node_command: Node.js executable used by the transformation engine
        log_level: Default logging level when not in verbose mode

    Example:
        >>> settings = BuildSettings()
        >>> assert settings.grace_period == 5.0
        >>> assert settings.declaration_command == ["yarn", "tsc"]
    """

    model_config = SettingsConfigDict(
        env_prefix="TSBUILD_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    grace_period: float = 5.0
    restart_backoff: float = 1.0
    declaration_command: list[str] = ["yarn", "tsc"]
    node_command: str = "node"
    log_level: str = "info"


class BuildOptions(BaseModel):
    """Inputs for one build or watch run.

    Attributes:
        source_root: Root directory to enumerate and watch
        output_root: Root directory the compiled tree is mirrored into
        tsconfig_path: Optional tsconfig.json, enables declarations and exclusions
        transform_options: Options handed to the transformation engine
        types_dir: Declaration output location relative to output_root
        watch: Keep running and recompile on change
        verbose: Log per-file progress and skips
    """

    source_root: Path
    output_root: Path
    tsconfig_path: Path | None = None
    transform_options: dict[str, Any] = Field(default_factory=dict)
    types_dir: str = "./"
    watch: bool = False
    verbose: bool = False

    @field_validator("source_root", "output_root", "tsconfig_path")
    @classmethod
    def resolve_path(cls, v: Path | None) -> Path | None:
        """Expand ~ and resolve to an absolute path."""
        if v is None:
            return None
        return Path(v).expanduser().resolve()

    @property
    def declarations_dir(self) -> Path:
        """Directory the declaration compiler writes .d.ts files into."""
        return (self.output_root / self.types_dir).resolve()

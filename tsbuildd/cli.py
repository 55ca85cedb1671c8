"""tsbuild command line.

`tsbuild` starts the lifecycle coordinator, which runs the build worker
(`python -m tsbuildd`) in its own process group. Both accept the same
options; the coordinator forwards them unchanged.
"""

import asyncio
import functools
import logging
import sys
from pathlib import Path

import click

from tsbuild_library.config import BuildOptions
from tsbuild_library.config import load_config
from tsbuild_library.config import load_transform_options
from tsbuild_library.errors import TsBuildError

from .lifecycle import LifecycleCoordinator
from .lifecycle import find_worker_command
from .worker import BuildWorker

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(verbose: bool, default_level: str = "info") -> None:
    """Configure root logging; verbose switches to DEBUG."""
    level = logging.DEBUG if verbose else getattr(logging, default_level.upper(), logging.INFO)
    logging.basicConfig(level=level, format=LOG_FORMAT)


def build_options(func):
    """Options shared by the coordinator and the worker."""

    @click.option("-s", "--src", "src", required=True, type=click.Path(path_type=Path), help="Source directory")
    @click.option("-d", "--out-dir", "out_dir", required=True, type=click.Path(path_type=Path), help="Output directory")
    @click.option("-p", "--project", type=click.Path(path_type=Path), help="Path to the tsconfig.json file")
    @click.option("-c", "--config", "swc_config", type=click.Path(path_type=Path), help="Path to the .swcrc file")
    @click.option(
        "-t",
        "--types-dir",
        default="./",
        show_default=True,
        help='Path to the declarations output folder (relative to "out" directory)',
    )
    @click.option("-w", "--watch", is_flag=True, help="Enable watch mode")
    @click.option("-v", "--verbose", is_flag=True, help="Enable verbose mode")
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        return func(*args, **kwargs)

    return wrapper


def worker_args(
    src: Path,
    out_dir: Path,
    project: Path | None,
    swc_config: Path | None,
    types_dir: str,
    watch: bool,
    verbose: bool,
) -> list[str]:
    """Rebuild the option list to forward to the worker."""
    args = ["-s", str(src), "-d", str(out_dir), "-t", types_dir]
    if project is not None:
        args += ["-p", str(project)]
    if swc_config is not None:
        args += ["-c", str(swc_config)]
    if watch:
        args.append("-w")
    if verbose:
        args.append("-v")
    return args


@click.command()
@build_options
def cli(src, out_dir, project, swc_config, types_dir, watch, verbose):
    """Compile a TypeScript tree with swc, optionally watching for changes."""
    settings = load_config()
    configure_logging(verbose, settings.log_level)

    try:
        command = find_worker_command()
    except TsBuildError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    args = [*command, *worker_args(src, out_dir, project, swc_config, types_dir, watch, verbose)]
    coordinator = LifecycleCoordinator(args, grace_period=settings.grace_period)

    try:
        exit_code = asyncio.run(coordinator.run())
    except TsBuildError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    sys.exit(exit_code)


@click.command()
@build_options
def worker(src, out_dir, project, swc_config, types_dir, watch, verbose):
    """Run the build worker in the foreground."""
    settings = load_config()
    configure_logging(verbose, settings.log_level)

    try:
        options = BuildOptions(
            source_root=src,
            output_root=out_dir,
            tsconfig_path=project,
            transform_options=load_transform_options(swc_config),
            types_dir=types_dir,
            watch=watch,
            verbose=verbose,
        )
        exit_code = asyncio.run(BuildWorker(options, settings).run())
    except (TsBuildError, OSError, ValueError) as e:
        logger.error(f"Build failed: {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("Received interrupt, shutting down")
        sys.exit(0)
    sys.exit(exit_code)


def main():
    """Entry point for the tsbuild CLI."""
    cli()

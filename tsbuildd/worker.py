"""Build worker: wires the library pieces together for one run.

Build mode runs the batch build and one-shot declaration generation
concurrently and fails if either fails at process level. Watch mode runs
the watch controller next to a continuously supervised declaration
compiler until the process is told to stop.

Contract:
- Inputs: BuildOptions, BuildSettings
- Outputs: Exit code
- Side Effects: Writes the output tree, spawns engine and compiler processes
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import signal
from pathlib import Path

from tsbuild_library.compilation import BatchBuilder
from tsbuild_library.compilation import FileCompiler
from tsbuild_library.compilation import SwcTransformer
from tsbuild_library.compilation import Transformer
from tsbuild_library.config import BuildOptions
from tsbuild_library.config import BuildSettings
from tsbuild_library.config import load_exclude_patterns
from tsbuild_library.declarations import DeclarationSupervisor
from tsbuild_library.exclusion import ExcludeRuleSet
from tsbuild_library.watching import WatchController

logger = logging.getLogger(__name__)


class BuildWorker:
    """Assembles compiler, builder, watcher, and declaration supervisor."""

    def __init__(
        self,
        options: BuildOptions,
        settings: BuildSettings,
        transformer: Transformer | None = None,
    ) -> None:
        """Initialize build worker.

        Args:
            options: Per-run inputs
            settings: Process settings
            transformer: Engine override (default: SwcTransformer)
        """
        self.options = options
        self.settings = settings

        base_dir = options.tsconfig_path.parent if options.tsconfig_path else options.source_root
        self.exclude_rules = ExcludeRuleSet(load_exclude_patterns(options.tsconfig_path), base_dir)

        self.compiler = FileCompiler(
            source_root=options.source_root,
            output_root=options.output_root,
            transformer=transformer or SwcTransformer(settings.node_command, cwd=Path.cwd()),
            transform_options=options.transform_options,
        )
        self.builder = BatchBuilder(self.compiler, self.exclude_rules)

        self.declarations: DeclarationSupervisor | None = None
        if options.tsconfig_path:
            self.declarations = DeclarationSupervisor(
                tsconfig_path=options.tsconfig_path,
                declarations_dir=options.declarations_dir,
                command=settings.declaration_command,
                restart_backoff=settings.restart_backoff,
            )

    async def build(self) -> int:
        """Run one build pass plus one-shot declarations.

        Raises:
            TsBuildError: On any process-level failure (after both have settled)
        """
        jobs = [self.builder.build()]
        if self.declarations:
            jobs.append(self.declarations.run_once())

        results = await asyncio.gather(*jobs, return_exceptions=True)
        for result in results:
            if isinstance(result, BaseException):
                raise result
        return 0

    async def watch(self) -> int:
        """Watch until cancelled; SIGTERM cancels cleanly."""
        controller = WatchController(self.compiler, self.builder, self.exclude_rules)
        tasks = [asyncio.create_task(controller.run(), name="watch")]
        if self.declarations:
            tasks.append(asyncio.create_task(self.declarations.run_forever(), name="declarations"))

        current = asyncio.current_task()
        loop = asyncio.get_running_loop()
        handled = False
        if current is not None:
            with contextlib.suppress(NotImplementedError, RuntimeError):
                loop.add_signal_handler(signal.SIGTERM, current.cancel)
                handled = True

        try:
            await asyncio.gather(*tasks)
        except asyncio.CancelledError:
            logger.info("Stopping watch mode")
        finally:
            if handled:
                loop.remove_signal_handler(signal.SIGTERM)
            if self.declarations:
                await self.declarations.stop()
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
        return 0

    async def run(self) -> int:
        if self.options.watch:
            return await self.watch()
        return await self.build()

"""Supervision of the declaration (.d.ts) compiler subprocess.

The TypeScript compiler runs as an external process with inherited stdio.
In build mode it runs once and its exit code decides success. In watch mode
it must always be up: any exit that was not requested through stop() is
followed by a restart after a fixed backoff, with no attempt limit.

Contract:
- Inputs: tsconfig path, declaration output directory, command prefix
- Outputs: Exit status (one-shot) or nothing until stopped (continuous)
- Side Effects: Spawns subprocesses, terminates them with their descendants
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

import psutil

from ..errors import DeclarationError
from ..errors import SubprocessStartupError

logger = logging.getLogger(__name__)

DEFAULT_COMMAND = ("yarn", "tsc")


class DeclarationSupervisor:
    """Runs `tsc --emitDeclarationOnly` once or keeps it running.

    Example:
        >>> supervisor = DeclarationSupervisor(Path("tsconfig.json"), Path("dist/types"))
        >>> await supervisor.run_once()  # build mode
        >>> await supervisor.run_forever()  # watch mode, until stop()
    """

    def __init__(
        self,
        tsconfig_path: Path,
        declarations_dir: Path,
        command: list[str] | tuple[str, ...] = DEFAULT_COMMAND,
        restart_backoff: float = 1.0,
    ) -> None:
        """Initialize declaration supervisor.

        Args:
            tsconfig_path: Absolute path to tsconfig.json
            declarations_dir: Absolute output directory for .d.ts files
            command: Command prefix that invokes the TypeScript compiler
            restart_backoff: Seconds to wait before restarting in watch mode
        """
        self.tsconfig_path = tsconfig_path
        self.declarations_dir = declarations_dir
        self.command = list(command)
        self.restart_backoff = restart_backoff
        self.restart_count = 0
        self._process: asyncio.subprocess.Process | None = None
        self._stopping = False

    def build_args(self, watch: bool) -> list[str]:
        """Full argument vector for the compiler."""
        args = [
            *self.command,
            "-p",
            str(self.tsconfig_path),
            "--declarationDir",
            str(self.declarations_dir),
        ]
        if watch:
            args.append("--watch")
        args.append("--emitDeclarationOnly")
        if watch:
            args.append("--preserveWatchOutput")
        return args

    async def run_once(self) -> int:
        """Generate declarations once.

        Returns:
            0 on success

        Raises:
            DeclarationError: If the compiler exits nonzero
            SubprocessStartupError: If the compiler cannot be started
        """
        logger.info(f"Generating declaration files for {self.tsconfig_path}...")
        returncode = await self._spawn_and_wait(watch=False)
        if returncode != 0:
            raise DeclarationError(returncode)
        logger.debug(".d.ts generation complete.")
        return returncode

    async def run_forever(self) -> None:
        """Keep the compiler running in watch mode until stop() is called.

        Raises:
            SubprocessStartupError: If the compiler cannot be started
        """
        logger.info(f"Starting declaration file watcher for {self.tsconfig_path}...")
        while not self._stopping:
            returncode = await self._spawn_and_wait(watch=True)
            if self._stopping:
                break
            self.restart_count += 1
            logger.warning(
                f"Declaration watcher exited unexpectedly with code {returncode}, "
                f"restarting in {self.restart_backoff}s (restart #{self.restart_count})"
            )
            await asyncio.sleep(self.restart_backoff)

    async def stop(self) -> None:
        """Request shutdown and terminate the running compiler, if any."""
        self._stopping = True
        proc = self._process
        if proc is None or proc.returncode is not None:
            return
        _terminate_tree(proc.pid)
        await proc.wait()

    async def _spawn_and_wait(self, watch: bool) -> int:
        args = self.build_args(watch)
        logger.debug(f"Spawning: {' '.join(args)}")
        try:
            self._process = await asyncio.create_subprocess_exec(
                *args,
                cwd=str(self.tsconfig_path.parent),
            )
        except (FileNotFoundError, PermissionError) as e:
            logger.error(f"Declaration compiler failed to start: {e}")
            raise SubprocessStartupError(f"Cannot start declaration compiler '{args[0]}': {e}") from e
        return await self._process.wait()


def _terminate_tree(pid: int) -> None:
    """SIGTERM a process and every descendant, children first.

    Package-manager wrappers (yarn, npx) do not forward signals to the
    compiler they start, so the wrapper alone is not enough.
    """
    try:
        parent = psutil.Process(pid)
        children = parent.children(recursive=True)
    except psutil.NoSuchProcess:
        return
    for proc in [*children, parent]:
        try:
            proc.terminate()
        except psutil.NoSuchProcess:
            continue

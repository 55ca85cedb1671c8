"""Lifecycle coordinator for the build worker.

The coordinator is the process the user starts. It launches the worker in
its own process group and stays alive only to manage that group:

- Termination request (SIGINT/SIGTERM): SIGTERM to the whole group, then
  wait up to the grace period. Exit 0 if the worker is gone in time,
  otherwise SIGKILL the group and exit 1.
- Worker exits on its own: exit with the worker's code.

This is the only place that installs process-wide signal handlers.
"""

from __future__ import annotations

import asyncio
import contextlib
import importlib.util
import logging
import signal
import sys
from collections.abc import Sequence

from tsbuild_library.errors import SubprocessStartupError

from .process import FORCE_SIGNAL
from .process import SupervisedProcess

logger = logging.getLogger(__name__)

DEFAULT_GRACE_PERIOD = 5.0
SHUTDOWN_SIGNALS = (signal.SIGINT, signal.SIGTERM)
WORKER_MODULE = "tsbuildd"


def find_worker_command() -> list[str]:
    """Command that starts the build worker under the current interpreter.

    Raises:
        SubprocessStartupError: If the interpreter or worker module is missing
    """
    if not sys.executable:
        raise SubprocessStartupError("Failed to find a Python interpreter to run the worker")
    if importlib.util.find_spec(f"{WORKER_MODULE}.__main__") is None:
        raise SubprocessStartupError("Failed to find worker to run")
    return [sys.executable, "-m", WORKER_MODULE]


def normalize_exit_code(returncode: int | None) -> int:
    """Exit code to propagate when the worker exits on its own.

    Signal deaths (negative codes) and missing codes count as success.
    """
    if returncode is None or returncode < 0:
        return 0
    return returncode


class LifecycleCoordinator:
    """Owns the worker process group and translates signals into shutdown.

    Example:
        >>> coordinator = LifecycleCoordinator([*find_worker_command(), "-s", "src", "-d", "dist"])
        >>> exit_code = await coordinator.run()
    """

    def __init__(self, args: Sequence[str], grace_period: float = DEFAULT_GRACE_PERIOD) -> None:
        """Initialize lifecycle coordinator.

        Args:
            args: Full argument vector of the worker
            grace_period: Seconds between SIGTERM and SIGKILL
        """
        self.args = list(args)
        self.grace_period = grace_period
        self.process: SupervisedProcess | None = None
        self._shutdown = asyncio.Event()

    @property
    def shutdown_requested(self) -> bool:
        return self._shutdown.is_set()

    def request_shutdown(self) -> None:
        """Begin graceful shutdown. Repeated requests are ignored."""
        if self._shutdown.is_set():
            logger.debug("Shutdown already in progress")
            return
        logger.info("Received shutdown signal. Attempting to gracefully shut down child process...")
        self._shutdown.set()

    async def run(self) -> int:
        """Spawn the worker and supervise it until it exits.

        Returns:
            Exit code for the coordinator process

        Raises:
            SubprocessStartupError: If the worker cannot be spawned
        """
        self.process = await SupervisedProcess.spawn(self.args)
        loop = asyncio.get_running_loop()
        installed = self._install_signal_handlers(loop)

        exit_task = asyncio.create_task(self.process.wait())
        shutdown_task = asyncio.create_task(self._shutdown.wait())
        try:
            await asyncio.wait({exit_task, shutdown_task}, return_when=asyncio.FIRST_COMPLETED)
            if not self._shutdown.is_set():
                return normalize_exit_code(exit_task.result())
            return await self._terminate(exit_task)
        finally:
            shutdown_task.cancel()
            for sig in installed:
                loop.remove_signal_handler(sig)

    async def _terminate(self, exit_task: asyncio.Task[int]) -> int:
        assert self.process is not None
        self.process.signal_group(signal.SIGTERM)
        try:
            await asyncio.wait_for(asyncio.shield(exit_task), timeout=self.grace_period)
            logger.info("Child process exited gracefully")
            return 0
        except TimeoutError:
            logger.warning("Child process did not exit gracefully. Forcibly terminating...")
            self.process.signal_group(FORCE_SIGNAL)
            with contextlib.suppress(TimeoutError):
                await asyncio.wait_for(exit_task, timeout=self.grace_period)
            return 1

    def _install_signal_handlers(self, loop: asyncio.AbstractEventLoop) -> list[int]:
        installed = []
        for sig in SHUTDOWN_SIGNALS:
            try:
                loop.add_signal_handler(sig, self.request_shutdown)
                installed.append(sig)
            except NotImplementedError:
                # Event loops without signal support (Windows)
                signal.signal(sig, lambda *_: loop.call_soon_threadsafe(self.request_shutdown))
            except RuntimeError as e:
                logger.warning(f"Cannot handle {signal.Signals(sig).name} outside the main thread: {e}")
        return installed

"""Handle for a child process that leads its own process group.

On POSIX the child is started in a new session, which makes it the leader
of a new process group; signalling the group reaches every descendant.
Elsewhere the descendants are found through psutil and signalled one by
one.

Contract:
- Inputs: Argument vector
- Outputs: Awaitable exit code
- Side Effects: Spawns a process, sends signals to its group
"""

from __future__ import annotations

import asyncio
import logging
import os
import signal
import subprocess
from collections.abc import Sequence

import psutil

from tsbuild_library.errors import SubprocessStartupError
from tsbuild_library.models import ProcessState

logger = logging.getLogger(__name__)

FORCE_SIGNAL = getattr(signal, "SIGKILL", signal.SIGTERM)
HAS_PROCESS_GROUPS = hasattr(os, "killpg")


class SupervisedProcess:
    """A spawned child process owned by the lifecycle coordinator."""

    def __init__(self, args: Sequence[str]) -> None:
        self.args = list(args)
        self.state = ProcessState.STARTING
        self._proc: asyncio.subprocess.Process | None = None
        self._force_sent = False

    @classmethod
    async def spawn(cls, args: Sequence[str]) -> SupervisedProcess:
        """Start a process as a new process group leader with inherited stdio.

        Raises:
            SubprocessStartupError: If the executable cannot be started
        """
        handle = cls(args)
        kwargs: dict = {}
        if HAS_PROCESS_GROUPS:
            kwargs["start_new_session"] = True
        else:
            kwargs["creationflags"] = subprocess.CREATE_NEW_PROCESS_GROUP
        try:
            handle._proc = await asyncio.create_subprocess_exec(*handle.args, **kwargs)
        except OSError as e:
            raise SubprocessStartupError(f"Failed to start {handle.args[0]}: {e}") from e
        handle.state = ProcessState.RUNNING
        logger.debug(f"Spawned process group {handle.pid}: {' '.join(handle.args)}")
        return handle

    @property
    def pid(self) -> int | None:
        return self._proc.pid if self._proc else None

    @property
    def returncode(self) -> int | None:
        return self._proc.returncode if self._proc else None

    def signal_group(self, sig: int) -> bool:
        """Send a signal to the child and all of its descendants.

        Errors (group already gone, permission denied) are logged, not raised.

        Returns:
            True if the signal was delivered
        """
        if self.pid is None:
            return False
        if sig == FORCE_SIGNAL:
            self._force_sent = True
        try:
            if HAS_PROCESS_GROUPS:
                os.killpg(self.pid, sig)
            else:
                self._signal_tree(sig)
            return True
        except (ProcessLookupError, PermissionError, psutil.Error) as e:
            logger.error(f"Error sending {signal.Signals(sig).name} to child process group: {e}")
            return False

    def _signal_tree(self, sig: int) -> None:
        parent = psutil.Process(self.pid)
        for proc in [*parent.children(recursive=True), parent]:
            try:
                if sig == FORCE_SIGNAL:
                    proc.kill()
                else:
                    proc.terminate()
            except psutil.NoSuchProcess:
                continue

    async def wait(self) -> int:
        """Wait for the child to exit.

        Returns:
            The exit code (negative signal number if killed by a signal)
        """
        assert self._proc is not None, "process was never spawned"
        returncode = await self._proc.wait()
        self.state = ProcessState.KILLED if self._force_sent else ProcessState.EXITED
        return returncode

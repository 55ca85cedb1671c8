"""Tests for the lifecycle coordinator and supervised process groups.

Children are short Python scripts. Each writes a ready file once its
signal disposition is set up so the tests never signal a half-started
interpreter.
"""

import asyncio
import os
import signal
import sys
from pathlib import Path

import psutil
import pytest

from tsbuild_library.errors import SubprocessStartupError
from tsbuild_library.models import ProcessState
from tsbuildd.lifecycle import LifecycleCoordinator
from tsbuildd.lifecycle import find_worker_command
from tsbuildd.lifecycle import normalize_exit_code
from tsbuildd.process import SupervisedProcess

posix_only = pytest.mark.skipif(not hasattr(os, "killpg"), reason="requires POSIX process groups")

SLEEPER = """
import pathlib, sys, time
pathlib.Path(sys.argv[1]).write_text("ready")
time.sleep(60)
"""

STUBBORN = """
import pathlib, signal, sys, time
signal.signal(signal.SIGTERM, signal.SIG_IGN)
pathlib.Path(sys.argv[1]).write_text("ready")
time.sleep(60)
"""

PARENT_OF_SLEEPER = """
import pathlib, subprocess, sys, time
child = subprocess.Popen([sys.executable, "-c", "import time; time.sleep(60)"])
pathlib.Path(sys.argv[1]).write_text(str(child.pid))
time.sleep(60)
"""


async def wait_for_file(path: Path, timeout: float = 30) -> str:
    async def poll() -> str:
        while not path.exists() or not path.read_text():
            await asyncio.sleep(0.02)
        return path.read_text()

    return await asyncio.wait_for(poll(), timeout)


async def wait_until_gone(pid: int, timeout: float = 10) -> bool:
    deadline = asyncio.get_running_loop().time() + timeout
    while asyncio.get_running_loop().time() < deadline:
        try:
            if psutil.Process(pid).status() == psutil.STATUS_ZOMBIE:
                return True
        except psutil.NoSuchProcess:
            return True
        await asyncio.sleep(0.05)
    return False


@pytest.mark.unit
class TestHelpers:
    """Test exit code normalization and worker lookup."""

    @pytest.mark.parametrize(
        ("returncode", "expected"),
        [(0, 0), (3, 3), (None, 0), (-signal.SIGTERM, 0), (-9, 0)],
    )
    def test_normalize_exit_code(self, returncode, expected) -> None:
        assert normalize_exit_code(returncode) == expected

    def test_find_worker_command(self) -> None:
        assert find_worker_command() == [sys.executable, "-m", "tsbuildd"]

    def test_find_worker_command_missing_module(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("tsbuildd.lifecycle.importlib.util.find_spec", lambda name: None)

        with pytest.raises(SubprocessStartupError, match="Failed to find worker to run"):
            find_worker_command()


@posix_only
class TestSupervisedProcess:
    """Test process group spawning and signalling."""

    async def test_child_leads_its_own_group(self, tmp_path: Path) -> None:
        ready = tmp_path / "ready"
        process = await SupervisedProcess.spawn([sys.executable, "-c", SLEEPER, str(ready)])
        await wait_for_file(ready)

        assert os.getpgid(process.pid) == process.pid
        assert os.getpgid(process.pid) != os.getpgid(0)

        assert process.signal_group(signal.SIGTERM)
        assert await process.wait() == -signal.SIGTERM
        assert process.state is ProcessState.EXITED

    async def test_spawn_failure_raises_startup_error(self) -> None:
        with pytest.raises(SubprocessStartupError):
            await SupervisedProcess.spawn(["definitely-not-a-real-binary"])

    async def test_signal_after_exit_is_logged_not_raised(self, caplog) -> None:
        process = await SupervisedProcess.spawn([sys.executable, "-c", "pass"])
        await process.wait()

        assert process.signal_group(signal.SIGTERM) is False
        assert "Error sending SIGTERM" in caplog.text

    async def test_force_marks_killed(self, tmp_path: Path) -> None:
        ready = tmp_path / "ready"
        process = await SupervisedProcess.spawn([sys.executable, "-c", STUBBORN, str(ready)])
        await wait_for_file(ready)

        assert process.signal_group(signal.SIGKILL)
        assert await process.wait() == -signal.SIGKILL
        assert process.state is ProcessState.KILLED


@posix_only
class TestLifecycleCoordinator:
    """Test shutdown escalation and exit code propagation."""

    async def test_worker_exit_code_propagates(self) -> None:
        coordinator = LifecycleCoordinator([sys.executable, "-c", "import sys; sys.exit(3)"], grace_period=1)

        assert await coordinator.run() == 3
        assert coordinator.process.state is ProcessState.EXITED

    async def test_successful_worker_exits_zero(self) -> None:
        coordinator = LifecycleCoordinator([sys.executable, "-c", "pass"], grace_period=1)

        assert await coordinator.run() == 0

    async def test_graceful_shutdown_exits_zero(self, tmp_path: Path) -> None:
        """Given a worker that honours SIGTERM
        When shutdown is requested
        Then the coordinator exits 0 without escalating
        """
        ready = tmp_path / "ready"
        coordinator = LifecycleCoordinator([sys.executable, "-c", SLEEPER, str(ready)], grace_period=5)
        run = asyncio.create_task(coordinator.run())
        await wait_for_file(ready)

        coordinator.request_shutdown()

        assert await asyncio.wait_for(run, 30) == 0
        assert coordinator.process.state is ProcessState.EXITED

    async def test_stubborn_worker_is_killed_after_grace_period(self, tmp_path: Path) -> None:
        """Given a worker that ignores SIGTERM
        When shutdown is requested
        Then SIGKILL follows the grace period and the coordinator exits 1
        """
        ready = tmp_path / "ready"
        coordinator = LifecycleCoordinator([sys.executable, "-c", STUBBORN, str(ready)], grace_period=0.3)
        run = asyncio.create_task(coordinator.run())
        await wait_for_file(ready)

        coordinator.request_shutdown()

        assert await asyncio.wait_for(run, 30) == 1
        assert coordinator.process.state is ProcessState.KILLED
        assert coordinator.process.returncode == -signal.SIGKILL

    async def test_repeated_shutdown_requests_ignored(self, tmp_path: Path) -> None:
        ready = tmp_path / "ready"
        coordinator = LifecycleCoordinator([sys.executable, "-c", SLEEPER, str(ready)], grace_period=5)
        run = asyncio.create_task(coordinator.run())
        await wait_for_file(ready)

        coordinator.request_shutdown()
        coordinator.request_shutdown()

        assert coordinator.shutdown_requested
        assert await asyncio.wait_for(run, 30) == 0

    async def test_sigterm_to_coordinator_triggers_shutdown(self, tmp_path: Path) -> None:
        ready = tmp_path / "ready"
        coordinator = LifecycleCoordinator([sys.executable, "-c", SLEEPER, str(ready)], grace_period=5)
        run = asyncio.create_task(coordinator.run())
        await wait_for_file(ready)

        os.kill(os.getpid(), signal.SIGTERM)

        assert await asyncio.wait_for(run, 30) == 0
        assert coordinator.shutdown_requested

    async def test_descendants_receive_termination(self, tmp_path: Path) -> None:
        """Grandchildren are in the worker's group and die with it."""
        ready = tmp_path / "ready"
        coordinator = LifecycleCoordinator([sys.executable, "-c", PARENT_OF_SLEEPER, str(ready)], grace_period=5)
        run = asyncio.create_task(coordinator.run())
        grandchild_pid = int(await wait_for_file(ready))

        coordinator.request_shutdown()

        assert await asyncio.wait_for(run, 30) == 0
        assert await wait_until_gone(grandchild_pid)

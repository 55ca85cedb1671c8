"""Watch mode: initial build, then per-file recompiles on change.

Architecture:
- watchdog Observer thread receives filesystem notifications
- SourceEventHandler filters them and posts WatchEvent messages onto an
  asyncio.Queue via loop.call_soon_threadsafe
- WatchController consumes the queue in order and issues one compile task
  per event without waiting for earlier compiles to finish
- Lifecycle: initializing (initial batch) -> watching, until stop()
"""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Callable
from enum import Enum
from pathlib import Path

from watchdog.events import FileSystemEvent
from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer
from watchdog.observers.api import BaseObserver

from ..compilation import BatchBuilder
from ..compilation import FileCompiler
from ..exclusion import ExcludeRuleSet
from ..models import BuildReport
from ..models import SourceFile
from ..models import SourceOrigin
from ..models import WatchEvent
from ..models import WatchEventKind
from ..rewriting import SOURCE_EXTENSIONS

logger = logging.getLogger(__name__)

DECLARATION_SUFFIX = ".d.ts"


class WatchState(str, Enum):
    """Watch controller lifecycle status."""

    IDLE = "idle"
    INITIALIZING = "initializing"
    WATCHING = "watching"
    STOPPED = "stopped"


def is_ignored(path: Path, exclude_rules: ExcludeRuleSet, is_file: bool) -> bool:
    """Decide whether the watcher should skip a path.

    Directories are never ignored outright (unless excluded) so traversal
    can reach nested sources.

    Args:
        path: Absolute path from the watcher
        exclude_rules: Exclusion rules
        is_file: Whether the path is a regular file

    Returns:
        True if the path must not trigger a compile
    """
    if exclude_rules.matches(path):
        return True
    if is_file:
        name = path.name
        return (
            name.startswith(".")
            or name.endswith(DECLARATION_SUFFIX)
            or not name.endswith(SOURCE_EXTENSIONS)
        )
    return False


class SourceEventHandler(FileSystemEventHandler):
    """Translates watchdog callbacks into WatchEvent messages.

    Runs on the observer thread; only touches the queue through the event
    loop's thread-safe scheduling.
    """

    def __init__(
        self,
        queue: asyncio.Queue[WatchEvent],
        loop: asyncio.AbstractEventLoop,
        exclude_rules: ExcludeRuleSet,
    ) -> None:
        super().__init__()
        self.queue = queue
        self.loop = loop
        self.exclude_rules = exclude_rules

    def post(self, event: WatchEvent) -> None:
        self.loop.call_soon_threadsafe(self.queue.put_nowait, event)

    def dispatch(self, event: FileSystemEvent) -> None:
        try:
            super().dispatch(event)
        except Exception as e:
            self.post(WatchEvent(WatchEventKind.ERROR, error=f"{type(e).__name__}: {e}"))

    def on_created(self, event: FileSystemEvent) -> None:
        self._handle(event.src_path, event.is_directory, WatchEventKind.ADDED)

    def on_modified(self, event: FileSystemEvent) -> None:
        self._handle(event.src_path, event.is_directory, WatchEventKind.CHANGED)

    def on_moved(self, event: FileSystemEvent) -> None:
        # Editors that save via rename show up as a move onto the source file
        self._handle(event.dest_path, event.is_directory, WatchEventKind.ADDED)

    def _handle(self, raw_path: str | bytes, is_directory: bool, kind: WatchEventKind) -> None:
        if is_directory:
            return
        path = Path(os.fsdecode(raw_path))
        if is_ignored(path, self.exclude_rules, is_file=True):
            return
        self.post(WatchEvent(kind, path=path))


class WatchController:
    """Keeps the output tree synchronized with the source tree.

    The initial batch build always completes before the observer is
    started, so no watch-triggered compile overlaps it.

    Example:
        >>> controller = WatchController(compiler, builder, rules)
        >>> await controller.start()
        >>> ...
        >>> await controller.stop()
    """

    def __init__(
        self,
        compiler: FileCompiler,
        builder: BatchBuilder,
        exclude_rules: ExcludeRuleSet,
        watch_root: Path | None = None,
        observer_factory: Callable[[], BaseObserver] = Observer,
    ) -> None:
        """Initialize watch controller.

        Args:
            compiler: Compiler used for per-event recompiles
            builder: Builder used for the initial pass
            exclude_rules: Rules for the ignore predicate
            watch_root: Directory to watch (default: the compiler's source root)
            observer_factory: Creates the watchdog observer
        """
        self.compiler = compiler
        self.builder = builder
        self.exclude_rules = exclude_rules
        self.watch_root = watch_root or compiler.source_root
        self._observer_factory = observer_factory
        self._observer: BaseObserver | None = None
        self._queue: asyncio.Queue[WatchEvent] | None = None
        self._handler: SourceEventHandler | None = None
        self._consumer: asyncio.Task[None] | None = None
        self._pending: set[asyncio.Task] = set()
        self._state = WatchState.IDLE

    @property
    def state(self) -> WatchState:
        return self._state

    @property
    def handler(self) -> SourceEventHandler | None:
        return self._handler

    async def start(self) -> BuildReport:
        """Run the initial build and begin watching.

        Returns:
            Report of the initial batch build
        """
        self._state = WatchState.INITIALIZING
        report = await self.builder.build()

        loop = asyncio.get_running_loop()
        self._queue = asyncio.Queue()
        self._handler = SourceEventHandler(self._queue, loop, self.exclude_rules)

        self._observer = self._observer_factory()
        try:
            self._observer.schedule(self._handler, str(self.watch_root), recursive=True)
            self._observer.start()
        except OSError as e:
            logger.error(f"Watcher error: {e}")

        self._consumer = asyncio.create_task(self._consume())
        self._state = WatchState.WATCHING
        logger.debug("Initial scan complete. Ready for changes.")
        logger.debug(f"Watching for changes in {self.watch_root}...")
        return report

    async def run(self) -> None:
        """Start watching and block until stopped or cancelled."""
        await self.start()
        try:
            assert self._consumer is not None
            await self._consumer
        finally:
            await self.stop()

    async def stop(self) -> None:
        """Stop the observer and wait for in-flight compiles."""
        if self._state is WatchState.STOPPED:
            return
        self._state = WatchState.STOPPED

        if self._observer is not None:
            observer = self._observer
            self._observer = None
            if observer.is_alive():
                observer.stop()
                await asyncio.to_thread(observer.join)

        if self._consumer is not None and not self._consumer.done():
            self._consumer.cancel()
            try:
                await self._consumer
            except asyncio.CancelledError:
                pass

        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)

    async def wait_idle(self) -> None:
        """Wait until every queued event has been issued and its compile settled."""
        # Let callbacks posted from the observer thread land on the queue first
        await asyncio.sleep(0)
        if self._queue is not None:
            await self._queue.join()
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def _consume(self) -> None:
        assert self._queue is not None
        while True:
            event = await self._queue.get()
            try:
                self._dispatch(event)
            finally:
                self._queue.task_done()

    def _dispatch(self, event: WatchEvent) -> None:
        if event.kind is WatchEventKind.ERROR:
            logger.error(f"Watcher error: {event.error}")
            return
        assert event.path is not None
        logger.debug(f"File {event.kind.value}: {event.path}")
        task = asyncio.create_task(
            self.compiler.compile(SourceFile(event.path, SourceOrigin.WATCH)),
            name=str(event.path),
        )
        self._pending.add(task)
        task.add_done_callback(self._compile_done)

    def _compile_done(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Unexpected error compiling {task.get_name()}: {error}", exc_info=error)

"""Workspace change watching for the SSE watch endpoint.

One ChangeWatcher is created per stream request and released when that
request ends. Raw watchfiles events are coalesced by a Debouncer into a single
``change`` frame; a heartbeat comment keeps idle connections open.
"""
import asyncio
from collections.abc import AsyncIterator, Callable
from enum import Enum
from pathlib import Path
from typing import Any

import loguru
from watchfiles import Change, DefaultFilter, awatch

from shared.config import settings
from shared.schemas import HEARTBEAT_FRAME, ChangeKind, ConnectedEvent, ErrorEvent, FileChange, change_to_sse

from .errors import WatchUnavailableError

WATCH_UNAVAILABLE_MESSAGE = "File watching unavailable"


class Debouncer:
    """Delays a callback until no trigger has arrived for ``delay`` seconds.

    Only the value of the most recent trigger is delivered.
    """

    def __init__(self, delay: float, callback: Callable[[Any], None]):
        self.delay = delay
        self._callback = callback
        self._handle: asyncio.TimerHandle | None = None
        self._latest: Any = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def trigger(self, value: Any = None) -> None:
        self._latest = value
        if self._handle is not None:
            self._handle.cancel()
        self._handle = asyncio.get_running_loop().call_later(self.delay, self._fire)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        self._latest = None

    def _fire(self) -> None:
        value, self._latest = self._latest, None
        self._handle = None
        self._callback(value)


# ==================== Watch sources ====================

class WatchSource:
    """Strategy that yields batches of raw changes under a root."""

    available = True

    def changes(self) -> AsyncIterator[list[FileChange]]:
        raise NotImplementedError

    def close(self) -> None:
        """Release the underlying watch handle. Must not block."""


class WorkspaceWatchFilter(DefaultFilter):
    """watchfiles filter: DefaultFilter plus workspace exclusions and a depth cap."""

    def __init__(
        self,
        root: Path,
        *,
        max_depth: int,
        ignore_dirs: list[str] | tuple[str, ...] = (),
        ignore_patterns: list[str] | tuple[str, ...] = (),
    ):
        super().__init__(
            ignore_dirs=tuple(DefaultFilter.ignore_dirs) + tuple(ignore_dirs),
            ignore_entity_patterns=tuple(DefaultFilter.ignore_entity_patterns) + tuple(ignore_patterns),
        )
        self.root = root
        self.max_depth = max_depth

    def __call__(self, change: Change, path: str) -> bool:
        if not super().__call__(change, path):
            return False
        try:
            rel_parts = Path(path).relative_to(self.root).parts
        except ValueError:
            return False
        # max_depth counts directory levels below the root
        return len(rel_parts) <= self.max_depth + 1


class WatchfilesSource(WatchSource):
    """Recursive watch of the workspace root backed by watchfiles."""

    def __init__(
        self,
        root: Path,
        *,
        max_depth: int | None = None,
        ignore_dirs: list[str] | None = None,
        ignore_patterns: list[str] | None = None,
        native_debounce_ms: int | None = None,
    ):
        self.root = root
        self.watch_filter = WorkspaceWatchFilter(
            root,
            max_depth=settings.watch_max_depth if max_depth is None else max_depth,
            ignore_dirs=settings.watch_ignore_dirs if ignore_dirs is None else ignore_dirs,
            ignore_patterns=settings.watch_ignore_patterns if ignore_patterns is None else ignore_patterns,
        )
        self.native_debounce_ms = (
            settings.watch_native_debounce_ms if native_debounce_ms is None else native_debounce_ms
        )
        self._stop_event = asyncio.Event()

    async def changes(self) -> AsyncIterator[list[FileChange]]:
        async for batch in awatch(
            self.root,
            watch_filter=self.watch_filter,
            stop_event=self._stop_event,
            debounce=self.native_debounce_ms,
            recursive=True,
        ):
            changes = [self._to_file_change(change, path) for change, path in sorted(batch)]
            yield [c for c in changes if c is not None]

    def close(self) -> None:
        self._stop_event.set()

    def _to_file_change(self, change: Change, path: str) -> FileChange | None:
        p = Path(path)
        try:
            rel_path = p.relative_to(self.root).as_posix()
        except ValueError:
            return None

        if change == Change.added:
            kind = ChangeKind.ADD_DIR if p.is_dir() else ChangeKind.ADD
        elif change == Change.deleted:
            # The entry is gone, so a removed directory cannot be told apart
            kind = ChangeKind.REMOVE
        else:
            kind = ChangeKind.CHANGE
        return FileChange(kind=kind, path=rel_path)


class UnavailableWatchSource(WatchSource):
    """Null-object source used when no filesystem watch can be established."""

    available = False

    def __init__(self, reason: str = WATCH_UNAVAILABLE_MESSAGE):
        self.reason = reason

    async def changes(self) -> AsyncIterator[list[FileChange]]:
        return
        yield


def open_watch_source(root: Path | None) -> WatchSource:
    """
    Pick the watch strategy for a root.

    Returns:
        A WatchfilesSource, or an UnavailableWatchSource if watching is
        disabled or the root is not a directory
    """
    if not settings.watch_enabled:
        return UnavailableWatchSource()
    if root is None or not root.is_dir():
        loguru.logger.warning("open_watch_source: workspace root missing, watching unavailable")
        return UnavailableWatchSource()
    return WatchfilesSource(root)


# ==================== Watcher ====================

class WatcherState(str, Enum):
    """ChangeWatcher lifecycle."""

    IDLE = "idle"
    WATCHING = "watching"
    ERROR = "error"


class ChangeWatcher:
    """Request-scoped watcher producing SSE frames.

    Use as an async context manager; leaving the block releases the watch
    handle, the debounce timer and the heartbeat, whatever ended the request::

        async with ChangeWatcher(root) as watcher:
            async for frame in watcher.messages():
                ...
    """

    def __init__(
        self,
        root: Path,
        source: WatchSource | None = None,
        *,
        debounce_seconds: float | None = None,
        heartbeat_seconds: float | None = None,
    ):
        self.root = root
        self.source = source if source is not None else open_watch_source(root)
        self.debounce_seconds = (
            settings.watch_debounce_ms / 1000 if debounce_seconds is None else debounce_seconds
        )
        self.heartbeat_seconds = (
            settings.watch_heartbeat_seconds if heartbeat_seconds is None else heartbeat_seconds
        )
        self.state = WatcherState.IDLE
        self.notifications_sent = 0
        self.last_change: FileChange | None = None

        self._queue: asyncio.Queue[str | None] = asyncio.Queue()
        self._debouncer = Debouncer(self.debounce_seconds, self._emit_change)
        self._tasks: list[asyncio.Task] = []

    async def __aenter__(self) -> "ChangeWatcher":
        self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    def start(self) -> None:
        self._queue.put_nowait(ConnectedEvent().to_sse())

        if not self.source.available:
            reason = getattr(self.source, "reason", WATCH_UNAVAILABLE_MESSAGE)
            self._fail(reason)
            return

        self.state = WatcherState.WATCHING
        self._tasks = [
            asyncio.create_task(self._watch_loop()),
            asyncio.create_task(self._heartbeat_loop()),
        ]
        loguru.logger.debug(
            f"ChangeWatcher: watching debounce={self.debounce_seconds} heartbeat={self.heartbeat_seconds}"
        )

    def release(self) -> None:
        """Synchronously release the watch handle and every timer."""
        if self.state is WatcherState.WATCHING:
            self.state = WatcherState.IDLE
        self.source.close()
        self._debouncer.cancel()
        for task in self._tasks:
            task.cancel()

    async def close(self) -> None:
        self.release()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
            self._tasks = []
        loguru.logger.debug(f"ChangeWatcher: closed notifications_sent={self.notifications_sent}")

    async def messages(self) -> AsyncIterator[str]:
        """Yield SSE frames until the watcher stops."""
        while True:
            frame = await self._queue.get()
            if frame is None:
                return
            yield frame

    def _emit_change(self, change: FileChange | None) -> None:
        if self.state is not WatcherState.WATCHING or change is None:
            return
        self.notifications_sent += 1
        loguru.logger.debug(f"ChangeWatcher: change type={change.kind.value} path={change.path}")
        self._queue.put_nowait(change_to_sse(change).to_sse())

    def _fail(self, message: str) -> None:
        self.state = WatcherState.ERROR
        self._debouncer.cancel()
        self._queue.put_nowait(ErrorEvent(data=WatchUnavailableError(message).to_detail()).to_sse())
        self._queue.put_nowait(None)

    async def _watch_loop(self) -> None:
        try:
            async for batch in self.source.changes():
                for change in batch:
                    self.last_change = change
                    self._debouncer.trigger(change)
            # The source only ends when its watch handle is gone
            if self.state is WatcherState.WATCHING:
                loguru.logger.warning("ChangeWatcher: watch ended unexpectedly")
                self._fail(WATCH_UNAVAILABLE_MESSAGE)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            # The watch could not be established (or died); clients fall back to polling
            loguru.logger.warning(f"ChangeWatcher: watch failed error={e!s}")
            self._fail(WATCH_UNAVAILABLE_MESSAGE)

    async def _heartbeat_loop(self) -> None:
        while True:
            await asyncio.sleep(self.heartbeat_seconds)
            if self.state is not WatcherState.WATCHING:
                return
            self._queue.put_nowait(HEARTBEAT_FRAME)


async def stream_workspace_changes(root: Path, source: WatchSource | None = None) -> AsyncIterator[str]:
    """
    SSE generator for the watch endpoint.

    Yields:
        SSE formatted frames: connected, change, heartbeat comments and a
        terminal error when watching is unavailable
    """
    loguru.logger.info("stream_workspace_changes: client connected")
    try:
        async with ChangeWatcher(root, source) as watcher:
            async for frame in watcher.messages():
                yield frame
    except asyncio.CancelledError:
        loguru.logger.info("stream_workspace_changes: client disconnected (CancelledError)")
        raise
    finally:
        loguru.logger.debug("stream_workspace_changes: watcher released")

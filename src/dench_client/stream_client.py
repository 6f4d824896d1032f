"""Workspace tree client kept live by the server's change stream.

Fetches the tree once, then subscribes to ``/api/workspace/watch``. Change
events are debounced into a tree refetch. When the stream fails or closes the
client polls the tree and reconnects with exponential backoff; polling stops
as soon as the server acknowledges a new connection.
"""
import asyncio
from collections.abc import Callable
from enum import Enum
from typing import Any

import httpx
import loguru

from .backoff import BackoffPolicy
from .config import ClientSettings, client_settings
from .sse import SSEMessage, parse_sse_lines


class ConnectionState(str, Enum):
    """Stream connection lifecycle."""

    IDLE = "idle"
    CONNECTING = "connecting"
    OPEN = "open"
    POLLING = "polling"  # stream down, polling while a reconnect is scheduled
    RECONNECTING = "reconnecting"
    CLOSED = "closed"


class StreamUnavailableError(Exception):
    """The watch endpoint answered with a non-200 status."""


class ChangeStreamClient:
    """Live workspace tree for one consumer (one per browser tab in the web UI).

    Exposes ``tree``, ``exists`` and ``loading``; ``on_tree`` is called after
    every successful fetch. Use ``refresh()`` right after a mutation instead of
    waiting for the change event.
    """

    def __init__(
        self,
        base_url: str | None = None,
        *,
        http_client: httpx.AsyncClient | None = None,
        config: ClientSettings | None = None,
        backoff: BackoffPolicy | None = None,
        on_tree: Callable[["ChangeStreamClient"], Any] | None = None,
    ):
        self.config = config or client_settings
        self.base_url = (base_url or self.config.base_url).rstrip("/")
        self._owns_http = http_client is None
        self._http = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(self.config.request_timeout_seconds)
        )
        self.backoff = backoff or BackoffPolicy(
            self.config.backoff_initial_seconds,
            self.config.backoff_max_seconds,
        )
        self.on_tree = on_tree

        self.tree: list[dict[str, Any]] = []
        self.exists = False
        self.loading = True
        self.state = ConnectionState.IDLE
        self.reconnect_delays: list[float] = []
        self.last_change: dict[str, Any] | None = None

        self._alive = False
        self._stream_task: asyncio.Task | None = None
        self._poll_task: asyncio.Task | None = None
        self._fetch_tasks: set[asyncio.Task] = set()
        self._reconnect_handle: asyncio.TimerHandle | None = None
        self._debounce_handle: asyncio.TimerHandle | None = None

    async def __aenter__(self) -> "ChangeStreamClient":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    @property
    def polling(self) -> bool:
        return self._poll_task is not None

    # ==================== Lifecycle ====================

    async def start(self) -> None:
        """Fetch the baseline tree, then open the change stream."""
        self._alive = True
        await self.fetch_tree()
        self.state = ConnectionState.CONNECTING
        self._open_stream()

    async def close(self) -> None:
        """Close the stream and clear every timer; nothing fires afterwards."""
        self._alive = False
        self.state = ConnectionState.CLOSED

        if self._reconnect_handle is not None:
            self._reconnect_handle.cancel()
            self._reconnect_handle = None
        if self._debounce_handle is not None:
            self._debounce_handle.cancel()
            self._debounce_handle = None

        tasks = [t for t in (self._stream_task, self._poll_task, *self._fetch_tasks) if t is not None]
        for task in tasks:
            task.cancel()
        self._stream_task = None
        self._poll_task = None
        self._fetch_tasks.clear()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

        if self._owns_http:
            await self._http.aclose()

    async def refresh(self) -> None:
        """Refetch the tree now."""
        await self.fetch_tree()

    # ==================== Tree ====================

    async def fetch_tree(self) -> None:
        url = f"{self.base_url}{self.config.tree_path}"
        try:
            response = await self._http.get(url)
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            loguru.logger.warning(f"ChangeStreamClient: tree fetch failed error={e!s}")
            self.loading = False
            return

        if not self._alive:
            return
        self.tree = data.get("tree") or []
        self.exists = bool(data.get("exists", False))
        self.loading = False
        if self.on_tree is not None:
            result = self.on_tree(self)
            if asyncio.iscoroutine(result):
                await result

    def _spawn_fetch(self) -> None:
        if not self._alive:
            return
        task = asyncio.create_task(self.fetch_tree())
        self._fetch_tasks.add(task)
        task.add_done_callback(self._fetch_tasks.discard)

    # ==================== Stream ====================

    def _open_stream(self) -> None:
        if not self._alive:
            return
        self._stream_task = asyncio.create_task(self._run_stream())

    async def _run_stream(self) -> None:
        url = f"{self.base_url}{self.config.watch_path}"
        try:
            async with self._http.stream(
                "GET",
                url,
                headers={"Accept": "text/event-stream"},
                timeout=httpx.Timeout(self.config.request_timeout_seconds, read=None),
            ) as response:
                if response.status_code != 200:
                    raise StreamUnavailableError(f"watch stream answered {response.status_code}")
                async for message in parse_sse_lines(response.aiter_lines()):
                    self._handle_message(message)
            loguru.logger.debug("ChangeStreamClient: stream closed by server")
        except asyncio.CancelledError:
            raise
        except (httpx.HTTPError, StreamUnavailableError) as e:
            loguru.logger.debug(f"ChangeStreamClient: stream error error={e!s}")

        if self._alive:
            self._schedule_reconnect()

    def _handle_message(self, message: SSEMessage) -> None:
        if message.event == "connected":
            self.backoff.reset()
            self._stop_polling()
            self.state = ConnectionState.OPEN
            loguru.logger.debug("ChangeStreamClient: connected")
        elif message.event == "change":
            self.last_change = message.payload()
            self._debounced_refetch()
        else:
            # Informational (e.g. "error" when the server cannot watch); the
            # reconnect policy applies once the stream closes
            loguru.logger.info(f"ChangeStreamClient: event={message.event} data={message.data}")

    def _debounced_refetch(self) -> None:
        if self._debounce_handle is not None:
            self._debounce_handle.cancel()
        self._debounce_handle = asyncio.get_running_loop().call_later(
            self.config.change_debounce_ms / 1000,
            self._on_debounce,
        )

    def _on_debounce(self) -> None:
        self._debounce_handle = None
        self._spawn_fetch()

    # ==================== Reconnect / polling ====================

    def _schedule_reconnect(self) -> None:
        if not self._alive:
            return
        self._start_polling()
        delay = self.backoff.next_delay()
        self.reconnect_delays.append(delay)
        self.state = ConnectionState.POLLING
        loguru.logger.info(f"ChangeStreamClient: reconnecting in {delay}s")
        self._reconnect_handle = asyncio.get_running_loop().call_later(delay, self._reconnect)

    def _reconnect(self) -> None:
        self._reconnect_handle = None
        if not self._alive:
            return
        self.state = ConnectionState.RECONNECTING
        self._open_stream()

    def _start_polling(self) -> None:
        if self._poll_task is not None or not self._alive:
            return
        self._poll_task = asyncio.create_task(self._poll_loop())

    def _stop_polling(self) -> None:
        if self._poll_task is not None:
            self._poll_task.cancel()
            self._poll_task = None

    async def _poll_loop(self) -> None:
        while self._alive:
            await asyncio.sleep(self.config.poll_interval_seconds)
            if self._alive:
                await self.fetch_tree()

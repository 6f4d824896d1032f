"""dench_client 单测：退避策略、SSE 解析、ChangeStreamClient 重连与防抖。"""

import asyncio
import json

import httpx
import pytest

from dench_client import (
    BackoffPolicy,
    ChangeStreamClient,
    ClientSettings,
    ConnectionState,
    WorkspaceClient,
    WorkspaceRequestError,
    parse_sse_lines,
)

BASE_URL = "http://dench.test"
TREE_BODY = {"tree": [{"name": "a.md", "path": "a.md", "type": "document"}], "exists": True}
CONNECTED = b"event: connected\ndata: {}\n\n"


def _change_frame(path: str) -> bytes:
    return f'event: change\ndata: {{"type": "change", "path": "{path}"}}\n\n'.encode()


async def _lines(*lines):
    for line in lines:
        yield line


async def _wait_until(predicate, timeout: float = 2.0):
    """轮询等待条件成立。"""
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.005)


class FakeServer:
    """MockTransport 处理器：记录请求次数，按脚本返回 watch 响应。"""

    def __init__(self, watch_responses):
        self.watch_responses = list(watch_responses)
        self.tree_requests = 0
        self.watch_requests = 0

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if request.url.path == "/api/workspace/tree":
            self.tree_requests += 1
            return httpx.Response(200, json=TREE_BODY)
        if request.url.path == "/api/workspace/watch":
            self.watch_requests += 1
            status, body = self.watch_responses.pop(0) if self.watch_responses else (503, b"")
            return httpx.Response(status, content=body, headers={"Content-Type": "text/event-stream"})
        return httpx.Response(404)


def _client(server, **config_overrides) -> ChangeStreamClient:
    backoff = config_overrides.pop("backoff", BackoffPolicy(0.01, 0.3))
    config = ClientSettings(
        base_url=BASE_URL,
        **{"poll_interval_seconds": 60, "change_debounce_ms": 50, **config_overrides},
    )
    http = httpx.AsyncClient(transport=httpx.MockTransport(server))
    return ChangeStreamClient(http_client=http, config=config, backoff=backoff)


class TestBackoffPolicy:
    """测试指数退避。"""

    def test_doubles_resets_and_caps(self):
        """1s 起步翻倍，reset 后回到 1s，不超过上限。"""
        policy = BackoffPolicy(1.0, 30.0)
        assert [policy.next_delay() for _ in range(3)] == [1.0, 2.0, 4.0]
        policy.reset()
        assert policy.next_delay() == 1.0

        policy = BackoffPolicy(1.0, 30.0)
        delays = [policy.next_delay() for _ in range(8)]
        assert delays[-3:] == [30.0, 30.0, 30.0]
        assert max(delays) == 30.0


@pytest.mark.asyncio
class TestParseSSE:
    """测试 SSE 行解析。"""

    async def test_events_comments_and_multiline_data(self):
        """注释被丢弃；空行分发事件；多行 data 用换行拼接。"""
        messages = [
            m
            async for m in parse_sse_lines(
                _lines(
                    "event: connected",
                    "data: {}",
                    "",
                    ": heartbeat",
                    "",
                    "id: 7",
                    "event: change",
                    'data: {"type": "add",',
                    'data: "path": "x.md"}',
                    "",
                    "event: dangling",
                )
            )
        ]

        assert [m.event for m in messages] == ["connected", "change"]
        assert messages[0].payload() == {}
        assert messages[1].id == "7"
        assert messages[1].payload() == {"type": "add", "path": "x.md"}

    async def test_non_json_payload(self):
        """data 不是 JSON 时 payload 为 None。"""
        messages = [m async for m in parse_sse_lines(_lines("data: hello", ""))]
        assert messages[0].event == "message"
        assert messages[0].payload() is None


@pytest.mark.asyncio
class TestChangeStreamClient:
    """测试 ChangeStreamClient 的重连、轮询和防抖刷新。"""

    async def test_reconnect_delays_double_and_reset_on_connected(self):
        """连续失败退避 1x/2x/4x，收到 connected 后重置。"""
        server = FakeServer([(503, b""), (503, b""), (503, b""), (200, CONNECTED)])
        client = _client(server)

        await client.start()
        try:
            await _wait_until(lambda: len(client.reconnect_delays) >= 4)
        finally:
            await client.close()

        assert client.reconnect_delays[:4] == pytest.approx([0.01, 0.02, 0.04, 0.01])
        assert server.tree_requests == 1

    async def test_change_burst_triggers_single_refetch(self):
        """一次连接中的多个 change 事件只触发一次刷新。"""
        body = CONNECTED + _change_frame("a.md") + _change_frame("b.md") + _change_frame("c.md")
        server = FakeServer([(200, body)])
        trees = []
        client = _client(server, backoff=BackoffPolicy(60, 60))
        client.on_tree = lambda c: trees.append(list(c.tree))

        await client.start()
        try:
            await _wait_until(lambda: server.tree_requests >= 2)
            await asyncio.sleep(0.2)
            assert server.tree_requests == 2
            assert client.last_change == {"type": "change", "path": "c.md"}
            assert client.exists is True
            assert client.loading is False
            assert len(trees) == 2
        finally:
            await client.close()

    async def test_polls_while_stream_is_down(self):
        """stream 不可用时按间隔轮询目录树。"""
        server = FakeServer([])
        client = _client(server, poll_interval_seconds=0.02, backoff=BackoffPolicy(60, 60))

        await client.start()
        try:
            await _wait_until(lambda: server.tree_requests >= 3)
            assert client.polling
            assert client.state is ConnectionState.POLLING
        finally:
            await client.close()

    async def test_connected_stops_polling(self):
        """重连成功（connected）后停止轮询。"""

        class HangingStream(httpx.AsyncByteStream):
            async def __aiter__(self):
                yield CONNECTED
                await asyncio.Event().wait()

        calls = {"watch": 0}

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/api/workspace/tree":
                return httpx.Response(200, json=TREE_BODY)
            calls["watch"] += 1
            if calls["watch"] == 1:
                return httpx.Response(503)
            return httpx.Response(200, stream=HangingStream())

        config = ClientSettings(base_url=BASE_URL, poll_interval_seconds=60)
        http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        client = ChangeStreamClient(http_client=http, config=config, backoff=BackoffPolicy(0.01, 0.3))

        await client.start()
        try:
            await _wait_until(lambda: client.state is ConnectionState.OPEN)
            assert not client.polling
            assert client.backoff.current == 0.01
        finally:
            await client.close()

    async def test_close_clears_timers(self):
        """close 之后不再有任何定时器或后台任务。"""
        server = FakeServer([(200, CONNECTED + _change_frame("a.md"))])
        client = _client(server, change_debounce_ms=10_000, backoff=BackoffPolicy(60, 60))

        await client.start()
        await _wait_until(lambda: client.last_change is not None and client.polling)
        await client.close()

        assert client.state is ConnectionState.CLOSED
        assert client._reconnect_handle is None
        assert client._debounce_handle is None
        assert not client.polling
        assert client._stream_task is None
        assert server.tree_requests == 1


@pytest.mark.asyncio
class TestWorkspaceClient:
    """测试 WorkspaceClient 的请求格式与错误解析。"""

    async def test_request_body_and_result(self):
        """rename 使用 camelCase 字段。"""
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"ok": True, "oldPath": "a.txt", "newPath": "b.txt"})

        http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        async with WorkspaceClient(BASE_URL, http_client=http) as client:
            result = await client.rename("a.txt", "b.txt")

        assert seen == {"path": "/api/workspace/rename", "body": {"path": "a.txt", "newName": "b.txt"}}
        assert result["newPath"] == "b.txt"
        await http.aclose()

    async def test_error_detail_is_parsed(self):
        """失败响应解析为 WorkspaceRequestError(reason, message)。"""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                403, json={"detail": {"error": "Cannot delete system file", "reason": "SystemFileProtected"}}
            )

        http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        client = WorkspaceClient(BASE_URL, http_client=http)

        with pytest.raises(WorkspaceRequestError) as exc_info:
            await client.delete("workspace.duckdb")

        assert exc_info.value.status_code == 403
        assert exc_info.value.reason == "SystemFileProtected"
        assert exc_info.value.message == "Cannot delete system file"
        await http.aclose()

    async def test_against_app(self, configured_workspace):
        """通过 ASGITransport 直连 FastAPI 应用完成 mkdir/copy/tree。"""
        from dench_api.main import app

        http = httpx.AsyncClient(transport=httpx.ASGITransport(app=app))
        async with WorkspaceClient("http://testserver", http_client=http) as client:
            await client.mkdir("notes")
            await client.write_file("notes/today.md", "# Today")
            copied = await client.copy("notes/today.md")
            tree = await client.tree()

            with pytest.raises(WorkspaceRequestError) as exc_info:
                await client.rename("notes/missing.md", "x.md")

        assert copied["newPath"] == "notes/today copy.md"
        assert tree["exists"] is True
        assert exc_info.value.reason == "NotFound"
        assert (configured_workspace / "notes" / "today copy.md").read_text() == "# Today"
        await http.aclose()

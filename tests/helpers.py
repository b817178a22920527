# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#                  github.com/dedalus-labs/verse-mcp/LICENSE
# ==============================================================================

"""Shared fakes for transport tests."""

from __future__ import annotations

from collections.abc import Callable, Mapping
import json
from typing import Any

import anyio
from anyio.abc import TaskGroup
from starlette.types import Message, Receive, Scope, Send

from versemcp.server.transports import ChannelClosedError


INITIALIZE_BODY = json.dumps(
    {
        "jsonrpc": "2.0",
        "id": 1,
        "method": "initialize",
        "params": {
            "protocolVersion": "2025-06-18",
            "capabilities": {},
            "clientInfo": {"name": "tests", "version": "0"},
        },
    }
).encode()


class FakeWriter:
    """In-memory :class:`ResponseWriter`."""

    def __init__(self, headers: Mapping[str, str] | None = None, query: Mapping[str, str] | None = None) -> None:
        self.headers = dict(headers or {})
        self.query_params = dict(query or {})
        self.headers_sent = False
        self.status: int | None = None
        self.response_headers: dict[str, str] = {}
        self.chunks: list[bytes] = []
        self.ended = False
        self.broken = False

    @property
    def writable(self) -> bool:
        return not (self.ended or self.broken)

    @property
    def body(self) -> bytes:
        return b"".join(self.chunks)

    async def start(self, status: int = 200, headers: Mapping[str, str] | None = None) -> None:
        self.headers_sent = True
        self.status = status
        self.response_headers = dict(headers or {})

    async def write(self, data: bytes) -> None:
        if not self.writable:
            raise ChannelClosedError("closed")
        if not self.headers_sent:
            await self.start()
        self.chunks.append(data)

    async def end(self) -> None:
        self.ended = True


class FakeSession:
    """Session transport that answers every request with a canned response."""

    def __init__(
        self,
        session_id: str,
        *,
        status: int = 200,
        echo_session_id: bool = True,
        fail_before_start: bool = False,
        fail_after_start: bool = False,
    ) -> None:
        self.session_id = session_id
        self.status = status
        self.echo_session_id = echo_session_id
        self.fail_before_start = fail_before_start
        self.fail_after_start = fail_after_start
        self.requests: list[Scope] = []
        self.started = False
        self.close_calls = 0
        self._closed = False
        self._callbacks: list[Callable[[Any], Any]] = []

    @property
    def closed(self) -> bool:
        return self._closed

    def on_close(self, callback: Callable[[Any], Any]) -> None:
        self._callbacks.append(callback)

    async def start(self, task_group: TaskGroup) -> None:
        self.started = True

    async def handle_request(self, scope: Scope, receive: Receive, send: Send) -> None:
        self.requests.append(scope)
        if self.fail_before_start:
            raise RuntimeError("handshake exploded")
        headers = [(b"content-type", b"application/json")]
        if self.echo_session_id:
            headers.append((b"mcp-session-id", self.session_id.encode()))
        await send({"type": "http.response.start", "status": self.status, "headers": headers})
        if self.fail_after_start:
            raise RuntimeError("stream exploded")
        await send({"type": "http.response.body", "body": b"{}", "more_body": False})

    async def close(self) -> None:
        self.close_calls += 1
        self.simulate_close()

    def simulate_close(self) -> None:
        if self._closed:
            return
        self._closed = True
        for callback in self._callbacks:
            callback(self)


class SessionFactory:
    def __init__(self, **session_kwargs: Any) -> None:
        self.session_kwargs = session_kwargs
        self.sessions: list[FakeSession] = []

    def __call__(self, session_id: str) -> FakeSession:
        session = FakeSession(session_id, **self.session_kwargs)
        self.sessions.append(session)
        return session


class SendCollector:
    def __init__(self) -> None:
        self.messages: list[Message] = []

    async def __call__(self, message: Message) -> None:
        self.messages.append(message)

    @property
    def starts(self) -> list[Message]:
        return [m for m in self.messages if m["type"] == "http.response.start"]

    @property
    def status(self) -> int | None:
        starts = self.starts
        return starts[0]["status"] if starts else None

    @property
    def headers(self) -> dict[str, str]:
        starts = self.starts
        if not starts:
            return {}
        return {k.decode(): v.decode() for k, v in starts[0]["headers"]}

    @property
    def body(self) -> bytes:
        return b"".join(m.get("body", b"") for m in self.messages if m["type"] == "http.response.body")


def make_scope(
    method: str = "POST",
    path: str = "/mcp",
    *,
    headers: Mapping[str, str] | None = None,
    query: str = "",
) -> Scope:
    return {
        "type": "http",
        "asgi": {"version": "3.0"},
        "http_version": "1.1",
        "method": method,
        "scheme": "http",
        "path": path,
        "raw_path": path.encode(),
        "root_path": "",
        "query_string": query.encode(),
        "headers": [(k.lower().encode("latin-1"), v.encode("latin-1")) for k, v in (headers or {}).items()],
        "server": ("testserver", 80),
        "client": ("127.0.0.1", 50000),
    }


def body_receive(body: bytes = b"") -> Receive:
    """Receive callable that yields *body* once, then blocks like an idle connection."""
    sent = False

    async def receive() -> Message:
        nonlocal sent
        if not sent:
            sent = True
            return {"type": "http.request", "body": body, "more_body": False}
        await anyio.sleep_forever()
        raise AssertionError("unreachable")

    return receive


class DisconnectingReceive:
    """Receive callable that reports ``http.disconnect`` once :meth:`disconnect` is called."""

    def __init__(self) -> None:
        self._event = anyio.Event()

    def disconnect(self) -> None:
        self._event.set()

    async def __call__(self) -> Message:
        await self._event.wait()
        return {"type": "http.disconnect"}


async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    with anyio.fail_after(timeout):
        while not predicate():
            await anyio.sleep(0.01)

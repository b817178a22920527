# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#                  github.com/dedalus-labs/verse-mcp/LICENSE
# ==============================================================================

"""Narrow response surface shared by the HTTP transports.

Transport logic only ever needs to read request headers and query parameters,
write bytes, finish the response and ask whether the connection can still be
written to. :class:`ResponseWriter` captures exactly that so the session and
event-stream code stays independent of the web framework.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Protocol

import anyio
from starlette.datastructures import Headers, QueryParams


if TYPE_CHECKING:
    from starlette.types import Message, Scope, Send


class ChannelClosedError(ConnectionError):
    """Raised when writing to a response that is finished or whose peer is gone."""


class ResponseWriter(Protocol):
    @property
    def headers(self) -> Mapping[str, str]: ...

    @property
    def query_params(self) -> Mapping[str, str]: ...

    @property
    def headers_sent(self) -> bool: ...

    @property
    def writable(self) -> bool: ...

    async def start(self, status: int = 200, headers: Mapping[str, str] | None = None) -> None: ...

    async def write(self, data: bytes) -> None: ...

    async def end(self) -> None: ...


class ASGIResponseWriter:
    """:class:`ResponseWriter` over a raw ASGI ``send`` callable."""

    def __init__(self, scope: Scope, send: Send) -> None:
        self._send = send
        self._headers = Headers(scope=scope)
        self._query_params = QueryParams(scope.get("query_string", b""))
        self._started = False
        self._finished = False
        self._broken = False

    @property
    def headers(self) -> Headers:
        return self._headers

    @property
    def query_params(self) -> QueryParams:
        return self._query_params

    @property
    def headers_sent(self) -> bool:
        return self._started

    @property
    def writable(self) -> bool:
        return not (self._finished or self._broken)

    def mark_disconnected(self) -> None:
        self._broken = True

    async def start(self, status: int = 200, headers: Mapping[str, str] | None = None) -> None:
        if self._started:
            raise RuntimeError("Response already started")
        raw = [(key.lower().encode("latin-1"), value.encode("latin-1")) for key, value in (headers or {}).items()]
        self._started = True
        await self._emit({"type": "http.response.start", "status": status, "headers": raw})

    async def write(self, data: bytes) -> None:
        if not self.writable:
            raise ChannelClosedError("Response is no longer writable")
        if not self._started:
            await self.start()
        await self._emit({"type": "http.response.body", "body": data, "more_body": True})

    async def end(self) -> None:
        if not self.writable:
            return
        if not self._started:
            await self.start()
        self._finished = True
        await self._emit({"type": "http.response.body", "body": b"", "more_body": False})

    async def _emit(self, message: Message) -> None:
        try:
            await self._send(message)
        except (OSError, anyio.ClosedResourceError, anyio.BrokenResourceError) as exc:
            self._broken = True
            raise ChannelClosedError(str(exc) or "Connection lost") from exc


StartObserver = Callable[[int, Headers], None]


class SendRecorder:
    """Wrap an ASGI ``send`` and remember whether the response has started."""

    def __init__(self, send: Send, *, on_start: StartObserver | None = None) -> None:
        self._send = send
        self._on_start = on_start
        self.headers_sent = False
        self.status: int | None = None
        self.response_headers: Headers | None = None

    async def __call__(self, message: Message) -> None:
        if message["type"] == "http.response.start":
            self.headers_sent = True
            self.status = int(message["status"])
            raw = [(bytes(key), bytes(value)) for key, value in message.get("headers", [])]
            self.response_headers = Headers(raw=raw)
            if self._on_start is not None:
                self._on_start(self.status, self.response_headers)
        await self._send(message)


__all__ = ["ASGIResponseWriter", "ChannelClosedError", "ResponseWriter", "SendRecorder"]

# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#                  github.com/dedalus-labs/verse-mcp/LICENSE
# ==============================================================================

"""Session-oriented (Streamable HTTP) conversations.

Each :class:`StreamableSession` owns one SDK ``StreamableHTTPServerTransport``
and the background task running the protocol loop over it. The manager only
sees the :class:`SessionTransport` surface, which keeps routing testable
without a real protocol stack behind it.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any, Protocol

import anyio
from anyio.abc import TaskGroup, TaskStatus
from mcp.server.streamable_http import MCP_SESSION_ID_HEADER, StreamableHTTPServerTransport
from mcp.server.transport_security import TransportSecuritySettings

from ...utils import get_logger


if TYPE_CHECKING:
    from mcp.server.lowlevel.server import Server
    from starlette.types import Receive, Scope, Send


_logger = get_logger("versemcp.transports.streamable")

CloseCallback = Callable[["SessionTransport"], Any]


class SessionTransport(Protocol):
    session_id: str

    @property
    def closed(self) -> bool: ...

    def on_close(self, callback: CloseCallback) -> None: ...

    async def start(self, task_group: TaskGroup) -> None: ...

    async def handle_request(self, scope: Scope, receive: Receive, send: Send) -> None: ...

    async def close(self) -> None: ...


class StreamableSession:
    """One session-oriented conversation bound to a server-issued identifier."""

    def __init__(
        self,
        server: Server[Any, Any],
        session_id: str,
        *,
        json_response: bool = False,
        security_settings: TransportSecuritySettings | None = None,
    ) -> None:
        self.session_id = session_id
        self._server = server
        self._transport = StreamableHTTPServerTransport(
            mcp_session_id=session_id,
            is_json_response_enabled=json_response,
            event_store=None,
            security_settings=security_settings,
        )
        self._callbacks: list[CloseCallback] = []
        self._closed = False
        self._scope: anyio.CancelScope | None = None

    @property
    def closed(self) -> bool:
        return self._closed or self._transport.is_terminated

    def on_close(self, callback: CloseCallback) -> None:
        if self._closed:
            callback(self)
        else:
            self._callbacks.append(callback)

    async def start(self, task_group: TaskGroup) -> None:
        """Start the protocol loop; returns once the transport streams are connected."""
        await task_group.start(self._run)

    async def handle_request(self, scope: Scope, receive: Receive, send: Send) -> None:
        await self._transport.handle_request(scope, receive, send)

    async def close(self) -> None:
        if not self._transport.is_terminated:
            await self._transport.terminate()
        if self._scope is not None:
            self._scope.cancel()
        self._mark_closed()

    async def _run(self, *, task_status: TaskStatus[None] = anyio.TASK_STATUS_IGNORED) -> None:
        with anyio.CancelScope() as scope:
            self._scope = scope
            try:
                async with self._transport.connect() as (read_stream, write_stream):
                    task_status.started()
                    await self._server.run(
                        read_stream,
                        write_stream,
                        self._server.create_initialization_options(),
                        stateless=False,
                    )
            except Exception:
                _logger.exception("Session %s crashed", self.session_id)
            finally:
                self._mark_closed()

    def _mark_closed(self) -> None:
        if self._closed:
            return
        self._closed = True
        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            callback(self)


__all__ = ["MCP_SESSION_ID_HEADER", "SessionTransport", "StreamableSession"]

# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#                  github.com/dedalus-labs/verse-mcp/LICENSE
# ==============================================================================

"""Single-endpoint manager for session-oriented and legacy event-stream clients.

Routing policy for the shared MCP endpoint, in priority order:

1. ``Accept`` includes ``text/event-stream`` and there is no ``mcp-session-id``
   header: a ``GET`` opens a legacy event-stream channel. A request that
   accepts JSON as well is a session-oriented handshake and falls through to
   rule 3; anything else is rejected with 405.
2. The ``mcp-session-id`` header names an open session: the request is routed
   to that session's transport.
3. Otherwise a new session is created. It enters the session table only once
   its handshake response has gone out carrying the new identifier.

Posted side-channel frames for legacy channels arrive through
:meth:`SessionTransportManager.handle_post_message`.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
import enum
from typing import TYPE_CHECKING, Any
from uuid import uuid4

import anyio
from anyio.abc import TaskGroup
from mcp.server.transport_security import TransportSecuritySettings
from starlette.datastructures import Headers
from starlette.requests import Request
from starlette.responses import JSONResponse, PlainTextResponse, Response

from .event_stream import DEFAULT_KEEPALIVE_INTERVAL, EventStreamChannel, PostOutcome
from .registry import ConnectionRegistry, SessionNotFoundError
from .response import ASGIResponseWriter, SendRecorder
from .streamable import MCP_SESSION_ID_HEADER, SessionTransport, StreamableSession
from ...utils import get_logger


if TYPE_CHECKING:
    from mcp.server.lowlevel.server import Server
    from starlette.types import Receive, Scope, Send


_logger = get_logger("versemcp.transports.manager")

SESSION_QUERY_PARAM = "sessionId"
EVENT_STREAM_MEDIA_TYPE = "text/event-stream"
JSON_MEDIA_TYPE = "application/json"

SessionFactory = Callable[[str], SessionTransport]


class RequestKind(enum.Enum):
    OPEN_EVENT_STREAM = "open-event-stream"
    EXISTING_SESSION = "existing-session"
    NEW_SESSION = "new-session"
    STREAM_METHOD_NOT_ALLOWED = "stream-method-not-allowed"


def classify_request(method: str, headers: Headers, registry: ConnectionRegistry) -> RequestKind:
    """Decide how a request on the shared endpoint is handled."""
    session_id = headers.get(MCP_SESSION_ID_HEADER)
    accept = headers.get("accept", "").lower()

    if not session_id and EVENT_STREAM_MEDIA_TYPE in accept:
        if method.upper() == "GET":
            return RequestKind.OPEN_EVENT_STREAM
        if JSON_MEDIA_TYPE not in accept:
            return RequestKind.STREAM_METHOD_NOT_ALLOWED

    if session_id and registry.get_session(session_id) is not None:
        return RequestKind.EXISTING_SESSION
    return RequestKind.NEW_SESSION


class SessionTransportManager:
    """Own the session and channel tables for one HTTP endpoint.

    Must be used inside :meth:`run`, which provides the task group hosting the
    session protocol loops. ``run`` can be entered only once per instance.
    """

    def __init__(
        self,
        server: Server[Any, Any],
        *,
        messages_path: str,
        security_settings: TransportSecuritySettings | None = None,
        json_response: bool = False,
        keepalive_interval: float = DEFAULT_KEEPALIVE_INTERVAL,
        registry: ConnectionRegistry | None = None,
        session_factory: SessionFactory | None = None,
    ) -> None:
        self._server = server
        self.messages_path = messages_path
        self.security_settings = security_settings
        self.json_response = json_response
        self.keepalive_interval = keepalive_interval
        self.registry = registry if registry is not None else ConnectionRegistry()
        self._session_factory = session_factory or self._default_session_factory
        self._task_group: TaskGroup | None = None
        self._run_entered = False

    def _default_session_factory(self, session_id: str) -> SessionTransport:
        return StreamableSession(
            self._server,
            session_id,
            json_response=self.json_response,
            security_settings=self.security_settings,
        )

    @asynccontextmanager
    async def run(self) -> AsyncIterator[None]:
        if self._run_entered:
            raise RuntimeError("SessionTransportManager.run() can only be entered once per instance")
        self._run_entered = True

        async with anyio.create_task_group() as tg:
            self._task_group = tg
            _logger.debug("Session transport manager started")
            try:
                yield
            finally:
                for channel in list(self.registry.channels.values()):
                    channel.close("server shutdown")
                tg.cancel_scope.cancel()
                self._task_group = None
                _logger.debug("Session transport manager stopped")

    # ------------------------------------------------------------------
    # Shared endpoint
    # ------------------------------------------------------------------

    async def handle_request(self, scope: Scope, receive: Receive, send: Send) -> None:
        task_group = self._task_group
        if task_group is None:
            raise RuntimeError("Task group is not initialized. Make sure to use run().")

        recorder = SendRecorder(send)
        try:
            await self._dispatch(scope, receive, recorder, task_group)
        except Exception:
            if recorder.headers_sent:
                _logger.exception("Request failed after the response started; dropping the error")
                return
            _logger.exception("Request failed before the response started")
            response = JSONResponse({"error": "Internal server error"}, status_code=500)
            await response(scope, receive, send)

    async def _dispatch(self, scope: Scope, receive: Receive, send: SendRecorder, task_group: TaskGroup) -> None:
        headers = Headers(scope=scope)
        kind = classify_request(scope["method"], headers, self.registry)

        if kind is RequestKind.EXISTING_SESSION:
            session = self.registry.get_session(headers[MCP_SESSION_ID_HEADER])
            if session is not None:
                await session.handle_request(scope, receive, send)
                return
            kind = RequestKind.NEW_SESSION

        if kind is RequestKind.OPEN_EVENT_STREAM:
            await self._open_event_stream(scope, receive, send)
        elif kind is RequestKind.STREAM_METHOD_NOT_ALLOWED:
            response = PlainTextResponse(
                "Event streams must be opened with GET",
                status_code=405,
                headers={"Allow": "GET"},
            )
            await response(scope, receive, send)
        else:
            await self._open_session(scope, receive, send, task_group)

    def _new_id(self) -> str:
        while True:
            candidate = uuid4().hex
            if candidate not in self.registry.sessions and candidate not in self.registry.channels:
                return candidate

    async def _open_session(self, scope: Scope, receive: Receive, send: Send, task_group: TaskGroup) -> None:
        session_id = self._new_id()
        session = self._session_factory(session_id)

        def on_start(status: int, response_headers: Headers) -> None:
            if not 200 <= status < 300 or session.closed:
                return
            if response_headers.get(MCP_SESSION_ID_HEADER) != session_id:
                return
            self.registry.add_session(session_id, session)
            session.on_close(self._forget_session)
            _logger.info("Session %s registered", session_id)

        await session.start(task_group)
        try:
            await session.handle_request(scope, receive, SendRecorder(send, on_start=on_start))
        finally:
            if self.registry.get_session(session_id) is not session:
                _logger.debug("Session %s never completed its handshake", session_id)
                await session.close()

    def _forget_session(self, session: SessionTransport) -> None:
        if self.registry.remove_session(session.session_id, session):
            _logger.info("Session %s closed", session.session_id)

    async def _open_event_stream(self, scope: Scope, receive: Receive, send: Send) -> None:
        channel_id = self._new_id()
        channel = EventStreamChannel(
            channel_id,
            ASGIResponseWriter(scope, send),
            messages_path=self.messages_path,
            registry=self.registry,
            keepalive_interval=self.keepalive_interval,
        )
        self.registry.add_channel(channel_id, channel)
        _logger.info("Event-stream channel %s opened", channel_id)
        await channel.serve(self._server, receive)

    # ------------------------------------------------------------------
    # Side channel
    # ------------------------------------------------------------------

    async def post_message(self, channel_id: str | None, body: bytes) -> PostOutcome:
        """Deliver *body* into the channel named *channel_id*."""
        try:
            channel = self.registry.require_channel(channel_id)
        except SessionNotFoundError:
            _logger.debug("Posted frame for unknown channel %r", channel_id)
            return PostOutcome.not_found()
        return await channel.post_message(body)

    async def handle_post_message(self, scope: Scope, receive: Receive, send: Send) -> None:
        request = Request(scope, receive)
        channel_id = request.query_params.get(SESSION_QUERY_PARAM)
        body = await request.body()
        outcome = await self.post_message(channel_id, body)

        response: Response
        if not outcome.found:
            response = JSONResponse({"error": "Session not found"}, status_code=404)
        else:
            response = PlainTextResponse(outcome.detail, status_code=outcome.status_code)
        await response(scope, receive, send)


__all__ = [
    "RequestKind",
    "SESSION_QUERY_PARAM",
    "SessionTransportManager",
    "classify_request",
]

# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#                  github.com/dedalus-labs/verse-mcp/LICENSE
# ==============================================================================

"""Legacy event-stream (SSE) channel.

A channel is a long-lived ``GET`` response that only carries server-to-client
frames. Clients deliver their frames out of band by posting to the advertised
messages endpoint with the channel id as ``sessionId``.

Teardown can be triggered from three places: the protocol loop ending (the
transport closed), the peer disconnecting, or the keep-alive timer finding the
response no longer writable. They race, so :meth:`EventStreamChannel.close`
walks an ``OPEN -> CLOSING -> CLOSED`` state machine and only the first caller
does any work.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from contextlib import suppress
from dataclasses import dataclass
import enum
from typing import TYPE_CHECKING, Any, Final

import anyio
from mcp import types
from mcp.shared.message import SessionMessage
from pydantic import ValidationError

from .response import ChannelClosedError, ResponseWriter
from ...utils import get_logger


if TYPE_CHECKING:
    from mcp.server.lowlevel.server import Server
    from starlette.types import Receive

    from .registry import ConnectionRegistry


KEEPALIVE_LINE: Final[bytes] = b":heartbeat\n\n"
DEFAULT_KEEPALIVE_INTERVAL: Final[float] = 30.0
SSE_HEADERS: Final[Mapping[str, str]] = {
    "content-type": "text/event-stream",
    "cache-control": "no-cache",
    "connection": "keep-alive",
    "x-accel-buffering": "no",
}

_logger = get_logger("versemcp.transports.sse")


def format_event(event: str, data: str) -> bytes:
    """Encode one SSE event; multi-line data is split across ``data:`` fields."""
    lines = data.splitlines() or [""]
    body = "".join(f"data: {line}\n" for line in lines)
    return f"event: {event}\n{body}\n".encode()


class ChannelState(enum.Enum):
    OPEN = "open"
    CLOSING = "closing"
    CLOSED = "closed"


@dataclass(frozen=True, slots=True)
class PostOutcome:
    """Result of delivering a posted frame into a channel."""

    status_code: int
    detail: str

    @classmethod
    def not_found(cls) -> PostOutcome:
        return cls(404, "Session not found")

    @property
    def found(self) -> bool:
        return self.status_code != 404


class KeepAliveTimer:
    """Write :data:`KEEPALIVE_LINE` every *interval* seconds while the response is writable.

    When the response stops being writable the timer calls ``on_expired`` and
    stops by itself. :meth:`cancel` is idempotent and safe before :meth:`run`
    has started.
    """

    def __init__(self, writer: ResponseWriter, interval: float = DEFAULT_KEEPALIVE_INTERVAL) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self._writer = writer
        self._interval = interval
        self._scope = anyio.CancelScope()
        self._cancelled = False

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    async def run(self, on_expired: Callable[[], Any]) -> None:
        with self._scope:
            while True:
                await anyio.sleep(self._interval)
                if not self._writer.writable:
                    on_expired()
                    return
                try:
                    await self._writer.write(KEEPALIVE_LINE)
                except ChannelClosedError:
                    on_expired()
                    return

    def cancel(self) -> bool:
        """Stop the timer. Returns ``False`` when it was already stopped."""
        if self._cancelled:
            return False
        self._cancelled = True
        self._scope.cancel()
        return True


class EventStreamChannel:
    """One open legacy event-stream connection and its protocol conversation."""

    def __init__(
        self,
        channel_id: str,
        writer: ResponseWriter,
        *,
        messages_path: str,
        registry: ConnectionRegistry,
        keepalive_interval: float = DEFAULT_KEEPALIVE_INTERVAL,
        keepalive: KeepAliveTimer | None = None,
    ) -> None:
        self.channel_id = channel_id
        self.endpoint = f"{messages_path}?sessionId={channel_id}"
        self.keepalive = keepalive if keepalive is not None else KeepAliveTimer(writer, keepalive_interval)
        self._writer = writer
        self._registry = registry
        self._state = ChannelState.OPEN
        self._close_reason: str | None = None
        self._connection_lost = False
        self._finished = anyio.Event()
        self._inbound_send, self._inbound_recv = anyio.create_memory_object_stream[SessionMessage | Exception](0)
        self._outbound_send, self._outbound_recv = anyio.create_memory_object_stream[SessionMessage](0)

    @property
    def state(self) -> ChannelState:
        return self._state

    @property
    def is_open(self) -> bool:
        return self._state is ChannelState.OPEN

    @property
    def close_reason(self) -> str | None:
        return self._close_reason

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    def close(self, reason: str = "closed") -> bool:
        """Tear the channel down once. Later calls return ``False`` and do nothing."""
        if self._state is not ChannelState.OPEN:
            return False
        self._state = ChannelState.CLOSING
        self._close_reason = reason
        self.keepalive.cancel()
        self._registry.remove_channel(self.channel_id, self)
        self._inbound_send.close()
        self._state = ChannelState.CLOSED
        self._finished.set()
        _logger.info("Event-stream channel %s closed (%s)", self.channel_id, reason)
        return True

    def on_transport_close(self) -> None:
        self.close("transport closed")

    def on_connection_close(self) -> None:
        self._connection_lost = True
        self.close("connection closed")

    # ------------------------------------------------------------------
    # Serving
    # ------------------------------------------------------------------

    async def serve(self, server: Server[Any, Any], receive: Receive, *, raise_exceptions: bool = False) -> None:
        """Stream the channel until any teardown trigger fires."""
        try:
            await self._writer.start(200, SSE_HEADERS)
            await self._writer.write(format_event("endpoint", self.endpoint))
            async with anyio.create_task_group() as tg:
                tg.start_soon(self.keepalive.run, self.on_connection_close)
                tg.start_soon(self._pump_outbound)
                tg.start_soon(self._watch_disconnect, receive)
                tg.start_soon(self._run_protocol, server, raise_exceptions)
                await self._finished.wait()
                tg.cancel_scope.cancel()
        finally:
            self.close("stream finished")
            for stream in (self._inbound_send, self._inbound_recv, self._outbound_send, self._outbound_recv):
                stream.close()

        if not self._connection_lost and self._writer.writable:
            with suppress(ChannelClosedError):
                await self._writer.end()

    async def post_message(self, body: bytes) -> PostOutcome:
        """Deliver one client frame posted on the side channel."""
        if not self.is_open:
            return PostOutcome.not_found()

        try:
            message = types.JSONRPCMessage.model_validate_json(body)
        except ValidationError as exc:
            _logger.warning("Rejected malformed frame for channel %s: %s", self.channel_id, exc)
            return PostOutcome(400, "Could not parse message")

        try:
            await self._inbound_send.send(SessionMessage(message))
        except (anyio.ClosedResourceError, anyio.BrokenResourceError):
            return PostOutcome.not_found()
        return PostOutcome(202, "Accepted")

    async def _run_protocol(self, server: Server[Any, Any], raise_exceptions: bool) -> None:
        try:
            await server.run(
                self._inbound_recv,
                self._outbound_send,
                server.create_initialization_options(),
                raise_exceptions=raise_exceptions,
            )
        except Exception:
            _logger.exception("Protocol loop for channel %s failed", self.channel_id)
        finally:
            self.on_transport_close()

    async def _pump_outbound(self) -> None:
        async for message in self._outbound_recv:
            payload = message.message.model_dump_json(by_alias=True, exclude_none=True)
            try:
                await self._writer.write(format_event("message", payload))
            except ChannelClosedError:
                self.on_connection_close()
                return

    async def _watch_disconnect(self, receive: Receive) -> None:
        while True:
            message = await receive()
            if message["type"] == "http.disconnect":
                self.on_connection_close()
                return


__all__ = [
    "ChannelState",
    "EventStreamChannel",
    "KEEPALIVE_LINE",
    "KeepAliveTimer",
    "PostOutcome",
    "format_event",
]

# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#                  github.com/dedalus-labs/verse-mcp/LICENSE
# ==============================================================================

"""Tables of open sessions and event-stream channels.

One registry instance is owned by each :class:`SessionTransportManager` and
handed to the objects that need to deregister themselves. The two tables never
share keys: a session identifier is never looked up among channels or the
other way round.
"""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType
from typing import TYPE_CHECKING, Generic, TypeVar


if TYPE_CHECKING:
    from .event_stream import EventStreamChannel
    from .streamable import SessionTransport


class SessionNotFoundError(LookupError):
    """Raised when a request names a session or channel that is not open."""

    def __init__(self, session_id: str | None) -> None:
        super().__init__(f"Session not found: {session_id!r}")
        self.session_id = session_id


_T = TypeVar("_T")


class _Table(Generic[_T]):
    def __init__(self, kind: str) -> None:
        self._kind = kind
        self._entries: dict[str, _T] = {}

    def add(self, key: str, value: _T) -> None:
        current = self._entries.get(key)
        if current is not None and current is not value:
            raise ValueError(f"{self._kind} id {key!r} is already registered")
        self._entries[key] = value

    def get(self, key: str) -> _T | None:
        return self._entries.get(key)

    def remove(self, key: str, value: _T | None = None) -> bool:
        current = self._entries.get(key)
        if current is None or (value is not None and current is not value):
            return False
        del self._entries[key]
        return True

    def view(self) -> Mapping[str, _T]:
        return MappingProxyType(self._entries)


class ConnectionRegistry:
    """Session and channel tables keyed by their server-issued identifiers."""

    def __init__(self) -> None:
        self._sessions: _Table[SessionTransport] = _Table("Session")
        self._channels: _Table[EventStreamChannel] = _Table("Channel")

    @property
    def sessions(self) -> Mapping[str, SessionTransport]:
        return self._sessions.view()

    @property
    def channels(self) -> Mapping[str, EventStreamChannel]:
        return self._channels.view()

    def add_session(self, session_id: str, transport: SessionTransport) -> None:
        self._sessions.add(session_id, transport)

    def get_session(self, session_id: str) -> SessionTransport | None:
        return self._sessions.get(session_id)

    def remove_session(self, session_id: str, transport: SessionTransport | None = None) -> bool:
        """Drop *session_id*; with *transport* given, only if it is still the registered one."""
        return self._sessions.remove(session_id, transport)

    def add_channel(self, channel_id: str, channel: EventStreamChannel) -> None:
        self._channels.add(channel_id, channel)

    def get_channel(self, channel_id: str) -> EventStreamChannel | None:
        return self._channels.get(channel_id)

    def require_channel(self, channel_id: str | None) -> EventStreamChannel:
        channel = self._channels.get(channel_id) if channel_id else None
        if channel is None:
            raise SessionNotFoundError(channel_id)
        return channel

    def remove_channel(self, channel_id: str, channel: EventStreamChannel | None = None) -> bool:
        return self._channels.remove(channel_id, channel)


__all__ = ["ConnectionRegistry", "SessionNotFoundError"]

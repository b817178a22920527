# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#                  github.com/dedalus-labs/verse-mcp/LICENSE
# ==============================================================================

"""Transport implementations for :mod:`versemcp.server`."""

from __future__ import annotations

from ._asgi import ASGIRunConfig, ASGITransportBase, SessionManagerHandler, SideChannelHandler
from .base import BaseTransport, TransportFactory
from .event_stream import ChannelState, EventStreamChannel, KeepAliveTimer, PostOutcome
from .http import HTTPTransport
from .manager import RequestKind, SessionTransportManager, classify_request
from .registry import ConnectionRegistry, SessionNotFoundError
from .response import ASGIResponseWriter, ChannelClosedError, ResponseWriter, SendRecorder
from .stdio import StdioTransport, get_stdio_server
from .streamable import SessionTransport, StreamableSession


__all__ = [
    "ASGIResponseWriter",
    "ASGIRunConfig",
    "ASGITransportBase",
    "BaseTransport",
    "ChannelClosedError",
    "ChannelState",
    "ConnectionRegistry",
    "EventStreamChannel",
    "HTTPTransport",
    "KeepAliveTimer",
    "PostOutcome",
    "RequestKind",
    "ResponseWriter",
    "SendRecorder",
    "SessionManagerHandler",
    "SessionNotFoundError",
    "SessionTransport",
    "SessionTransportManager",
    "SideChannelHandler",
    "StdioTransport",
    "StreamableSession",
    "TransportFactory",
    "classify_request",
    "get_stdio_server",
]

# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#                  github.com/dedalus-labs/verse-mcp/LICENSE
# ==============================================================================

"""HTTP transport: Streamable HTTP sessions and legacy SSE channels on one endpoint."""

from __future__ import annotations

from typing import TYPE_CHECKING

from mcp.server.transport_security import TransportSecuritySettings
from starlette.routing import Route

from ._asgi import ASGITransportBase, SessionManagerHandler, SideChannelHandler
from .manager import SessionTransportManager


if TYPE_CHECKING:
    from collections.abc import Iterable

    from starlette.routing import BaseRoute

    from ..core import MCPServer


class HTTPTransport(ASGITransportBase):
    """Serve an :class:`versemcp.server.MCPServer` over HTTP."""

    TRANSPORT = ("http", "HTTP (Streamable HTTP + SSE)", "streamable-http", "sse", "shttp")

    def __init__(
        self,
        server: MCPServer,
        *,
        security_settings: TransportSecuritySettings | None = None,
        json_response: bool = False,
    ) -> None:
        super().__init__(server, security_settings=security_settings, json_response=json_response)

    def _build_session_manager(self) -> SessionTransportManager:
        security = self.security_settings
        if security is not None and not isinstance(security, TransportSecuritySettings):
            security = TransportSecuritySettings.model_validate(security)

        settings = self.server.settings
        return SessionTransportManager(
            self.server,
            messages_path=settings.messages_path,
            security_settings=security,
            json_response=self.json_response,
            keepalive_interval=settings.keepalive_interval,
        )

    def _build_routes(
        self, *, path: str, handler: SessionManagerHandler, manager: SessionTransportManager
    ) -> Iterable[BaseRoute]:
        settings = self.server.settings
        side_channel = SideChannelHandler(manager)
        message_paths = dict.fromkeys([f"{path.rstrip('/')}/messages", settings.messages_path])

        routes: list[BaseRoute] = [Route(path, handler)]
        routes.extend(Route(message_path, side_channel, methods=["POST"]) for message_path in message_paths)
        routes.extend(self.server.http_routes)
        return routes


__all__ = ["HTTPTransport"]

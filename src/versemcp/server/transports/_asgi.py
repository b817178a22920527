# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#                  github.com/dedalus-labs/verse-mcp/LICENSE
# ==============================================================================

"""Shared ASGI transport primitives.

This module provides reusable building blocks for transports that expose an
``MCPServer`` over an ASGI-compatible surface. Concrete subclasses supply the
session manager and route configuration while this base class handles the
lifespan hook, CORS, and startup of the uvicorn runtime.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Callable, Iterable, Sequence  # noqa: TC003
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol

from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware
from uvicorn import Config, Server

from .base import BaseTransport
from ...utils import get_logger


if TYPE_CHECKING:
    from starlette.types import Receive, Scope, Send

    from ..core import MCPServer


_logger = get_logger("versemcp.transports.asgi")


@dataclass(slots=True)
class ASGIRunConfig:
    """Listening parameters for :meth:`ASGITransportBase.run`."""

    host: str = "127.0.0.1"
    port: int = 8000
    path: str = "/mcp"
    log_level: str = "info"
    uvicorn_options: dict[str, Any] = field(default_factory=dict)


class SessionManagerProtocol(Protocol):
    """Minimal contract required of an endpoint session manager."""

    async def handle_request(self, scope: Scope, receive: Receive, send: Send) -> None: ...

    async def handle_post_message(self, scope: Scope, receive: Receive, send: Send) -> None: ...

    def run(self) -> AbstractAsyncContextManager[None]: ...


@dataclass(slots=True)
class SessionManagerHandler:
    """ASGI adapter that connects the session manager to the runtime."""

    session_manager: SessionManagerProtocol
    transport_label: str
    allowed_scopes: tuple[str, ...]

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        scope_type = scope.get("type")
        if scope_type not in self.allowed_scopes:
            allowed = ", ".join(self.allowed_scopes)
            message = f"{self.transport_label} only handles ASGI scopes: {allowed} (got {scope_type!r})."
            raise TypeError(message)

        await self.session_manager.handle_request(scope, receive, send)

    def lifespan(self) -> Callable[[Starlette], AbstractAsyncContextManager[None]]:
        """Return an ASGI lifespan hook bound to the session manager."""

        @asynccontextmanager
        async def _lifespan(_app: Starlette) -> AsyncIterator[None]:
            async with self.session_manager.run():
                yield

        return _lifespan


@dataclass(slots=True)
class SideChannelHandler:
    """ASGI adapter for frames posted to legacy event-stream channels."""

    session_manager: SessionManagerProtocol

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        await self.session_manager.handle_post_message(scope, receive, send)


class ASGITransportBase(BaseTransport, ABC):
    """Template for transports that present an :class:`MCPServer` via ASGI."""

    ALLOWED_SCOPES: tuple[str, ...] = ("http",)
    DEFAULT_HOST: str = "127.0.0.1"
    DEFAULT_PORT: int = 8000
    DEFAULT_PATH: str = "/mcp"
    DEFAULT_LOG_LEVEL: str = "info"
    CORS_ALLOW_METHODS: Sequence[str] = ("GET", "POST", "OPTIONS")
    CORS_ALLOW_HEADERS: Sequence[str] = ("Content-Type", "Authorization", "mcp-session-id")
    CORS_EXPOSE_HEADERS: Sequence[str] = ("mcp-session-id",)

    def __init__(
        self,
        server: MCPServer,
        *,
        security_settings: object | None = None,
        json_response: bool = False,
    ) -> None:
        super().__init__(server)
        self._security_settings = security_settings
        self._json_response = json_response

    @property
    def security_settings(self) -> object | None:
        """Return the transport-specific security configuration, if any."""
        return self._security_settings

    @property
    def json_response(self) -> bool:
        return self._json_response

    async def run(
        self,
        *,
        host: str | None = None,
        port: int | None = None,
        path: str | None = None,
        log_level: str | None = None,
        **uvicorn_options: Any,
    ) -> None:
        config = ASGIRunConfig(
            host=host or self.DEFAULT_HOST,
            port=port or self.DEFAULT_PORT,
            path=path or self.DEFAULT_PATH,
            log_level=log_level or self.DEFAULT_LOG_LEVEL,
            uvicorn_options=uvicorn_options,
        )
        await self._serve(config)

    def build_app(self, path: str | None = None) -> Starlette:
        """Assemble the Starlette application without starting a server."""
        manager = self._build_session_manager()
        handler = self._build_handler(manager)
        routes = list(self._build_routes(path=path or self.DEFAULT_PATH, handler=handler, manager=manager))
        middleware = [
            Middleware(
                CORSMiddleware,
                allow_origins=["*"],
                allow_methods=list(self.CORS_ALLOW_METHODS),
                allow_headers=list(self.CORS_ALLOW_HEADERS),
                expose_headers=list(self.CORS_EXPOSE_HEADERS),
            )
        ]
        return Starlette(routes=routes, middleware=middleware, lifespan=handler.lifespan())

    async def _serve(self, config: ASGIRunConfig) -> None:
        app = self.build_app(config.path)
        _logger.info("Listening on http://%s:%d%s", config.host, config.port, config.path)
        uvicorn_config = Config(
            app=app,
            host=config.host,
            port=config.port,
            log_level=config.log_level,
            **config.uvicorn_options,
        )
        await Server(uvicorn_config).serve()

    def _build_handler(self, manager: SessionManagerProtocol) -> SessionManagerHandler:
        """Construct the default ASGI handler for the provided session manager."""
        return SessionManagerHandler(
            session_manager=manager,
            transport_label=self.transport_display_name,
            allowed_scopes=self.ALLOWED_SCOPES,
        )

    @abstractmethod
    def _build_session_manager(self) -> SessionManagerProtocol: ...

    @abstractmethod
    def _build_routes(
        self, *, path: str, handler: SessionManagerHandler, manager: SessionManagerProtocol
    ) -> Iterable[object]: ...


__all__ = ["ASGIRunConfig", "ASGITransportBase", "SessionManagerHandler", "SideChannelHandler"]

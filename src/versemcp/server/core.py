# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#                  github.com/dedalus-labs/verse-mcp/LICENSE
# ==============================================================================

"""Composable MCP server built on the reference SDK."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator, Sequence
from contextlib import contextmanager
import re
from typing import TYPE_CHECKING, Any

from mcp import types
from mcp.server.lowlevel.helper_types import ReadResourceContents
from mcp.server.lowlevel.server import Server
from mcp.server.transport_security import TransportSecuritySettings
from mcp.shared.exceptions import McpError
from starlette.routing import BaseRoute, Route

from .services import ResourcesService, ToolsService
from .transports import HTTPTransport, StdioTransport
from .transports.base import BaseTransport, TransportFactory
from ..config import Settings
from ..resource import ResourceSpec
from ..tool import ToolSpec
from ..tool import reset_active_server as reset_tool_server
from ..tool import set_active_server as set_tool_server
from ..utils import get_logger


if TYPE_CHECKING:  # pragma: no cover - typing only
    from starlette.requests import Request
    from starlette.responses import Response


_TOOL_NAME = re.compile(r"^[A-Za-z0-9_.-]{1,128}$")


class ServerValidationError(RuntimeError):
    """Raised when the server configuration violates MCP requirements."""


class MCPServer(Server[Any, Any]):
    """MCP server exposing registered tools and static resources.

    Tool and resource handlers are plain callables; the server wires them into
    the SDK's low-level request handlers and chooses a transport at
    :meth:`serve` time.
    """

    def __init__(
        self,
        name: str,
        *,
        version: str | None = None,
        instructions: str | None = None,
        transport: str | None = None,
        http_security: TransportSecuritySettings | None = None,
        settings: Settings | None = None,
    ) -> None:
        super().__init__(name, version=version, instructions=instructions)
        self._default_transport = transport.lower() if transport else "stdio"
        self._logger = get_logger(f"versemcp.server.{name}")
        self.settings = settings or Settings()

        self.tools: ToolsService = ToolsService(logger=self._logger)
        self.resources: ResourcesService = ResourcesService(logger=self._logger)

        self._http_security_settings = http_security
        self._http_routes: list[BaseRoute] = []

        self._transport_factories: dict[str, TransportFactory] = {}
        self.register_transport("stdio", lambda server: StdioTransport(server))
        http_factory = lambda server: HTTPTransport(server, security_settings=self._http_security_settings)
        self.register_transport("http", http_factory, aliases=("streamable-http", "streamable_http", "shttp", "sse"))

        # //////////////////////////////////////////////////////////////////
        # Register default handlers
        # //////////////////////////////////////////////////////////////////

        @self.list_resources()
        async def _list_resources() -> list[types.Resource]:
            return self.resources.list_resources()

        @self.read_resource()
        async def _read_resource(uri: types.AnyUrl) -> list[ReadResourceContents]:
            result = await self.resources.read(str(uri))
            converted: list[ReadResourceContents] = []
            for item in result.contents:
                if isinstance(item, types.TextResourceContents):
                    converted.append(ReadResourceContents(content=item.text, mime_type=item.mimeType))
                else:
                    raise TypeError(f"Unsupported resource content type: {type(item)!r}")
            return converted

        @self.list_tools()
        async def _list_tools() -> list[types.Tool]:
            return self.tools.list_tools()

        @self.call_tool(validate_input=False)
        async def _call_tool(name: str, arguments: dict[str, Any] | None) -> list[types.ContentBlock]:
            result = await self.tools.call_tool(name, arguments or {})
            if result.isError:
                message = "Tool execution failed"
                if result.content:
                    first = result.content[0]
                    if isinstance(first, types.TextContent) and first.text:
                        message = first.text
                raise McpError(types.ErrorData(code=types.INTERNAL_ERROR, message=message))
            return list(result.content)

    # //////////////////////////////////////////////////////////////////
    # Registration
    # //////////////////////////////////////////////////////////////////

    @property
    def tool_names(self) -> list[str]:
        return self.tools.tool_names

    @property
    def http_routes(self) -> list[BaseRoute]:
        return list(self._http_routes)

    @contextmanager
    def binding(self) -> Iterator[MCPServer]:
        """Register every ``@tool`` defined inside the block on this server."""
        token = set_tool_server(self)
        try:
            yield self
        finally:
            reset_tool_server(token)

    def register_tool(self, target: ToolSpec | Callable[..., Any]) -> ToolSpec:
        return self.tools.register(target)

    def register_resource(self, target: ResourceSpec) -> ResourceSpec:
        return self.resources.register(target)

    def add_http_route(
        self,
        path: str,
        endpoint: Callable[[Request], Any],
        *,
        methods: Sequence[str] = ("GET",),
        name: str | None = None,
    ) -> Callable[[Request], Response]:
        """Serve an extra Starlette endpoint next to the MCP endpoint in HTTP mode."""
        self._http_routes.append(Route(path, endpoint, methods=list(methods), name=name))
        return endpoint

    async def invoke_tool(self, name: str, **arguments: Any) -> types.CallToolResult:
        return await self.tools.call_tool(name, arguments)

    async def invoke_resource(self, uri: str) -> types.ReadResourceResult:
        return await self.resources.read(uri)

    # //////////////////////////////////////////////////////////////////
    # Transport registry
    # //////////////////////////////////////////////////////////////////

    def register_transport(self, name: str, factory: TransportFactory, *, aliases: Iterable[str] | None = None) -> None:
        canonical = name.lower()
        self._transport_factories[canonical] = factory
        for alias in aliases or ():
            self._transport_factories[alias.lower()] = factory

    def _transport_for_name(self, name: str) -> BaseTransport:
        factory = self._transport_factories.get(name.lower())
        if factory is None:
            raise ValueError(f"Unsupported transport '{name}'.")
        transport = factory(self)
        if not isinstance(transport, BaseTransport):
            raise TypeError("Transport factory must return a BaseTransport instance")
        return transport

    # //////////////////////////////////////////////////////////////////
    # Serving
    # //////////////////////////////////////////////////////////////////

    async def serve(
        self,
        *,
        transport: str | None = None,
        validate: bool = True,
        host: str | None = None,
        port: int | None = None,
        log_level: str = "info",
        raise_exceptions: bool = False,
        **uvicorn_options: Any,
    ) -> None:
        """Run the server until its transport stops.

        ``stdio`` takes over the process's standard streams; ``http`` listens on
        *host*:*port* and serves both session-oriented and event-stream clients
        on the configured MCP path.
        """
        selected = (transport or self._default_transport).lower()
        if validate:
            self.validate()

        transport_instance = self._transport_for_name(selected)
        self._logger.info("Serving %s via %s transport", self.name, transport_instance.transport_display_name)

        if isinstance(transport_instance, StdioTransport):
            if uvicorn_options:
                unexpected = ", ".join(sorted(uvicorn_options))
                raise TypeError(f"Unsupported STDIO serve() parameters: {unexpected}")
            await transport_instance.run(raise_exceptions=raise_exceptions)
            return

        await transport_instance.run(
            host=host or self.settings.host,
            port=port,
            path=self.settings.mcp_path,
            log_level=log_level,
            **uvicorn_options,
        )

    # //////////////////////////////////////////////////////////////////
    # Validation
    # //////////////////////////////////////////////////////////////////

    def validate(self) -> None:
        """Check the registered tools and resources before serving."""
        errors: list[str] = []

        for name in self.tools.collisions:
            errors.append(f"Tool name {name!r} is registered by more than one handler.")
        for name in self.tools.tool_names:
            if not _TOOL_NAME.match(name):
                errors.append(f"Tool name {name!r} must be 1-128 characters of letters, digits, '_', '-' or '.'.")
        for uri in self.resources.uris:
            if "://" not in uri:
                errors.append(f"Resource URI {uri!r} is not absolute.")

        if errors:
            bullet_list = "\n - ".join(errors)
            raise ServerValidationError(f"MCPServer configuration is invalid:\n - {bullet_list}")


__all__ = ["MCPServer", "ServerValidationError"]

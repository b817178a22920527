# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#                  github.com/dedalus-labs/verse-mcp/LICENSE
# ==============================================================================

"""Tool registration utilities.

When an :class:`~versemcp.server.MCPServer` enters its
:meth:`binding <versemcp.server.MCPServer.binding>` context, functions
decorated with :func:`tool` are registered on it automatically.
"""

from __future__ import annotations

from collections.abc import Callable
from contextvars import ContextVar
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel


if TYPE_CHECKING:  # pragma: no cover - type-checking helpers only
    from .server import MCPServer

ToolFn = Callable[..., Any]


@dataclass(slots=True)
class ToolSpec:
    """In-memory representation of a tool definition.

    When ``input_model`` is set, incoming arguments are validated against it and
    the handler receives the model instance as its only argument.
    """

    name: str
    fn: ToolFn
    description: str = ""
    title: str | None = None
    input_model: type[BaseModel] | None = None
    annotations: dict[str, Any] | None = None


_TOOL_ATTR = "__versemcp_tool__"
_ACTIVE_SERVER: ContextVar[MCPServer | None] = ContextVar("_versemcp_active_server", default=None)


def get_active_server() -> MCPServer | None:
    """Return the server currently binding tool definitions, if any."""
    return _ACTIVE_SERVER.get()


def set_active_server(server: MCPServer) -> Any:
    return _ACTIVE_SERVER.set(server)


def reset_active_server(token: Any) -> None:
    _ACTIVE_SERVER.reset(token)


def tool(
    name: str | None = None,
    *,
    description: str | None = None,
    title: str | None = None,
    input_model: type[BaseModel] | None = None,
    annotations: dict[str, Any] | None = None,
) -> Callable[[ToolFn], ToolFn]:
    """Decorator that marks a callable as an MCP tool.

    The decorator attaches a :class:`ToolSpec` to the function and, if a server
    is actively binding, registers it immediately.
    """

    def decorator(fn: ToolFn) -> ToolFn:
        desc = (description if description is not None else (fn.__doc__ or "")).strip()
        spec = ToolSpec(
            name=name or fn.__name__ or "anonymous",
            fn=fn,
            description=desc,
            title=title,
            input_model=input_model,
            annotations=annotations,
        )
        setattr(fn, _TOOL_ATTR, spec)

        server = get_active_server()
        if server is not None:
            server.register_tool(spec)

        return fn

    return decorator


def extract_tool_spec(fn: ToolFn) -> ToolSpec | None:
    """Return the attached :class:`ToolSpec` for *fn*, if present."""
    spec = getattr(fn, _TOOL_ATTR, None)
    if not isinstance(spec, ToolSpec):
        return None
    return spec


__all__ = [
    "ToolFn",
    "ToolSpec",
    "extract_tool_spec",
    "get_active_server",
    "reset_active_server",
    "set_active_server",
    "tool",
]

# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#                  github.com/dedalus-labs/verse-mcp/LICENSE
# ==============================================================================

"""Shared transport primitives for :mod:`versemcp.server`.

Provides a minimal base class that custom transports can subclass and a factory
signature that ``MCPServer`` uses to instantiate transports lazily.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, ClassVar, Protocol, runtime_checkable


if TYPE_CHECKING:  # pragma: no cover - import cycle guard
    from ..core import MCPServer


class BaseTransport(ABC):
    """Common base for server transports.

    Subclasses receive the active :class:`MCPServer` instance so they can obtain
    initialization options or interact with server helpers. Implementations
    must define :meth:`run`, which accepts keyword arguments specific to the
    transport (e.g. a run config for HTTP or ``raise_exceptions`` for stdio).
    """

    TRANSPORT: ClassVar[tuple[str, ...]] = ("custom", "Custom transport")

    def __init__(self, server: MCPServer) -> None:
        self._server = server

    @property
    def server(self) -> MCPServer:
        """Return the owning :class:`MCPServer`."""
        return self._server

    @property
    def transport_display_name(self) -> str:
        names = self.TRANSPORT
        return names[1] if len(names) > 1 else names[0]

    @abstractmethod
    async def run(self, **kwargs) -> None:
        """Start the transport and block until it stops."""


@runtime_checkable
class TransportFactory(Protocol):
    """Callable that produces a configured transport for an ``MCPServer``."""

    def __call__(self, server: MCPServer) -> BaseTransport:  # pragma: no cover - protocol
        ...


__all__ = ["BaseTransport", "TransportFactory"]

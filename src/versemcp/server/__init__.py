# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#                  github.com/dedalus-labs/verse-mcp/LICENSE
# ==============================================================================

"""Server-side surface for verse-mcp.

The heavy lifting lives in :mod:`versemcp.server.core` and
:mod:`versemcp.server.transports`; this module re-exports what the application
layer imports.
"""

from __future__ import annotations

from .core import MCPServer, ServerValidationError


__all__ = ["MCPServer", "ServerValidationError"]

# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#                  github.com/dedalus-labs/verse-mcp/LICENSE
# ==============================================================================

"""Verse (UEFN) documentation MCP server."""

from __future__ import annotations

from .app import VerseApplication, create_application
from .config import Settings, package_version
from .fetch import FetchResult, PageCache, PageFetcher
from .search import find_query_snippets
from .server import MCPServer
from .tool import tool


__version__ = package_version()

__all__ = [
    "FetchResult",
    "MCPServer",
    "PageCache",
    "PageFetcher",
    "Settings",
    "VerseApplication",
    "__version__",
    "create_application",
    "find_query_snippets",
    "tool",
]

# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#                  github.com/dedalus-labs/verse-mcp/LICENSE
# ==============================================================================

"""Utility helpers for verse-mcp."""

from __future__ import annotations

import inspect
from typing import Any

from .logger import get_logger, setup_logger


async def maybe_await(value: Any) -> Any:
    """Await *value* when it is awaitable, otherwise return it unchanged."""
    if inspect.isawaitable(value):
        return await value
    return value


__all__ = ["get_logger", "maybe_await", "setup_logger"]

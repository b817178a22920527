# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#                  github.com/dedalus-labs/verse-mcp/LICENSE
# ==============================================================================

"""Resource definitions served through ``resources/list`` and ``resources/read``."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass


ResourceFn = Callable[[], Awaitable[str | bytes] | str | bytes]


@dataclass(slots=True)
class ResourceSpec:
    uri: str
    fn: ResourceFn
    name: str
    title: str | None = None
    description: str | None = None
    mime_type: str | None = None


__all__ = ["ResourceFn", "ResourceSpec"]

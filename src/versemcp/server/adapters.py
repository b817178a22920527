# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#                  github.com/dedalus-labs/verse-mcp/LICENSE
# ==============================================================================

"""Normalization helpers for handler results.

Tool and resource handlers return plain Python values; these adapters turn them
into the schema objects the protocol layer sends on the wire.
"""

from __future__ import annotations

import base64
from collections.abc import Iterable
import json
from typing import Any

from mcp import types


__all__ = ["error_result", "normalize_resource_payload", "normalize_tool_result"]


def error_result(message: str) -> types.CallToolResult:
    """Build an ``isError`` tool result carrying *message* as text."""
    return types.CallToolResult(content=[types.TextContent(type="text", text=message)], isError=True)


def normalize_tool_result(value: Any) -> types.CallToolResult:
    """Coerce arbitrary tool handler output into ``CallToolResult``."""

    if isinstance(value, types.CallToolResult):
        return value

    return types.CallToolResult(content=_coerce_content_blocks(value))


def _coerce_content_blocks(source: Any) -> list[types.ContentBlock]:
    if source is None:
        return []

    if isinstance(source, (types.TextContent, types.ImageContent, types.EmbeddedResource)):
        return [source]

    if isinstance(source, str):
        return [types.TextContent(type="text", text=source)]

    if isinstance(source, (bytes, bytearray)):
        encoded = base64.b64encode(bytes(source)).decode("ascii")
        return [types.TextContent(type="text", text=encoded)]

    if isinstance(source, dict):
        return [_as_text_content(source)]

    if isinstance(source, Iterable):
        blocks: list[types.ContentBlock] = []
        for item in source:
            blocks.extend(_coerce_content_blocks(item))
        return blocks

    return [_as_text_content(source)]


def _as_text_content(value: Any) -> types.TextContent:
    try:
        text = json.dumps(value, ensure_ascii=False)
    except (TypeError, ValueError):
        text = str(value)
    return types.TextContent(type="text", text=text)


def normalize_resource_payload(uri: str, declared_mime: str | None, payload: Any) -> types.ReadResourceResult:
    """Coerce resource handler output into ``ReadResourceResult``."""

    if isinstance(payload, types.ReadResourceResult):
        return payload

    if isinstance(payload, (bytes, bytearray)):
        mime = declared_mime or "application/octet-stream"
        encoded = base64.b64encode(bytes(payload)).decode("ascii")
        blob = types.BlobResourceContents(uri=uri, mimeType=mime, blob=encoded)
        return types.ReadResourceResult(contents=[blob])

    mime = declared_mime or "text/plain"
    return types.ReadResourceResult(contents=[types.TextResourceContents(uri=uri, mimeType=mime, text=str(payload))])

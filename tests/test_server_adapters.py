# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#                  github.com/dedalus-labs/verse-mcp/LICENSE
# ==============================================================================

from __future__ import annotations

import base64
from dataclasses import dataclass

from mcp import types

from versemcp.server.adapters import error_result, normalize_resource_payload, normalize_tool_result


def test_normalize_tool_result_from_string() -> None:
    result = normalize_tool_result("hello")
    assert isinstance(result, types.CallToolResult)
    assert not result.isError
    assert result.content[0].text == "hello"


def test_normalize_tool_result_passthrough() -> None:
    existing = types.CallToolResult(content=[types.TextContent(type="text", text="ok")])
    assert normalize_tool_result(existing) is existing


def test_normalize_tool_result_flattens_iterables() -> None:
    result = normalize_tool_result(["one", types.TextContent(type="text", text="two"), {"three": 3}])
    assert [block.text for block in result.content] == ["one", "two", '{"three": 3}']


def test_normalize_tool_result_none_is_empty() -> None:
    assert normalize_tool_result(None).content == []


def test_normalize_tool_result_unserializable_falls_back_to_str() -> None:
    @dataclass
    class Opaque:
        total: int

    output = normalize_tool_result(Opaque(total=5))
    assert output.content[0].text.endswith("Opaque(total=5)")


def test_error_result_marks_error() -> None:
    result = error_result("nope")
    assert result.isError
    assert result.content[0].text == "nope"


def test_normalize_resource_payload_bytes() -> None:
    data = b"\x00\x01demo"
    result = normalize_resource_payload("file:///demo.bin", "application/octet-stream", data)
    content = result.contents[0]
    assert isinstance(content, types.BlobResourceContents)
    assert content.mimeType == "application/octet-stream"
    assert base64.b64decode(content.blob) == data


def test_normalize_resource_payload_text_default_mime() -> None:
    result = normalize_resource_payload("file:///demo.txt", None, "hello")
    content = result.contents[0]
    assert isinstance(content, types.TextResourceContents)
    assert content.mimeType == "text/plain"
    assert content.text == "hello"


def test_normalize_resource_payload_passthrough() -> None:
    existing = types.ReadResourceResult(
        contents=[types.TextResourceContents(uri="file:///ready.md", mimeType="text/markdown", text="ok")]
    )
    assert normalize_resource_payload("file:///ready.md", None, existing) is existing

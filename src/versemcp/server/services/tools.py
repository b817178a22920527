# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#                  github.com/dedalus-labs/verse-mcp/LICENSE
# ==============================================================================

"""Tool capability service."""

from __future__ import annotations

from collections.abc import Callable
import logging
from typing import Any

from mcp import types
from pydantic import BaseModel, ValidationError

from ..adapters import error_result, normalize_tool_result
from ...tool import ToolSpec, extract_tool_spec
from ...utils import maybe_await


_EMPTY_SCHEMA: dict[str, Any] = {"type": "object", "properties": {}, "additionalProperties": False}


class ToolsService:
    """Manages tool registration and invocation.

    Invocation never raises for caller mistakes: unknown tools, argument shape
    errors and exceptions inside handlers all come back as ``isError`` results
    so one bad call cannot end a session.
    """

    def __init__(self, *, logger: logging.Logger) -> None:
        self._logger = logger
        self._tool_specs: dict[str, ToolSpec] = {}
        self._tool_defs: dict[str, types.Tool] = {}
        self._collisions: set[str] = set()

    @property
    def tool_names(self) -> list[str]:
        return sorted(self._tool_defs)

    @property
    def collisions(self) -> list[str]:
        """Names registered more than once with different handlers."""
        return sorted(self._collisions)

    @property
    def definitions(self) -> dict[str, types.Tool]:
        return self._tool_defs

    def register(self, target: ToolSpec | Callable[..., Any]) -> ToolSpec:
        spec = target if isinstance(target, ToolSpec) else extract_tool_spec(target)
        if spec is None:
            spec = ToolSpec(name=getattr(target, "__name__", "anonymous"), fn=target)
        existing = self._tool_specs.get(spec.name)
        if existing is not None and existing.fn is not spec.fn:
            self._collisions.add(spec.name)
        self._tool_specs[spec.name] = spec
        self._tool_defs[spec.name] = self._build_definition(spec)
        return spec

    def list_tools(self) -> list[types.Tool]:
        return list(self._tool_defs.values())

    async def call_tool(self, name: str, arguments: dict[str, Any]) -> types.CallToolResult:
        spec = self._tool_specs.get(name)
        if spec is None:
            return error_result(f'Tool "{name}" is not available')

        try:
            if spec.input_model is not None:
                try:
                    params = spec.input_model.model_validate(arguments)
                except ValidationError as exc:
                    return error_result(f"Invalid arguments for {name}: {_summarize(exc)}")
                result = await maybe_await(spec.fn(params))
            else:
                try:
                    pending = spec.fn(**arguments)
                except TypeError as exc:
                    return error_result(f"Invalid arguments for {name}: {exc}")
                result = await maybe_await(pending)
        except Exception as exc:
            self._logger.exception("Tool %s raised", name)
            return error_result(f'Tool "{name}" failed: {exc}')

        return normalize_tool_result(result)

    def _build_definition(self, spec: ToolSpec) -> types.Tool:
        annotations = None
        payload = dict(spec.annotations or {})
        if spec.title is not None:
            payload.setdefault("title", spec.title)
        if payload:
            annotations = types.ToolAnnotations.model_validate(payload)

        return types.Tool(
            name=spec.name,
            title=spec.title,
            description=spec.description or None,
            inputSchema=_input_schema(spec.input_model),
            annotations=annotations,
        )


def _input_schema(model: type[BaseModel] | None) -> dict[str, Any]:
    if model is None:
        return dict(_EMPTY_SCHEMA)
    schema = model.model_json_schema(by_alias=True)
    schema.pop("$defs", None)
    _prune_titles(schema)
    schema.setdefault("type", "object")
    schema.setdefault("properties", {})
    return schema


def _prune_titles(schema: Any) -> None:
    if isinstance(schema, dict):
        schema.pop("title", None)
        for key, value in schema.items():
            if key == "properties" and isinstance(value, dict):
                for prop in value.values():
                    _prune_titles(prop)
            else:
                _prune_titles(value)
    elif isinstance(schema, list):
        for item in schema:
            _prune_titles(item)


def _summarize(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ())) or "input"
        parts.append(f"{location}: {error.get('msg', 'invalid value')}")
    return "; ".join(parts)


__all__ = ["ToolsService"]

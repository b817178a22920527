# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#                  github.com/dedalus-labs/verse-mcp/LICENSE
# ==============================================================================

"""Resource capability service."""

from __future__ import annotations

import logging

from mcp import types
from mcp.shared.exceptions import McpError

from ..adapters import normalize_resource_payload
from ...resource import ResourceSpec
from ...utils import maybe_await


RESOURCE_NOT_FOUND = -32002


class ResourcesService:
    """Holds static resources and reads them on demand."""

    def __init__(self, *, logger: logging.Logger) -> None:
        self._logger = logger
        self._specs: dict[str, ResourceSpec] = {}

    @property
    def uris(self) -> list[str]:
        return list(self._specs)

    def register(self, spec: ResourceSpec) -> ResourceSpec:
        self._specs[spec.uri] = spec
        return spec

    def list_resources(self) -> list[types.Resource]:
        return [
            types.Resource(
                uri=spec.uri,  # type: ignore[arg-type]
                name=spec.name,
                title=spec.title,
                description=spec.description,
                mimeType=spec.mime_type,
            )
            for spec in self._specs.values()
        ]

    async def read(self, uri: str) -> types.ReadResourceResult:
        spec = self._specs.get(uri)
        if spec is None:
            raise McpError(types.ErrorData(code=RESOURCE_NOT_FOUND, message=f"Resource not found: {uri}"))
        payload = await maybe_await(spec.fn())
        self._logger.debug("Read resource %s", uri)
        return normalize_resource_payload(uri, spec.mime_type, payload)


__all__ = ["RESOURCE_NOT_FOUND", "ResourcesService"]

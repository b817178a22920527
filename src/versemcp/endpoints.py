# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#                  github.com/dedalus-labs/verse-mcp/LICENSE
# ==============================================================================

"""Plain HTTP endpoints served next to the MCP endpoint.

``/health`` is never cached. ``/portfolio.json`` describes the server for
directory pages and is content-addressed: its ``ETag`` is derived from the
serialized payload so clients can revalidate cheaply.
"""

from __future__ import annotations

from datetime import datetime, timezone
import hashlib
import json
from typing import TYPE_CHECKING, Any

from starlette.responses import JSONResponse, Response

from .config import GITHUB_REPO_URL, Settings, package_version
from .store import DocumentStore
from .utils import get_logger


if TYPE_CHECKING:
    from starlette.requests import Request

    from .server import MCPServer


_logger = get_logger("versemcp.endpoints")

PORTFOLIO_CACHE_CONTROL = "public, max-age=300"
PORTFOLIO_CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}


def serialize_payload(payload: dict[str, Any]) -> bytes:
    return json.dumps(payload, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def compute_etag(body: bytes) -> str:
    """Quoted first 16 hex digits of the SHA-1 of *body*."""
    return f'"{hashlib.sha1(body).hexdigest()[:16]}"'


def _schema_summary(schema: dict[str, Any]) -> dict[str, str]:
    required = set(schema.get("required", ()))
    summary: dict[str, str] = {}
    for name, prop in schema.get("properties", {}).items():
        kind = prop.get("type")
        if kind is None:
            options = [option.get("type") for option in prop.get("anyOf", ()) if option.get("type") != "null"]
            kind = options[0] if options else "any"
            prop = next((option for option in prop.get("anyOf", ()) if option.get("type") == kind), prop)
        if kind == "array":
            kind = f"{prop.get('items', {}).get('type', 'any')}[]"
        elif kind == "integer":
            kind = "number"
        summary[name] = kind if name in required else f"{kind} (optional)"
    return summary


def build_portfolio_payload(
    server: MCPServer,
    stores: tuple[DocumentStore, ...],
    settings: Settings,
    *,
    base_url: str,
    started_at: str,
    version: str,
) -> dict[str, Any]:
    root = (settings.public_base_url or base_url).rstrip("/")
    mcp_url = f"{root}{settings.mcp_path}"
    return {
        "server": {
            "id": settings.server_id,
            "name": settings.server_id,
            "version": version,
            "mcpEndpointUrl": mcp_url,
            "githubRepoUrl": GITHUB_REPO_URL,
        },
        "resources": [
            {"id": d.id, "title": d.title, "fileName": d.file_name, "description": d.description}
            for store in stores
            for d in store
        ],
        "tools": [
            {
                "name": t.name,
                "title": t.title,
                "description": t.description,
                "schema": _schema_summary(t.inputSchema),
            }
            for t in server.tools.list_tools()
        ],
        "prompts": [],
        "endpoints": [
            {
                "id": "mcp-endpoint",
                "title": "MCP Endpoint",
                "method": "GET",
                "url": mcp_url,
                "description": "Primary MCP endpoint (Streamable HTTP + legacy SSE fallback).",
                "transport": "streamable-http",
                "contentType": "application/json",
            },
            {
                "id": "sse-messages",
                "title": "SSE Messages (POST)",
                "method": "POST",
                "url": f"{root}{settings.internal_messages_path}",
                "description": "SSE transport message endpoint (used by legacy SSE MCP clients).",
                "transport": "sse",
                "contentType": "application/json",
            },
            {
                "id": "portfolio-json",
                "title": "Portfolio Metadata (portfolio.json)",
                "method": "GET",
                "url": f"{root}/portfolio.json",
                "description": "Metadata used by the portfolio UI (resources/tools/prompts).",
                "contentType": "application/json",
            },
            {
                "id": "health",
                "title": "Health Check",
                "method": "GET",
                "url": f"{root}/health",
                "description": "Server health status endpoint.",
                "contentType": "application/json",
            },
        ],
        "updatedAt": started_at,
    }


def install_http_endpoints(
    server: MCPServer,
    stores: tuple[DocumentStore, ...],
    settings: Settings,
    *,
    started_at: str | None = None,
) -> None:
    """Add ``/health`` and ``/portfolio.json`` to the server's HTTP routes."""
    started = started_at or datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")

    async def health(_request: Request) -> Response:
        payload = {"status": "ok", "service": settings.server_id, "version": package_version()}
        return JSONResponse(payload, headers={"Cache-Control": "no-store"})

    async def portfolio(request: Request) -> Response:
        try:
            payload = build_portfolio_payload(
                server,
                stores,
                settings,
                base_url=str(request.base_url),
                started_at=started,
                version=package_version(),
            )
            body = serialize_payload(payload)
        except Exception:
            _logger.exception("Error building /portfolio.json response")
            return JSONResponse({"error": "portfolio_meta_failed"}, status_code=500)

        etag = compute_etag(body)
        headers = {"Cache-Control": PORTFOLIO_CACHE_CONTROL, "ETag": etag}
        if request.headers.get("if-none-match") == etag:
            return Response(status_code=304, headers=headers)
        return Response(body, media_type="application/json", headers=headers)

    async def portfolio_options(_request: Request) -> Response:
        return Response(status_code=204, headers=PORTFOLIO_CORS_HEADERS)

    server.add_http_route("/health", health, name="health")
    server.add_http_route("/portfolio.json", portfolio, name="portfolio")
    server.add_http_route("/portfolio.json", portfolio_options, methods=("OPTIONS",), name="portfolio-options")


__all__ = ["build_portfolio_payload", "compute_etag", "install_http_endpoints", "serialize_payload"]

# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#                  github.com/dedalus-labs/verse-mcp/LICENSE
# ==============================================================================

from __future__ import annotations

from collections.abc import AsyncIterator
import json

import anyio
import httpx
import pytest
from starlette.applications import Starlette

from versemcp.app import create_application
from versemcp.config import Settings
from versemcp.endpoints import compute_etag, serialize_payload
from versemcp.fetch import PageFetcher
from versemcp.server.transports import HTTPTransport
from tests.helpers import INITIALIZE_BODY


BASE_URL = "http://testserver"


def _client_for(settings: Settings, fetcher: PageFetcher, *, json_response: bool = False) -> tuple[Starlette, httpx.AsyncClient]:
    application = create_application(settings, fetcher=fetcher)
    app = HTTPTransport(application.server, json_response=json_response).build_app(settings.mcp_path)
    client = httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url=BASE_URL)
    return app, client


@pytest.fixture
async def client(mock_fetcher: PageFetcher) -> AsyncIterator[httpx.AsyncClient]:
    _app, http = _client_for(Settings(), mock_fetcher)
    async with http:
        yield http


@pytest.mark.anyio
async def test_health_is_never_cached(client: httpx.AsyncClient) -> None:
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.headers["cache-control"] == "no-store"
    body = response.json()
    assert body["status"] == "ok"
    assert body["service"] == "verse-mcp"


@pytest.mark.anyio
async def test_portfolio_describes_server(client: httpx.AsyncClient) -> None:
    response = await client.get("/portfolio.json")

    assert response.status_code == 200
    assert response.headers["cache-control"] == "public, max-age=300"
    payload = response.json()
    assert payload["server"]["mcpEndpointUrl"] == f"{BASE_URL}/mcp"
    assert len(payload["resources"]) == 21
    assert len(payload["tools"]) == 11
    assert payload["prompts"] == []

    search_docs = next(item for item in payload["tools"] if item["name"] == "search-docs")
    assert search_docs["schema"] == {
        "docId": "string",
        "query": "string",
        "maxMatchesPerUrl": "number (optional)",
        "maxUrls": "number (optional)",
    }
    search_guides = next(item for item in payload["tools"] if item["name"] == "search-guides")
    assert search_guides["schema"]["guideIds"] == "string[] (optional)"

    urls = {item["id"]: item["url"] for item in payload["endpoints"]}
    assert urls == {
        "mcp-endpoint": f"{BASE_URL}/mcp",
        "sse-messages": f"{BASE_URL}/mcp/messages",
        "portfolio-json": f"{BASE_URL}/portfolio.json",
        "health": f"{BASE_URL}/health",
    }


@pytest.mark.anyio
async def test_portfolio_etag_revalidates(client: httpx.AsyncClient) -> None:
    first = await client.get("/portfolio.json")
    etag = first.headers["etag"]

    assert etag == compute_etag(first.content)
    assert first.content == serialize_payload(json.loads(first.content))

    cached = await client.get("/portfolio.json", headers={"If-None-Match": etag})
    assert cached.status_code == 304
    assert cached.content == b""
    assert cached.headers["etag"] == etag

    stale = await client.get("/portfolio.json", headers={"If-None-Match": '"0000000000000000"'})
    assert stale.status_code == 200


@pytest.mark.anyio
async def test_portfolio_preflight(client: httpx.AsyncClient) -> None:
    response = await client.options("/portfolio.json")

    assert response.status_code == 204
    assert response.headers["access-control-allow-origin"] == "*"
    assert "OPTIONS" in response.headers["access-control-allow-methods"]


@pytest.mark.anyio
async def test_portfolio_honours_public_base_url(mock_fetcher: PageFetcher) -> None:
    settings = Settings(public_base_url="https://verse.example.com/", public_path="/verse")
    _app, http = _client_for(settings, mock_fetcher)

    async with http:
        payload = (await http.get("/portfolio.json")).json()

    urls = {item["id"]: item["url"] for item in payload["endpoints"]}
    assert urls["mcp-endpoint"] == "https://verse.example.com/mcp"
    assert urls["health"] == "https://verse.example.com/health"


@pytest.mark.anyio
@pytest.mark.parametrize("path", ["/mcp/messages?sessionId=unknown", "/mcp/messages"])
async def test_post_to_unknown_channel_is_404(client: httpx.AsyncClient, path: str) -> None:
    response = await client.post(path, content=b"{}", headers={"content-type": "application/json"})

    assert response.status_code == 404
    assert response.json() == {"error": "Session not found"}


@pytest.mark.anyio
async def test_streamable_session_round_trip(mock_fetcher: PageFetcher) -> None:
    app, http = _client_for(Settings(), mock_fetcher, json_response=True)
    headers = {"accept": "application/json, text/event-stream", "content-type": "application/json"}

    with anyio.fail_after(10):
        async with app.router.lifespan_context(app), http:
            opened = await http.post("/mcp", content=INITIALIZE_BODY, headers=headers)
            assert opened.status_code == 200
            session_id = opened.headers["mcp-session-id"]
            assert opened.json()["result"]["serverInfo"]["name"] == "verse-mcp"

            session_headers = {**headers, "mcp-session-id": session_id}
            initialized = await http.post(
                "/mcp",
                json={"jsonrpc": "2.0", "method": "notifications/initialized"},
                headers=session_headers,
            )
            assert initialized.status_code == 202

            listed = await http.post(
                "/mcp",
                json={"jsonrpc": "2.0", "id": 2, "method": "tools/list"},
                headers=session_headers,
            )
            assert listed.status_code == 200
            names = {item["name"] for item in listed.json()["result"]["tools"]}
            assert "smart-help" in names

            stale = await http.post(
                "/mcp",
                json={"jsonrpc": "2.0", "id": 3, "method": "tools/list"},
                headers={**headers, "mcp-session-id": "does-not-exist"},
            )
            assert stale.status_code in (400, 404)

# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#                  github.com/dedalus-labs/verse-mcp/LICENSE
# ==============================================================================

from __future__ import annotations

from collections.abc import AsyncIterator
from pathlib import Path

import httpx
import pytest

from versemcp.catalog import GUIDES, VERSE_FILES
from versemcp.config import DATA_DIR
from versemcp.fetch import PageCache, PageFetcher
from versemcp.store import DocumentStore


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def guides_store() -> DocumentStore:
    return DocumentStore(DATA_DIR / "guides", GUIDES, mime_type="text/markdown")


@pytest.fixture
def samples_store() -> DocumentStore:
    return DocumentStore(DATA_DIR / "versebase", VERSE_FILES, mime_type="text/plain")


@pytest.fixture
def pages() -> dict[str, tuple[int, str]]:
    """URL -> (status, body) served by :func:`mock_fetcher`; unknown URLs get 404."""
    return {}


@pytest.fixture
def fetch_calls() -> list[str]:
    return []


@pytest.fixture
async def mock_fetcher(pages: dict[str, tuple[int, str]], fetch_calls: list[str]) -> AsyncIterator[PageFetcher]:
    def handler(request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        fetch_calls.append(url)
        status, body = pages.get(url, (404, "<p>missing</p>"))
        return httpx.Response(status, text=body, headers={"content-type": "text/html"})

    fetcher = PageFetcher(PageCache(600), transport=httpx.MockTransport(handler))
    try:
        yield fetcher
    finally:
        await fetcher.aclose()


@pytest.fixture
def data_dir() -> Path:
    return DATA_DIR

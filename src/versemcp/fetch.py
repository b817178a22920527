# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#                  github.com/dedalus-labs/verse-mcp/LICENSE
# ==============================================================================

"""Remote page fetching with a time-to-live cache.

Every fetch attempt is cached, failures included: a host that timed out is not
asked again until its entry expires. Callers never see exceptions from
:meth:`PageFetcher.fetch`; they branch on :attr:`FetchResult.ok` instead.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
import re
import time
from typing import Final

import anyio
import httpx

from .utils import get_logger


DEFAULT_TTL: Final[float] = 600.0
DEFAULT_TIMEOUT: Final[float] = 12.0
USER_AGENT: Final[str] = "verse-mcp (+https://github.com/dedalus-labs/verse-mcp)"

_logger = get_logger("versemcp.fetch")

_SCRIPT = re.compile(r"<script[\s\S]*?</script>", re.IGNORECASE)
_STYLE = re.compile(r"<style[\s\S]*?</style>", re.IGNORECASE)
_BREAK = re.compile(r"<br\s*/?>", re.IGNORECASE)
_BLOCK_CLOSE = re.compile(r"</(p|div|h1|h2|h3|h4|h5|h6|li|tr)>", re.IGNORECASE)
_BLOCK_OPEN = re.compile(r"<(p|div|h1|h2|h3|h4|h5|h6|tr)[^>]*>", re.IGNORECASE)
_LIST_ITEM = re.compile(r"<li[^>]*>", re.IGNORECASE)
_TAG = re.compile(r"<[^>]+>")
_HSPACE = re.compile(r"[ \t]+")
_LEADING_HSPACE = re.compile(r"\n[ \t]+")
_BLANK_RUNS = re.compile(r"\n{3,}")


def html_to_text(html: str) -> str:
    """Reduce an HTML document to readable plain text.

    Script and style blocks are dropped, block-level closings and ``<br>``
    become newlines, list items get a leading dash, every other tag is removed
    and blank-line runs collapse to a single empty line.
    """
    text = _SCRIPT.sub("", html)
    text = _STYLE.sub("", text)
    text = _BREAK.sub("\n", text)
    text = _BLOCK_CLOSE.sub("\n", text)
    text = _BLOCK_OPEN.sub("", text)
    text = _LIST_ITEM.sub("- ", text)
    text = _TAG.sub("", text)

    text = text.replace("\r", "")
    text = _HSPACE.sub(" ", text)
    text = _LEADING_HSPACE.sub("\n", text)
    text = _BLANK_RUNS.sub("\n\n", text)
    return text.strip()


@dataclass(frozen=True, slots=True)
class FetchResult:
    """Outcome of one fetch attempt. ``status`` is 0 for transport failures."""

    ok: bool
    status: int
    text: str


@dataclass(frozen=True, slots=True)
class CacheEntry:
    fetched_at: float
    result: FetchResult


class PageCache:
    """URL-keyed cache whose entries expire *ttl* seconds after they were stored.

    Stale entries are ignored on lookup and overwritten by the next store; there
    is no background eviction.
    """

    def __init__(self, ttl: float = DEFAULT_TTL, *, clock: Callable[[], float] = time.monotonic) -> None:
        if ttl <= 0:
            raise ValueError("ttl must be positive")
        self._ttl = ttl
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}

    @property
    def ttl(self) -> float:
        return self._ttl

    def get(self, url: str) -> FetchResult | None:
        entry = self._entries.get(url)
        if entry is None:
            return None
        if self._clock() - entry.fetched_at >= self._ttl:
            return None
        return entry.result

    def put(self, url: str, result: FetchResult) -> None:
        self._entries[url] = CacheEntry(fetched_at=self._clock(), result=result)

    def __contains__(self, url: object) -> bool:
        return url in self._entries

    def __len__(self) -> int:
        return len(self._entries)


class PageFetcher:
    """Fetch pages as plain text through a :class:`PageCache`."""

    def __init__(
        self,
        cache: PageCache | None = None,
        *,
        client: httpx.AsyncClient | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.cache = cache if cache is not None else PageCache()
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            transport=transport,
            follow_redirects=True,
            headers={"User-Agent": USER_AGENT},
        )

    async def fetch(self, url: str, timeout: float = DEFAULT_TIMEOUT) -> FetchResult:
        """Return the plain text of *url*, from cache when a fresh entry exists."""
        cached = self.cache.get(url)
        if cached is not None:
            return cached

        started = time.perf_counter()
        try:
            with anyio.fail_after(timeout):
                response = await self._client.get(url, timeout=timeout)
                body = response.text
        except (httpx.HTTPError, httpx.InvalidURL, TimeoutError, OSError) as exc:
            result = FetchResult(ok=False, status=0, text=_describe_error(exc))
            _logger.warning("Fetch of %s failed: %s", url, result.text)
        else:
            result = FetchResult(ok=response.is_success, status=response.status_code, text=html_to_text(body))
            _logger.debug(
                "Fetched %s (status %s)",
                url,
                response.status_code,
                extra={"duration_ms": (time.perf_counter() - started) * 1000},
            )

        self.cache.put(url, result)
        return result

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


def _describe_error(exc: BaseException) -> str:
    detail = str(exc)
    name = type(exc).__name__
    return f"{name}: {detail}" if detail else name


__all__ = ["CacheEntry", "FetchResult", "PageCache", "PageFetcher", "html_to_text"]

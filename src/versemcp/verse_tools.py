# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#                  github.com/dedalus-labs/verse-mcp/LICENSE
# ==============================================================================

"""Verse guidance tools.

:class:`VerseToolkit` composes the document stores, snippet search and the page
fetcher into the text answers each tool returns. Every answer is plain text;
unknown identifiers and failed fetches are reported in that text rather than
raised.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING, Final
from urllib.parse import urlsplit

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .catalog import DOCS_REGISTRY, SYNTAX_GUIDE_ID, DocsSource, select_guide_ids
from .fetch import DEFAULT_TIMEOUT, PageFetcher
from .search import find_query_snippets, truncate_text
from .store import DocumentNotFoundError, DocumentStore
from .tool import tool


if TYPE_CHECKING:
    from .server import MCPServer


SYNTAX_HELP_MAX_LINES: Final[int] = 80
PAGE_PREVIEW_CHARS: Final[int] = 4000


class ToolInput(BaseModel):
    """Base for tool arguments; fields are exposed in camelCase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class GuideIdInput(ToolInput):
    guide_id: str


class FileIdInput(ToolInput):
    file_id: str


class TopicInput(ToolInput):
    topic: str


class SearchGuidesInput(ToolInput):
    query: str
    guide_ids: list[str] | None = None
    max_matches: int = Field(default=4, ge=0)


class SearchVerseInput(ToolInput):
    query: str
    file_ids: list[str] | None = None
    max_matches: int = Field(default=5, ge=0)


class SearchDocsInput(ToolInput):
    doc_id: str
    query: str
    max_matches_per_url: int = Field(default=5, ge=0)
    max_urls: int | None = None


class FetchWebDocInput(ToolInput):
    url: str
    query: str | None = None
    max_matches: int = Field(default=5, ge=0)

    @field_validator("url")
    @classmethod
    def _absolute_http_url(cls, value: str) -> str:
        parts = urlsplit(value)
        if parts.scheme not in {"http", "https"} or not parts.netloc:
            raise ValueError("must be an absolute http(s) URL")
        return value


class SmartHelpInput(ToolInput):
    question: str
    prefer_guides: bool = True
    prefer_docs: bool = True
    guide_ids: list[str] | None = None
    doc_ids: list[str] | None = None
    doc_query: str | None = None
    max_doc_ids: int = Field(default=4, ge=0)
    max_urls_per_doc: int = 3
    max_matches_per_url: int = Field(default=4, ge=0)
    guide_excerpt_chars: int = Field(default=800, ge=0)


def _bullets(items: Sequence[str], indent: str = "") -> str:
    return "\n".join(f"{indent}- {item}" for item in items)


class VerseToolkit:
    """Answers for the Verse tools over the guide and sample stores."""

    def __init__(
        self,
        guides: DocumentStore,
        samples: DocumentStore,
        fetcher: PageFetcher,
        *,
        docs: Sequence[DocsSource] = DOCS_REGISTRY,
        fetch_timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self.guides = guides
        self.samples = samples
        self.fetcher = fetcher
        self.docs = {source.id: source for source in docs}
        self.fetch_timeout = fetch_timeout

    # ------------------------------------------------------------------
    # Local documents
    # ------------------------------------------------------------------

    def list_guides(self) -> str:
        lines = [f"{g.title} ({g.description}) -> {self.guides.uri_for(g)}" for g in self.guides]
        return f"Available Verse guides (open with readResource):\n{_bullets(lines)}"

    async def get_guide(self, params: GuideIdInput) -> str:
        if params.guide_id not in self.guides:
            return f"Unknown guide id: {params.guide_id}"
        return await self.guides.read_text(params.guide_id)

    async def search_guides(self, params: SearchGuidesInput) -> str:
        return await self._search_store(self.guides, params.query, params.guide_ids, params.max_matches)

    async def verse_syntax_help(self, params: TopicInput) -> str:
        """Return the syntax guide section that first mentions the topic."""
        try:
            text = await self.guides.read_text(SYNTAX_GUIDE_ID)
        except (DocumentNotFoundError, FileNotFoundError):
            return "Verse syntax guide not found."
        topic = params.topic.lower()
        collected: list[str] = []

        for line in text.split("\n"):
            mentions = topic in line.lower()
            if not collected and not mentions:
                continue
            if collected and line.startswith("## ") and not mentions:
                break
            collected.append(line)
            if len(collected) >= SYNTAX_HELP_MAX_LINES:
                break

        if not collected:
            return f'No section found for "{params.topic}".'
        return "\n".join(collected)

    def list_verse_files(self) -> str:
        lines = [f"{f.title} ({f.description}) -> {self.samples.uri_for(f)}" for f in self.samples]
        return f"Available Verse sample files (open with readResource):\n{_bullets(lines)}"

    async def get_verse_file(self, params: FileIdInput) -> str:
        if params.file_id not in self.samples:
            return f"Unknown file id: {params.file_id}"
        return await self.samples.read_text(params.file_id)

    async def search_verse(self, params: SearchVerseInput) -> str:
        return await self._search_store(self.samples, params.query, params.file_ids, params.max_matches)

    async def _search_store(
        self, store: DocumentStore, query: str, doc_ids: Sequence[str] | None, max_matches: int
    ) -> str:
        sections: list[str] = []
        for descriptor in store.select(doc_ids):
            text = await store.read_text(descriptor.id)
            snippets = find_query_snippets(text, query, max_matches)
            if snippets:
                sections.append(f"## {descriptor.title}\n{_bullets(snippets)}")

        if not sections:
            return f'No matches for "{query}".'
        return "\n\n".join(sections)

    # ------------------------------------------------------------------
    # Remote documents
    # ------------------------------------------------------------------

    def list_docs(self) -> str:
        return f"Known docs sources:\n{_bullets([f'{s.id}: {s.title}' for s in self.docs.values()])}"

    async def search_docs(self, params: SearchDocsInput) -> str:
        source = self.docs.get(params.doc_id)
        if source is None:
            return f"Unknown doc id: {params.doc_id}"

        max_urls = params.max_urls if params.max_urls is not None else len(source.urls)
        lines = await self._search_urls(source, params.query, max_urls, params.max_matches_per_url)
        return f'Search results for "{params.query}" in {source.title}:\n' + "\n".join(lines)

    async def fetch_web_doc(self, params: FetchWebDocInput) -> str:
        page = await self.fetcher.fetch(params.url, self.fetch_timeout)
        if not page.ok:
            return f"Failed to fetch {params.url} (status {page.status})."

        if not params.query:
            return truncate_text(page.text, PAGE_PREVIEW_CHARS)

        matches = find_query_snippets(page.text, params.query, params.max_matches)
        body = _bullets(matches) if matches else "(no matches)"
        return f'Matches for "{params.query}" in {params.url}:\n{body}'

    async def _search_urls(self, source: DocsSource, query: str, max_urls: int, max_matches: int) -> list[str]:
        lines: list[str] = []
        for url in source.urls[: max(1, max_urls)]:
            page = await self.fetcher.fetch(url, self.fetch_timeout)
            if not page.ok:
                lines.append(f"- {url} (failed with status {page.status})")
                continue
            matches = find_query_snippets(page.text, query, max_matches)
            if not matches:
                lines.append(f"- {url} (no matches)")
                continue
            lines.append(f"- {url}\n{_bullets(matches, indent='  ')}")
        return lines

    # ------------------------------------------------------------------
    # Composite
    # ------------------------------------------------------------------

    async def smart_help(self, params: SmartHelpInput) -> str:
        """Combine keyword-selected guide excerpts with live docs snippets.

        Guides default to the ones whose keywords occur in the question (the
        index guide when none do); docs default to the first ``max_doc_ids``
        registry entries.
        """
        guide_ids = params.guide_ids or select_guide_ids(params.question, self.guides)
        doc_ids = params.doc_ids or list(self.docs)[: params.max_doc_ids]
        doc_query = params.doc_query if params.doc_query is not None else params.question
        sections: list[str] = []

        if params.prefer_guides:
            excerpts: list[str] = []
            for descriptor in self.guides.select(guide_ids):
                text = await self.guides.read_text(descriptor.id)
                excerpts.append(f"## {descriptor.title}\n{truncate_text(text.strip(), params.guide_excerpt_chars)}")
            if excerpts:
                sections.append("# Guide excerpts\n" + "\n\n".join(excerpts))

        if params.prefer_docs:
            doc_sections: list[str] = []
            for doc_id in doc_ids:
                source = self.docs.get(doc_id)
                if source is None:
                    continue
                lines = await self._search_urls(source, doc_query, params.max_urls_per_doc, params.max_matches_per_url)
                doc_sections.append(f"## {source.title}\n" + "\n".join(lines))
            if doc_sections:
                sections.append("# Docs snippets\n" + "\n\n".join(doc_sections))

        if not sections:
            return "No guide or doc content was selected."
        return "\n\n".join(sections)


def register_verse_tools(server: MCPServer, toolkit: VerseToolkit) -> None:
    """Register every Verse tool on *server*."""
    read_only = {"readOnlyHint": True}
    open_world = {"readOnlyHint": True, "openWorldHint": True}

    with server.binding():

        @tool("list-guides", title="List Verse Guides", annotations=read_only)
        def list_guides() -> str:
            """Return the available Verse guides as resource links"""
            return toolkit.list_guides()

        @tool("get-guide", title="Get Verse Guide", input_model=GuideIdInput, annotations=read_only)
        async def get_guide(params: GuideIdInput) -> str:
            """Return the full Markdown for a Verse guide"""
            return await toolkit.get_guide(params)

        @tool("search-guides", title="Search Verse Guides", input_model=SearchGuidesInput, annotations=read_only)
        async def search_guides(params: SearchGuidesInput) -> str:
            """Search through Verse guides for a keyword"""
            return await toolkit.search_guides(params)

        @tool("verse-syntax-help", title="Verse Syntax Help", input_model=TopicInput, annotations=read_only)
        async def verse_syntax_help(params: TopicInput) -> str:
            """Extract a topic section from the Verse syntax guide"""
            return await toolkit.verse_syntax_help(params)

        @tool("list-verse-files", title="List Verse Files", annotations=read_only)
        def list_verse_files() -> str:
            """Return the available Verse sample files"""
            return toolkit.list_verse_files()

        @tool("get-verse-file", title="Get Verse File", input_model=FileIdInput, annotations=read_only)
        async def get_verse_file(params: FileIdInput) -> str:
            """Return the full Verse source for a sample file"""
            return await toolkit.get_verse_file(params)

        @tool("search-verse", title="Search Verse Samples", input_model=SearchVerseInput, annotations=read_only)
        async def search_verse(params: SearchVerseInput) -> str:
            """Search Verse sample files for a query"""
            return await toolkit.search_verse(params)

        @tool("list-docs", title="List Verse Docs", annotations=read_only)
        def list_docs() -> str:
            """List known docs sources by id (used by search-docs)"""
            return toolkit.list_docs()

        @tool("search-docs", title="Search Verse Docs", input_model=SearchDocsInput, annotations=open_world)
        async def search_docs(params: SearchDocsInput) -> str:
            """Search known docs sources by id without providing URLs"""
            return await toolkit.search_docs(params)

        @tool("fetch-web-doc", title="Fetch / Search Web Docs", input_model=FetchWebDocInput, annotations=open_world)
        async def fetch_web_doc(params: FetchWebDocInput) -> str:
            """Fetch a public documentation URL and optionally search it for a query"""
            return await toolkit.fetch_web_doc(params)

        @tool("smart-help", title="Smart Help (Guides + Docs)", input_model=SmartHelpInput, annotations=open_world)
        async def smart_help(params: SmartHelpInput) -> str:
            """Auto-select relevant Verse guides and query live docs sources"""
            return await toolkit.smart_help(params)


__all__ = [
    "FetchWebDocInput",
    "FileIdInput",
    "GuideIdInput",
    "SearchDocsInput",
    "SearchGuidesInput",
    "SearchVerseInput",
    "SmartHelpInput",
    "TopicInput",
    "VerseToolkit",
    "register_verse_tools",
]

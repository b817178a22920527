# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#                  github.com/dedalus-labs/verse-mcp/LICENSE
# ==============================================================================

"""Application assembly: catalog, tools, resources and HTTP endpoints."""

from __future__ import annotations

from dataclasses import dataclass
from functools import partial

from .catalog import GUIDES, VERSE_FILES
from .config import SERVER_DESCRIPTION, Settings, package_version
from .endpoints import install_http_endpoints
from .fetch import PageCache, PageFetcher
from .resource import ResourceSpec
from .server import MCPServer
from .store import DocumentStore
from .utils import get_logger
from .verse_tools import VerseToolkit, register_verse_tools


_logger = get_logger("versemcp.app")


def _register_store_resources(server: MCPServer, store: DocumentStore) -> None:
    for descriptor in store:
        server.register_resource(
            ResourceSpec(
                uri=store.uri_for(descriptor),
                fn=partial(store.read_text, descriptor.id),
                name=descriptor.id,
                title=descriptor.title,
                description=descriptor.description,
                mime_type=store.mime_type,
            )
        )


@dataclass(slots=True)
class VerseApplication:
    server: MCPServer
    toolkit: VerseToolkit
    settings: Settings

    async def serve(self, *, port: int | None = None, log_level: str = "info") -> None:
        """Serve over HTTP when *port* is given, over stdio otherwise."""
        try:
            if port is None:
                await self.server.serve(transport="stdio")
            else:
                await self.server.serve(transport="http", host=self.settings.host, port=port, log_level=log_level)
        finally:
            await self.toolkit.fetcher.aclose()


def create_application(settings: Settings | None = None, *, fetcher: PageFetcher | None = None) -> VerseApplication:
    settings = settings or Settings()
    guides = DocumentStore(settings.guides_dir, GUIDES, mime_type="text/markdown")
    samples = DocumentStore(settings.samples_dir, VERSE_FILES, mime_type="text/plain")
    fetcher = fetcher or PageFetcher(PageCache(settings.page_cache_ttl))

    server = MCPServer(
        settings.server_id,
        version=package_version(),
        instructions=SERVER_DESCRIPTION,
        settings=settings,
    )
    _register_store_resources(server, guides)
    _register_store_resources(server, samples)

    toolkit = VerseToolkit(guides, samples, fetcher, fetch_timeout=settings.fetch_timeout)
    register_verse_tools(server, toolkit)
    install_http_endpoints(server, (guides, samples), settings)

    _logger.debug(
        "Assembled %s with %d tools and %d resources",
        settings.server_id,
        len(server.tool_names),
        len(server.resources.uris),
    )
    return VerseApplication(server=server, toolkit=toolkit, settings=settings)


__all__ = ["VerseApplication", "create_application"]

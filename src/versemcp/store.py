# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#                  github.com/dedalus-labs/verse-mcp/LICENSE
# ==============================================================================

"""Read-only document store keyed by catalog identifier."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass, field
from pathlib import Path

import anyio


class DocumentNotFoundError(LookupError):
    """Raised when a document identifier is not part of the catalog."""

    def __init__(self, doc_id: str) -> None:
        super().__init__(doc_id)
        self.doc_id = doc_id


@dataclass(frozen=True, slots=True)
class DocumentDescriptor:
    """Static metadata for one catalog entry."""

    id: str
    title: str
    file_name: str
    description: str
    keywords: tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True, slots=True)
class LoadedDocument:
    descriptor: DocumentDescriptor
    uri: str
    text: str


class DocumentStore:
    """Map catalog identifiers to files under a single root directory."""

    def __init__(self, root: Path, descriptors: Iterable[DocumentDescriptor], *, mime_type: str) -> None:
        self.root = Path(root).resolve()
        self.mime_type = mime_type
        self._descriptors: dict[str, DocumentDescriptor] = {}
        for descriptor in descriptors:
            if descriptor.id in self._descriptors:
                raise ValueError(f"Duplicate document id {descriptor.id!r}")
            self._descriptors[descriptor.id] = descriptor

    def __iter__(self) -> Iterator[DocumentDescriptor]:
        return iter(self._descriptors.values())

    def __len__(self) -> int:
        return len(self._descriptors)

    def __contains__(self, doc_id: object) -> bool:
        return doc_id in self._descriptors

    def get(self, doc_id: str) -> DocumentDescriptor:
        try:
            return self._descriptors[doc_id]
        except KeyError:
            raise DocumentNotFoundError(doc_id) from None

    def select(self, doc_ids: Sequence[str] | None) -> list[DocumentDescriptor]:
        """Return the known descriptors among *doc_ids*, or all when none are given."""
        if not doc_ids:
            return list(self._descriptors.values())
        return [self._descriptors[doc_id] for doc_id in doc_ids if doc_id in self._descriptors]

    def path_for(self, descriptor: DocumentDescriptor) -> Path:
        return self.root / descriptor.file_name

    def uri_for(self, descriptor: DocumentDescriptor) -> str:
        return self.path_for(descriptor).as_uri()

    async def read_text(self, doc_id: str) -> str:
        return (await self.load(doc_id)).text

    async def load(self, doc_id: str) -> LoadedDocument:
        descriptor = self.get(doc_id)
        path = self.path_for(descriptor)
        text = await anyio.Path(path).read_text(encoding="utf-8")
        return LoadedDocument(descriptor=descriptor, uri=path.as_uri(), text=text)


__all__ = ["DocumentDescriptor", "DocumentNotFoundError", "DocumentStore", "LoadedDocument"]

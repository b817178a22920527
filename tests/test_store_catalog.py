# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#                  github.com/dedalus-labs/verse-mcp/LICENSE
# ==============================================================================

from __future__ import annotations

from pathlib import Path

import pytest

from versemcp.catalog import DEFAULT_GUIDE_ID, DOCS_REGISTRY, GUIDES, VERSE_FILES, select_guide_ids
from versemcp.store import DocumentDescriptor, DocumentNotFoundError, DocumentStore


def test_every_catalog_entry_has_a_file(data_dir: Path) -> None:
    for descriptor in GUIDES:
        assert (data_dir / "guides" / descriptor.file_name).is_file(), descriptor.id
    for descriptor in VERSE_FILES:
        assert (data_dir / "versebase" / descriptor.file_name).is_file(), descriptor.id


def test_catalog_ids_are_unique() -> None:
    assert len({g.id for g in GUIDES}) == len(GUIDES) == 15
    assert len({f.id for f in VERSE_FILES}) == len(VERSE_FILES) == 6
    assert len({d.id for d in DOCS_REGISTRY}) == len(DOCS_REGISTRY)


@pytest.mark.anyio
async def test_load_returns_text_and_file_uri(guides_store: DocumentStore) -> None:
    loaded = await guides_store.load("getting-started")
    assert loaded.uri.startswith("file://")
    assert loaded.uri.endswith("getting-started.md")
    assert "Verse" in loaded.text


@pytest.mark.anyio
async def test_unknown_id_raises_not_found(guides_store: DocumentStore) -> None:
    with pytest.raises(DocumentNotFoundError) as excinfo:
        await guides_store.read_text("nope")
    assert excinfo.value.doc_id == "nope"


def test_select_skips_unknown_and_defaults_to_all(samples_store: DocumentStore) -> None:
    assert [d.id for d in samples_store.select(["snow-device", "ghost"])] == ["snow-device"]
    assert len(samples_store.select(None)) == len(VERSE_FILES)
    assert len(samples_store.select([])) == len(VERSE_FILES)


def test_duplicate_descriptor_ids_are_rejected(tmp_path: Path) -> None:
    descriptor = DocumentDescriptor(id="a", title="A", file_name="a.md", description="")
    with pytest.raises(ValueError):
        DocumentStore(tmp_path, [descriptor, descriptor], mime_type="text/plain")


@pytest.mark.parametrize(
    ("question", "expected"),
    [
        ("How do I fix this ERROR when I build?", "troubleshooting"),
        ("which device should I use for a timer", "device-reference"),
        ("what is the syntax for classes", "verse-syntax"),
    ],
)
def test_select_guide_ids_matches_keywords(question: str, expected: str) -> None:
    assert expected in select_guide_ids(question)


def test_select_guide_ids_falls_back_to_default() -> None:
    assert select_guide_ids("zzz qqq") == [DEFAULT_GUIDE_ID]

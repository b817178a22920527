# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#                  github.com/dedalus-labs/verse-mcp/LICENSE
# ==============================================================================

from __future__ import annotations

import pytest

from versemcp.search import ELLIPSIS, find_query_snippets, truncate_text


LONG_TEXT = ("filler " * 60) + "needle in the middle" + (" trailing" * 60)


def test_short_text_has_no_ellipsis() -> None:
    snippets = find_query_snippets("The quick brown fox", "brown", 5)
    assert snippets == ["The quick brown fox"]


@pytest.mark.parametrize("query", ["needle", "NEEDLE", "Needle In"])
def test_match_is_case_insensitive(query: str) -> None:
    snippets = find_query_snippets(LONG_TEXT, query, 3)
    assert len(snippets) == 1
    assert query.lower() in snippets[0].lower()


def test_empty_query_returns_nothing() -> None:
    assert find_query_snippets("anything at all", "", 5) == []


def test_zero_max_matches_returns_nothing() -> None:
    assert find_query_snippets("brown brown brown", "brown", 0) == []


def test_max_matches_bounds_result() -> None:
    text = "hit " * 50
    assert len(find_query_snippets(text, "hit", 3)) == 3


def test_missing_query_returns_nothing() -> None:
    assert find_query_snippets("The quick brown fox", "zebra", 5) == []


def test_overlapping_occurrences_are_reported_once() -> None:
    assert len(find_query_snippets("aaa", "aa", 5)) == 1


def test_clipped_windows_carry_ellipsis_markers() -> None:
    [snippet] = find_query_snippets(LONG_TEXT, "needle", 1)
    assert snippet.startswith(ELLIPSIS)
    assert snippet.endswith(ELLIPSIS)


def test_window_clipped_on_one_side_only() -> None:
    text = "needle" + (" tail" * 100)
    [snippet] = find_query_snippets(text, "needle", 1)
    assert not snippet.startswith(ELLIPSIS)
    assert snippet.endswith(ELLIPSIS)


def test_newlines_collapse_to_spaces() -> None:
    [snippet] = find_query_snippets("line one\n\n\nneedle\nline three", "needle", 1)
    assert snippet == "line one needle line three"


def test_window_sizes_are_respected() -> None:
    text = "x" * 500 + "needle" + "y" * 500
    [snippet] = find_query_snippets(text, "needle", 1, context_before=10, context_after=20)
    assert snippet == f"{ELLIPSIS}{'x' * 10}needle{'y' * 20}{ELLIPSIS}"


def test_every_excerpt_contains_the_query() -> None:
    text = "\n".join(f"Line {i}: the Device fires an event" for i in range(40))
    snippets = find_query_snippets(text, "device", 10)
    assert len(snippets) == 10
    assert all("device" in snippet.lower() for snippet in snippets)


def test_truncate_text() -> None:
    assert truncate_text("short", 10) == "short"
    assert truncate_text("abcdef   ghij", 9) == f"abcdef{ELLIPSIS}"


@pytest.mark.parametrize("prefix", ["İ" * 300, "ẞ" * 50 + "İ" * 50])
def test_excerpt_offsets_survive_case_mapping_that_changes_length(prefix: str) -> None:
    text = prefix + " needle here"

    [snippet] = find_query_snippets(text, "needle", 1, context_before=5, context_after=5)

    assert snippet == f"{ELLIPSIS}İİİİ needle here"


def test_match_keeps_original_casing_after_wide_characters() -> None:
    text = "İ" * 10 + "NeEdLe"
    assert find_query_snippets(text, "needle", 1, context_before=0, context_after=0) == [f"{ELLIPSIS}NeEdLe"]

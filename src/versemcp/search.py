# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#                  github.com/dedalus-labs/verse-mcp/LICENSE
# ==============================================================================

"""Snippet search over plain text."""

from __future__ import annotations

import re
from typing import Final


CONTEXT_BEFORE: Final[int] = 160
CONTEXT_AFTER: Final[int] = 240
ELLIPSIS: Final[str] = "…"

_NEWLINES = re.compile(r"\n+")


def find_query_snippets(
    text: str,
    query: str,
    max_matches: int,
    *,
    context_before: int = CONTEXT_BEFORE,
    context_after: int = CONTEXT_AFTER,
) -> list[str]:
    """Return up to *max_matches* excerpts around case-insensitive hits of *query*.

    Scanning resumes right after each match, so overlapping occurrences are
    reported once ("aa" in "aaa" yields a single excerpt). Newlines inside an
    excerpt collapse to spaces; an ellipsis marks each side where the window was
    cut short of the text boundary.
    """
    if not query or max_matches <= 0:
        return []

    pattern = re.compile(re.escape(query), re.IGNORECASE)
    snippets: list[str] = []
    start = 0

    while len(snippets) < max_matches:
        match = pattern.search(text, start)
        if match is None:
            break

        lo = max(0, match.start() - context_before)
        hi = min(len(text), match.end() + context_after)
        excerpt = _NEWLINES.sub(" ", text[lo:hi]).strip()
        prefix = ELLIPSIS if lo > 0 else ""
        suffix = ELLIPSIS if hi < len(text) else ""
        snippets.append(f"{prefix}{excerpt}{suffix}")

        start = match.end()

    return snippets


def truncate_text(text: str, max_chars: int) -> str:
    """Cut *text* to *max_chars* characters, marking the cut with an ellipsis."""
    if len(text) <= max_chars:
        return text
    return f"{text[:max_chars].rstrip()}{ELLIPSIS}"


__all__ = ["find_query_snippets", "truncate_text"]

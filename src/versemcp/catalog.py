# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#                  github.com/dedalus-labs/verse-mcp/LICENSE
# ==============================================================================

"""Static catalog: Verse guides, sample devices and public docs sources."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Final

from .store import DocumentDescriptor


DEFAULT_GUIDE_ID: Final[str] = "index"
SYNTAX_GUIDE_ID: Final[str] = "verse-syntax"


def _guide(id: str, title: str, description: str, keywords: Iterable[str]) -> DocumentDescriptor:
    return DocumentDescriptor(
        id=id, title=title, file_name=f"{id}.md", description=description, keywords=tuple(keywords)
    )


GUIDES: Final[tuple[DocumentDescriptor, ...]] = (
    _guide("index", "Index", "Entry point for Verse guidance and references.", ["overview", "index", "start", "intro"]),
    _guide(
        "getting-started",
        "Getting Started",
        "Intro to Verse and your first device.",
        ["getting started", "intro", "first", "beginner", "setup", "basics"],
    ),
    _guide(
        "verse-syntax",
        "Verse Syntax",
        "Complete syntax reference.",
        ["syntax", "types", "functions", "classes", "control flow", "specifiers"],
    ),
    _guide(
        "verse-api",
        "Verse API Reference",
        "Common modules and patterns.",
        ["api", "devices", "characters", "playspace", "simulation"],
    ),
    _guide(
        "device-reference",
        "Device Reference",
        "Common Fortnite Creative devices.",
        ["device", "button", "trigger", "timer", "item", "audio", "teleporter"],
    ),
    _guide(
        "verse-language-basics",
        "Verse Language Basics",
        "Syntax, types, functions, and control flow.",
        ["syntax", "types", "functions", "loop", "race", "suspends", "async"],
    ),
    _guide(
        "uefn-workflow",
        "UEFN Workflow",
        "Build/test loop and editor wiring tips.",
        ["uefn", "editor", "workflow", "session", "playtest"],
    ),
    _guide(
        "devices-and-gameplay",
        "Devices & Gameplay",
        "Device composition, events, and gameplay loops.",
        ["device", "creative_device", "event", "gameplay", "cooldown"],
    ),
    _guide(
        "best-practices",
        "Best Practices",
        "Style, safety, and maintainability guidance.",
        ["best", "practices", "style", "performance", "maintain"],
    ),
    _guide("troubleshooting", "Troubleshooting", "Common errors and debugging tips.", ["debug", "error", "issue", "troubleshoot"]),
    _guide(
        "resources-and-learning",
        "Resources & Learning",
        "Curated Verse links.",
        ["resources", "learning", "reference", "docs"],
    ),
    _guide(
        "devices-and-events",
        "Devices & Events Checklist",
        "Checklist for device wiring and events.",
        ["checklist", "events", "subscribe", "await"],
    ),
    _guide(
        "verse-device-patterns",
        "Verse Device Patterns",
        "Common device patterns and structure.",
        ["patterns", "structure", "composition"],
    ),
    _guide("uefn-setup", "UEFN Setup", "Project setup notes.", ["setup", "project", "install"]),
    _guide("faq", "FAQ", "Short FAQ for common questions.", ["faq", "questions"]),
)


def _sample(id: str, title: str, file_name: str, description: str) -> DocumentDescriptor:
    return DocumentDescriptor(id=id, title=title, file_name=file_name, description=description)


VERSE_FILES: Final[tuple[DocumentDescriptor, ...]] = (
    _sample(
        "accolade-connector-device",
        "Accolade Connector Device",
        "accolade_connector_device.verse",
        "Awards accolades for vending machine events.",
    ),
    _sample("chest-device", "Chest Device", "chest_device.verse", "Cooldown chest with VFX and item grant."),
    _sample(
        "custom-granter-device",
        "Custom Granter Device",
        "custom_granter_device.verse",
        "Simple button-triggered item grant.",
    ),
    _sample(
        "health-regen-device",
        "Health Regen Snippet",
        "health_regen_device.verse",
        "Snippet for health regen during grind.",
    ),
    _sample("lucky-loot-device", "Lucky Loot Device", "lucky_loot_device.verse", "Random item granter with cooldown."),
    _sample("snow-device", "Snow Device", "snow_device.verse", "Seasonal snow phase controller."),
)


@dataclass(frozen=True, slots=True)
class DocsSource:
    """A named set of public documentation URLs searched live."""

    id: str
    title: str
    urls: tuple[str, ...]


DOCS_REGISTRY: Final[tuple[DocsSource, ...]] = (
    DocsSource(
        "epic-verse",
        "Epic: Programming with Verse in UEFN",
        ("https://dev.epicgames.com/documentation/en-us/fortnite/programming-with-verse-in-unreal-editor-for-fortnite",),
    ),
    DocsSource(
        "verse-language-reference",
        "Epic: Verse Language Reference",
        ("https://dev.epicgames.com/documentation/en-us/fortnite/verse-language-reference",),
    ),
    DocsSource(
        "verse-quick-reference",
        "Epic: Verse Quick Reference",
        ("https://dev.epicgames.com/documentation/en-us/fortnite/verse-language-quick-reference",),
    ),
    DocsSource(
        "verse-article",
        "Verse overview article (Medium)",
        ("https://medium.com/@etirismagazine/verse-programming-language-9dbdb567d5ae",),
    ),
    DocsSource(
        "best-practices-thread",
        "UEFN best practices discussion",
        ("https://forums.unrealengine.com/t/how-to-write-verse-the-correct-way-best-practices/2116958",),
    ),
    DocsSource("childlike-verse", "Childlike Verse Playground", ("https://childlike-verse-lang.web.app/",)),
    DocsSource(
        "verse-talk",
        "Verse talk (Gotopia)",
        ("https://gotopia.tech/sessions/2896/verse-a-new-functional-logic-language",),
    ),
    DocsSource(
        "community-language",
        "Community discussion on languages",
        ("https://www.reddit.com/r/FortniteCreative/comments/1kt4r4z/what_programming_languages_would_be_helpful_for/",),
    ),
    DocsSource(
        "workshop-suggestion",
        "Workshop 2.0 suggestion (Overwatch forums)",
        ("https://us.forums.blizzard.com/en/overwatch/t/suggestion-for-workshop-20-verse-programming-language/856117",),
    ),
)


def select_guide_ids(
    question: str,
    guides: Iterable[DocumentDescriptor] = GUIDES,
    *,
    default: str = DEFAULT_GUIDE_ID,
) -> list[str]:
    """Pick guides whose keywords occur in *question*; fall back to *default*."""
    lowered = question.lower()
    matches: list[str] = []
    for guide in guides:
        if guide.id in matches:
            continue
        if any(keyword.lower() in lowered for keyword in guide.keywords):
            matches.append(guide.id)
    return matches or [default]


__all__ = [
    "DEFAULT_GUIDE_ID",
    "DOCS_REGISTRY",
    "DocsSource",
    "GUIDES",
    "SYNTAX_GUIDE_ID",
    "VERSE_FILES",
    "select_guide_ids",
]

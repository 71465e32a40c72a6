"""Rendering of retrieved entries into a prompt-ready context block."""

from __future__ import annotations

from lorekeeper.models import CharacterState, ENTRY_TYPES, RetrievedEntry

CONTEXT_HEADER = (
    "\n\n[LOREBOOK CONTEXT]\n"
    "(CANONICAL - All information below is established lore. "
    "Do not contradict these facts.)"
)

# Section order follows ENTRY_TYPES
SECTION_LABELS = {
    "character": "Characters",
    "location": "Locations",
    "item": "Items",
    "faction": "Factions",
    "concept": "Lore",
    "event": "Events",
}


def _format_line(retrieved: RetrievedEntry) -> str:
    entry = retrieved.entry
    line = f"\n  - {entry.name}: {entry.description}"
    if isinstance(entry.state, CharacterState) and entry.state.current_disposition:
        line += f" [{entry.state.current_disposition}]"
    return line


def format_context_block(
    tier1: list[RetrievedEntry],
    tier2: list[RetrievedEntry],
    tier3: list[RetrievedEntry],
) -> str:
    """Render the tiers as a block grouped by entry type.

    Returns an empty string when there is nothing to render; callers should
    omit the section in that case.
    """
    retrieved = [*tier1, *tier2, *tier3]
    if not retrieved:
        return ""

    by_type: dict[str, list[RetrievedEntry]] = {t: [] for t in ENTRY_TYPES}
    for r in retrieved:
        by_type[r.entry.type].append(r)

    block = CONTEXT_HEADER
    for entry_type in ENTRY_TYPES:
        group = by_type[entry_type]
        if not group:
            continue
        block += f"\n\n• {SECTION_LABELS[entry_type]}:"
        block += "".join(_format_line(r) for r in group)

    return block

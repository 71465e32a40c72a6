"""Deterministic inclusion rules (tier 1)."""

from __future__ import annotations

from lorekeeper.models import (
    CharacterState,
    Entry,
    EntryState,
    FactionState,
    ItemState,
    LocationState,
    RetrievedEntry,
)

ALWAYS_PRIORITY = 100
CURRENT_LOCATION_PRIORITY = 100
PRESENT_CHARACTER_PRIORITY = 95
INVENTORY_ITEM_PRIORITY = 80
FACTION_STANDING_PRIORITY = 70


def _state_match(state: EntryState | None) -> tuple[int, str] | None:
    """Return (priority, reason) when the entry's state makes it mandatory."""
    if isinstance(state, LocationState):
        if state.is_current_location:
            return CURRENT_LOCATION_PRIORITY, "current location"
    elif isinstance(state, CharacterState):
        if state.is_present:
            return PRESENT_CHARACTER_PRIORITY, "character present"
    elif isinstance(state, ItemState):
        if state.in_inventory:
            return INVENTORY_ITEM_PRIORITY, "in inventory"
    elif isinstance(state, FactionState):
        if state.status in ("allied", "hostile"):
            return FACTION_STANDING_PRIORITY, f"faction {state.status}"
    return None


def evaluate_mandatory(entries: list[Entry]) -> list[RetrievedEntry]:
    """Classify the entries that must always reach the context.

    Entries with injection policy 'never' are skipped outright. The policy
    check runs before the state check; on equal priority the earlier reason
    is kept.

    Args:
        entries: Candidate entries for the story

    Returns:
        Tier-1 RetrievedEntry records, in input order
    """
    result = []

    for entry in entries:
        if entry.injection_policy == "never":
            continue

        priority = 0
        reason = None

        if entry.injection_policy == "always":
            priority = ALWAYS_PRIORITY
            reason = "always inject"

        match = _state_match(entry.state)
        if match is not None and match[0] > priority:
            priority, reason = match

        if reason is not None:
            result.append(
                RetrievedEntry(
                    entry=entry,
                    tier=1,
                    priority=priority,
                    match_reason=reason,
                )
            )

    return result


def selection_candidates(
    entries: list[Entry],
    mandatory: list[RetrievedEntry],
) -> list[Entry]:
    """Entries eligible for reasoning selection: not mandatory, not 'never'."""
    mandatory_ids = {r.entry.id for r in mandatory}
    return [
        e
        for e in entries
        if e.id not in mandatory_ids and e.injection_policy != "never"
    ]

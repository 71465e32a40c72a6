"""Merging of tiered results into one priority-ordered list."""

from __future__ import annotations

from lorekeeper.models import RetrievedEntry


def merge_ranked(
    tier1: list[RetrievedEntry],
    tier2: list[RetrievedEntry],
    tier3: list[RetrievedEntry],
) -> list[RetrievedEntry]:
    """Concatenate the tiers and sort by descending priority.

    The sort is stable, so equal priorities keep tier order and then
    insertion order. Tiers are disjoint by construction and are not
    deduplicated here.
    """
    return sorted([*tier1, *tier2, *tier3], key=lambda r: -r.priority)

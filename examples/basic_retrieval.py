"""Basic retrieval example.

This example demonstrates:
- Building a lorebook with scene state
- Deterministic inclusion of present characters and the current location
- Reasoning selection over the remaining entries
- Injecting the context block into a narrator prompt

Set OPENAI_API_KEY (and optionally OPENAI_BASE_URL) to use a real backend.
Without a key the example falls back to a canned response.
"""

import asyncio
import os

from lorekeeper import (
    CharacterState,
    Entry,
    EntryRetrievalEngine,
    FactionState,
    ItemState,
    LocationState,
    OpenAIProvider,
    RetrievalConfig,
    StaticProvider,
    StoryTurn,
)
from lorekeeper.observability import StructlogObserver, setup_logging


def build_lorebook() -> list[Entry]:
    return [
        Entry(
            "kira",
            "character",
            "Kira",
            "A smuggler with a debt to the guild.",
            state=CharacterState(is_present=True, current_disposition="wary"),
        ),
        Entry(
            "dock",
            "location",
            "The Lower Docks",
            "Fog-bound piers below the city.",
            state=LocationState(is_current_location=True),
        ),
        Entry(
            "lantern",
            "item",
            "Storm Lantern",
            "Burns without oil.",
            state=ItemState(in_inventory=True),
        ),
        Entry(
            "guild",
            "faction",
            "Tidewater Guild",
            "Controls every berth in the harbor.",
            state=FactionState(status="hostile"),
        ),
        Entry("tides", "concept", "The Drowned Tides", "Tides that follow moonless nights."),
        Entry("flood", "event", "The Great Flood", "The night the lower city drowned."),
        Entry(
            "oracle",
            "character",
            "The Oracle",
            "Knows how the story ends.",
            injection_policy="never",
        ),
    ]


def build_provider():
    if os.getenv("OPENAI_API_KEY"):
        return OpenAIProvider(base_url=os.getenv("OPENAI_BASE_URL"))
    return StaticProvider('["flood", "tides"]')


async def main():
    setup_logging(log_level="DEBUG", log_format="console")

    engine = EntryRetrievalEngine(
        provider=build_provider(),
        config=RetrievalConfig(max_selected_entries=3),
        observer=StructlogObserver(),
    )
    history = [
        StoryTurn("user_action", "I step onto the pier."),
        StoryTurn("narration", "Kira is already waiting, coat dripping."),
    ]

    result = await engine.retrieve(
        build_lorebook(),
        "Ask Kira whether the flood was really an accident.",
        history,
    )

    print("=== Mandatory (tier 1) ===")
    for item in result.tier1:
        print(f"  {item.entry.name}: {item.match_reason} ({item.priority})")

    print("\n=== Selected (tier 2) ===")
    for item in result.tier2:
        print(f"  {item.entry.name} ({item.priority})")

    system_prompt = "You are the narrator of an interactive story." + result.context_block
    print("\n=== Narrator prompt ===")
    print(system_prompt)


if __name__ == "__main__":
    asyncio.run(main())

"""Pytest fixtures for Lorekeeper tests."""

import pytest
from lorekeeper import (
    CharacterState,
    Entry,
    FactionState,
    ItemState,
    LocationState,
    LorebookStore,
)


class RecordingObserver:
    """Observer that keeps every event for assertions."""

    def __init__(self):
        self.events = []

    def emit(self, event, level="info", **fields):
        self.events.append((event, level, fields))

    def names(self):
        return [name for name, _, _ in self.events]

    def find(self, name):
        return [(level, fields) for event, level, fields in self.events if event == name]


@pytest.fixture
def observer():
    return RecordingObserver()


@pytest.fixture
def store():
    """Create an in-memory store for testing."""
    store = LorebookStore(":memory:")
    yield store
    store.close()


@pytest.fixture
def lorebook():
    """A small mixed lorebook covering every entry type."""
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
            "Controls the harbor.",
            state=FactionState(status="hostile"),
        ),
        Entry("tides", "concept", "The Drowned Tides", "Tides that follow the moonless nights."),
        Entry("flood", "event", "The Great Flood", "The night the lower city drowned."),
        Entry(
            "ghost",
            "character",
            "The Pale Ferryman",
            "A rumor among dockhands.",
            state=CharacterState(is_present=False),
        ),
    ]


@pytest.fixture
def seeded_store(store, lorebook):
    """Store with one story holding the sample lorebook and some history."""
    store.create_story("harbor", title="Harbor Nights")
    for entry in lorebook:
        store.add_entry("harbor", entry)

    store.record_turn("harbor", "user_action", "I step onto the pier.")
    store.record_turn("harbor", "narration", "The fog swallows the lantern light.")

    return store, "harbor"

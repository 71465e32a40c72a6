"""Tests for data models and dict codecs."""

import pytest
from lorekeeper import (
    CharacterState,
    Entry,
    FactionState,
    LocationState,
    RetrievalConfig,
    RetrievedEntry,
    StoryTurn,
)
from lorekeeper.models import (
    entry_from_dict,
    entry_to_dict,
    retrieved_from_dict,
    retrieved_to_dict,
    state_from_dict,
    state_to_dict,
)


def test_entry_defaults():
    """Test that entries default to automatic injection without state."""
    entry = Entry("x1", "concept", "The Veil")

    assert entry.injection_policy == "auto"
    assert entry.injection_priority == 0
    assert entry.state is None
    assert entry.description == ""


def test_state_tag_must_match_entry_type():
    """Test that a character cannot carry location state."""
    with pytest.raises(ValueError, match="does not match entry type"):
        Entry("c1", "character", "Kira", state=LocationState(is_current_location=True))


def test_invalid_entry_type():
    with pytest.raises(ValueError, match="Invalid entry type"):
        Entry("s1", "spell", "Fireball")


def test_invalid_injection_policy():
    with pytest.raises(ValueError, match="Invalid injection policy"):
        Entry("c1", "character", "Kira", injection_policy="sometimes")


def test_invalid_faction_status():
    with pytest.raises(ValueError, match="Invalid faction status"):
        FactionState(status="friendly")


def test_invalid_turn_kind():
    with pytest.raises(ValueError, match="Invalid turn kind"):
        StoryTurn(kind="ooc", content="brb")


def test_retrieved_entry_rejects_unknown_tier():
    entry = Entry("x1", "concept", "The Veil")

    with pytest.raises(ValueError, match="Invalid tier"):
        RetrievedEntry(entry=entry, tier=4, priority=10)


def test_config_defaults():
    """Test default configuration always asks the backend."""
    config = RetrievalConfig()

    assert config.enable_reasoning_selection is True
    assert config.always_select_all is True
    assert config.selection_threshold == 0
    assert config.max_selected_entries == 0
    assert config.recent_history_window == 5


def test_config_is_immutable():
    config = RetrievalConfig()

    with pytest.raises(AttributeError):
        config.max_selected_entries = 3


@pytest.mark.parametrize(
    "kwargs",
    [
        {"selection_threshold": -1},
        {"max_selected_entries": -2},
        {"recent_history_window": -1},
        {"selection_model": "  "},
    ],
)
def test_config_rejects_invalid_values(kwargs):
    with pytest.raises(ValueError):
        RetrievalConfig(**kwargs)


def test_entry_dict_round_trip_keeps_tagged_state():
    """Test that state survives serialization with its type tag."""
    entry = Entry(
        "kira",
        "character",
        "Kira",
        "A smuggler.",
        injection_priority=3,
        state=CharacterState(is_present=True, current_disposition="wary"),
    )

    data = entry_to_dict(entry)

    assert data["state"] == {
        "type": "character",
        "is_present": True,
        "current_disposition": "wary",
    }
    assert entry_from_dict(data) == entry


def test_reserved_tier_round_trips():
    """Test that tier 3 records serialize and deserialize unchanged."""
    retrieved = RetrievedEntry(
        entry=Entry("flood", "event", "The Great Flood"),
        tier=3,
        priority=10,
        match_reason="reserved",
    )

    assert retrieved_from_dict(retrieved_to_dict(retrieved)) == retrieved


def test_state_from_dict_rejects_unknown_fields():
    with pytest.raises(ValueError, match="Invalid location state"):
        state_from_dict({"type": "location", "is_present": True})


def test_state_from_dict_rejects_unknown_tag():
    with pytest.raises(ValueError, match="Invalid state type"):
        state_from_dict({"type": "concept"})


def test_empty_state_dict_is_no_state():
    assert state_from_dict(None) is None
    assert state_from_dict({}) is None
    assert state_to_dict(None) is None

"""Tests for reasoning-based selection."""

import asyncio

import pytest
from lorekeeper import Entry, RetrievalConfig, StaticProvider, StoryTurn
from lorekeeper.selection import (
    ReasoningSelector,
    build_selection_prompt,
    parse_id_tags,
    parse_json_array,
    parse_selected_ids,
)


@pytest.fixture
def candidates():
    return [
        Entry("tides", "concept", "The Drowned Tides", "Tides that follow moonless nights."),
        Entry("flood", "event", "The Great Flood", "The night the city drowned.", injection_priority=5),
        Entry("ghost", "character", "The Pale Ferryman", "A rumor among dockhands."),
    ]


def select(selector, candidates, user_input="I look around.", history=None):
    return asyncio.run(selector.select(candidates, user_input, history or []))


# -------------------------------------------------------------------------
# Prompt
# -------------------------------------------------------------------------


def test_prompt_lists_candidates_with_id_tags(candidates):
    prompt = build_selection_prompt(candidates, "Ask about the flood", [], 5)

    assert '- ID:tides | [CONCEPT] "The Drowned Tides": Tides that follow moonless nights.' in prompt
    assert '- ID:flood | [EVENT] "The Great Flood"' in prompt
    assert '"Ask about the flood"' in prompt
    assert "(Story just started)" in prompt
    assert "If no entries are relevant, return: []" in prompt


def test_prompt_truncates_long_descriptions():
    entry = Entry("x1", "concept", "Long", "a" * 250)

    prompt = build_selection_prompt([entry], "go", [], 5)

    assert f"\"Long\": {'a' * 200}..." in prompt
    assert "a" * 201 not in prompt


def test_prompt_uses_history_window_and_turn_tags():
    history = [
        StoryTurn("narration", "first"),
        StoryTurn("user_action", "second"),
        StoryTurn("narration", "third " + "b" * 400),
    ]

    prompt = build_selection_prompt([], "go", history, 2)

    assert "first" not in prompt
    assert "[ACTION]: second" in prompt
    assert "[NARRATION]: third " in prompt
    assert "b" * 294 in prompt
    assert "b" * 295 not in prompt


def test_prompt_with_zero_window_has_no_history():
    history = [StoryTurn("narration", "The fog rolls in.")]

    prompt = build_selection_prompt([], "go", history, 0)

    assert "The fog rolls in." not in prompt
    assert "(Story just started)" in prompt


# -------------------------------------------------------------------------
# Parsing
# -------------------------------------------------------------------------


def test_parse_json_array_plain():
    assert parse_json_array('["tides", "flood"]') == ["tides", "flood"]


def test_parse_json_array_skips_bracketed_prose():
    """Test that non-JSON brackets before the array are skipped."""
    text = 'The [EVENT] entry matters.\nAnswer: [" flood ", 7, null, true]'

    assert parse_json_array(text) == ["flood", "7"]


def test_parse_json_array_skips_empty_arrays():
    """Test that an echoed empty array does not hide the real answer."""
    assert parse_json_array('Not []. Relevant: ["tides"]') == ["tides"]
    assert parse_selected_ids('If none, return: []\n["flood", "ghost"]') == ["flood", "ghost"]


def test_parse_json_array_only_empty_arrays():
    assert parse_json_array("[] and [null]") == []


def test_parse_json_array_without_array():
    assert parse_json_array("no brackets at all") is None
    assert parse_json_array("[unterminated") is None


def test_parse_id_tags():
    text = "I would pick ID:tides and also ID:flood_2 because..."

    assert parse_id_tags(text) == ["tides", "flood_2"]
    assert parse_id_tags("nothing here") is None


def test_parse_selected_ids_falls_back_to_id_tags():
    text = "Relevant: ID:tides, ID:ghost (sorry, no JSON today)"

    assert parse_selected_ids(text) == ["tides", "ghost"]


def test_parse_selected_ids_empty_array_with_no_tags():
    assert parse_selected_ids("[]") == []
    assert parse_selected_ids("") == []


# -------------------------------------------------------------------------
# Selector
# -------------------------------------------------------------------------


def test_selected_entries_are_tier_two(candidates):
    provider = StaticProvider('["flood", "tides"]')
    selector = ReasoningSelector(provider, RetrievalConfig())

    result = select(selector, candidates)

    # candidate order, not response order
    assert [r.entry.id for r in result] == ["tides", "flood"]
    assert [r.priority for r in result] == [50, 55]
    assert {r.tier for r in result} == {2}
    assert {r.match_reason for r in result} == {"selected"}


def test_single_request_with_bounded_parameters(candidates):
    provider = StaticProvider("[]")
    config = RetrievalConfig(selection_model="test-model")
    selector = ReasoningSelector(provider, config)

    select(selector, candidates)

    assert provider.call_count == 1
    request = provider.requests[0]
    assert request.model == "test-model"
    assert request.temperature == 0.2
    assert request.max_output_tokens == 500
    assert request.messages[0]["role"] == "user"
    assert "ID:ghost" in request.messages[0]["content"]


def test_unknown_ids_are_discarded(candidates):
    provider = StaticProvider('["tides", "kira", "not-an-id"]')
    selector = ReasoningSelector(provider, RetrievalConfig())

    result = select(selector, candidates)

    assert [r.entry.id for r in result] == ["tides"]


def test_max_selected_entries_truncates_in_encounter_order(candidates):
    provider = StaticProvider('["ghost", "flood", "tides"]')
    selector = ReasoningSelector(provider, RetrievalConfig(max_selected_entries=2))

    result = select(selector, candidates)

    assert [r.entry.id for r in result] == ["tides", "flood"]


@pytest.mark.parametrize(
    "config, provider_present, entries_present, reason",
    [
        (RetrievalConfig(enable_reasoning_selection=False), True, True, "disabled"),
        (RetrievalConfig(), False, True, "no provider"),
        (RetrievalConfig(), True, False, "no candidates"),
        (
            RetrievalConfig(always_select_all=False, selection_threshold=10),
            True,
            True,
            "below threshold",
        ),
    ],
)
def test_skips_without_calling_backend(
    candidates, observer, config, provider_present, entries_present, reason
):
    provider = StaticProvider('["tides"]')
    selector = ReasoningSelector(provider if provider_present else None, config, observer)

    result = select(selector, candidates if entries_present else [])

    assert result == []
    assert provider.call_count == 0
    assert observer.find("selection_skipped")[0][1]["reason"] == reason


def test_always_select_all_bypasses_threshold(candidates):
    provider = StaticProvider('["tides"]')
    config = RetrievalConfig(always_select_all=True, selection_threshold=10)
    selector = ReasoningSelector(provider, config)

    result = select(selector, candidates)

    assert provider.call_count == 1
    assert [r.entry.id for r in result] == ["tides"]


def test_threshold_met_calls_backend(candidates):
    provider = StaticProvider('["ghost"]')
    config = RetrievalConfig(always_select_all=False, selection_threshold=3)
    selector = ReasoningSelector(provider, config)

    result = select(selector, candidates)

    assert [r.entry.id for r in result] == ["ghost"]


def test_backend_failure_degrades_to_empty(candidates, observer):
    provider = StaticProvider(TimeoutError("backend timed out"))
    selector = ReasoningSelector(provider, RetrievalConfig(), observer)

    result = select(selector, candidates)

    assert result == []
    level, fields = observer.find("selection_failed")[0]
    assert level == "warning"
    assert fields["error_type"] == "TimeoutError"
    assert "timed out" in fields["error"]

"""Reasoning-based entry selection (tier 2).

Every entry that survives the deterministic rules is listed for the
reasoning backend, which is asked for the ids of all entries relevant to
the current scene. Model output is treated as untrusted: it is parsed with
an ordered list of strategies and intersected with the candidate pool.
"""

from __future__ import annotations

import asyncio
import json
import re
from typing import Callable

from lorekeeper.models import Entry, RetrievalConfig, RetrievedEntry, StoryTurn
from lorekeeper.observability import NullObserver, RetrievalObserver
from lorekeeper.providers import GenerationRequest, TextGenerationProvider

HISTORY_CHAR_BUDGET = 300
DESCRIPTION_CHAR_BUDGET = 200
SELECTION_TEMPERATURE = 0.2
SELECTION_MAX_TOKENS = 500  # many short ids, not prose
SELECTED_BASE_PRIORITY = 50

ID_TAG_PATTERN = re.compile(r"ID:([a-zA-Z0-9_-]+)")

_TURN_PREFIXES = {
    "user_action": "[ACTION]",
    "narration": "[NARRATION]",
}


def _format_history(recent_history: list[StoryTurn], window: int) -> str:
    if window <= 0:
        return ""
    return "\n\n".join(
        f"{_TURN_PREFIXES[turn.kind]}: {turn.content[:HISTORY_CHAR_BUDGET]}"
        for turn in recent_history[-window:]
    )


def _format_candidate(entry: Entry) -> str:
    description = entry.description[:DESCRIPTION_CHAR_BUDGET]
    if len(entry.description) > DESCRIPTION_CHAR_BUDGET:
        description += "..."
    return f'- ID:{entry.id} | [{entry.type.upper()}] "{entry.name}": {description}'


def build_selection_prompt(
    candidates: list[Entry],
    user_input: str,
    recent_history: list[StoryTurn],
    history_window: int,
) -> str:
    """Build the selection prompt listing every candidate by id."""
    recent_content = _format_history(recent_history, history_window)
    entry_list = "\n".join(_format_candidate(e) for e in candidates)

    return f"""You are a lorebook retrieval system. Select ALL entries that are relevant to the current narrative context.

## Current Scene
{recent_content or "(Story just started)"}

## User's Next Action
"{user_input}"

## Available Lorebook Entries
{entry_list}

## Task
Identify ALL entries that should be included in the narrator's context. Be INCLUSIVE - select any entry that:
- Is directly mentioned or referenced
- Describes a character who is present or might appear
- Describes the current or nearby location
- Contains relevant world-building, lore, or background information
- Might inform how the narrator should respond
- Has any connection to the current scene or action

Return a JSON array of entry IDs (the ID: values) for ALL relevant entries.
Format: ["id1", "id2", "id3"]

If no entries are relevant, return: []"""


# -------------------------------------------------------------------------
# Response parsing
# -------------------------------------------------------------------------


def parse_json_array(text: str) -> list[str] | None:
    """Decode the first JSON array literal in the text that holds ids.

    Empty arrays are skipped so an echoed ``return: []`` does not hide the
    real answer. Returns ``[]`` if only empty arrays were found.
    """
    decoder = json.JSONDecoder()
    found = False
    start = text.find("[")
    while start != -1:
        try:
            parsed, _ = decoder.raw_decode(text, start)
        except ValueError:
            parsed = None
        if isinstance(parsed, list):
            found = True
            ids = [
                str(item).strip()
                for item in parsed
                if isinstance(item, (str, int)) and not isinstance(item, bool)
            ]
            if any(ids):
                return [i for i in ids if i]
        start = text.find("[", start + 1)
    return [] if found else None


def parse_id_tags(text: str) -> list[str] | None:
    """Collect every ID:<id> tag echoed from the candidate listing."""
    ids = ID_TAG_PATTERN.findall(text)
    return ids or None


RESPONSE_PARSERS: tuple[Callable[[str], list[str] | None], ...] = (
    parse_json_array,
    parse_id_tags,
)


def parse_selected_ids(text: str) -> list[str]:
    """Run the parsers in order; the first non-empty result wins."""
    for parser in RESPONSE_PARSERS:
        ids = parser(text)
        if ids:
            return ids
    return []


class ReasoningSelector:
    """Selects relevant entries through one call to a reasoning backend."""

    def __init__(
        self,
        provider: TextGenerationProvider | None,
        config: RetrievalConfig,
        observer: RetrievalObserver | None = None,
    ):
        self.provider = provider
        self.config = config
        self.observer = observer or NullObserver()

    def skip_reason(self, candidates: list[Entry]) -> str | None:
        """Why no backend call will be made, or None if one will."""
        if not self.config.enable_reasoning_selection:
            return "disabled"
        if not candidates:
            return "no candidates"
        if self.provider is None:
            return "no provider"
        if (
            not self.config.always_select_all
            and len(candidates) < self.config.selection_threshold
        ):
            return "below threshold"
        return None

    async def select(
        self,
        candidates: list[Entry],
        user_input: str,
        recent_history: list[StoryTurn],
    ) -> list[RetrievedEntry]:
        """Ask the backend which candidates are relevant.

        Never raises for backend failures; those degrade to an empty
        selection and are reported to the observer.

        Args:
            candidates: Entries that are neither mandatory nor 'never'
            user_input: The user's latest input, passed verbatim
            recent_history: Recent story turns, oldest first

        Returns:
            Tier-2 RetrievedEntry records in candidate order
        """
        reason = self.skip_reason(candidates)
        if reason is not None:
            self.observer.emit(
                "selection_skipped", reason=reason, candidates=len(candidates)
            )
            return []

        prompt = build_selection_prompt(
            candidates,
            user_input,
            recent_history,
            self.config.recent_history_window,
        )
        request = GenerationRequest(
            messages=[{"role": "user", "content": prompt}],
            model=self.config.selection_model,
            temperature=SELECTION_TEMPERATURE,
            max_output_tokens=SELECTION_MAX_TOKENS,
        )

        # A child task separates the backend dropping its own request from
        # the caller cancelling retrieve().
        call = asyncio.ensure_future(self.provider.generate_text(request))
        try:
            await asyncio.wait({call})
        except asyncio.CancelledError:
            call.cancel()
            raise

        try:
            response = call.result()
        except (Exception, asyncio.CancelledError) as e:
            self.observer.emit(
                "selection_failed",
                level="warning",
                error=str(e),
                error_type=type(e).__name__,
                model=self.config.selection_model,
            )
            return []

        content = response.content or ""
        self.observer.emit(
            "selection_response",
            model=self.config.selection_model,
            response_length=len(content),
        )

        selected_ids = set(parse_selected_ids(content))
        result = [
            RetrievedEntry(
                entry=entry,
                tier=2,
                priority=SELECTED_BASE_PRIORITY + entry.injection_priority,
                match_reason="selected",
            )
            for entry in candidates
            if entry.id in selected_ids
        ]

        if self.config.max_selected_entries > 0:
            result = result[: self.config.max_selected_entries]

        self.observer.emit(
            "selection_parsed",
            selected_ids=sorted(selected_ids),
            matched=len(result),
        )
        return result

"""Entry Retrieval Engine - Core implementation."""

from __future__ import annotations

from lorekeeper.formatting import format_context_block
from lorekeeper.models import (
    Entry,
    RetrievalConfig,
    RetrievalResult,
    RetrievedEntry,
    StoryTurn,
)
from lorekeeper.observability import NullObserver, RetrievalObserver
from lorekeeper.providers import TextGenerationProvider
from lorekeeper.ranking import merge_ranked
from lorekeeper.rules import evaluate_mandatory, selection_candidates
from lorekeeper.selection import ReasoningSelector


class EntryRetrievalEngine:
    """Decides which lorebook entries reach the narrator each turn.

    Tier 1 comes from deterministic rules, tier 2 from a single reasoning
    call over everything else. Tier 3 is reserved and currently always
    empty. The engine keeps no state between calls.
    """

    def __init__(
        self,
        provider: TextGenerationProvider | None = None,
        config: RetrievalConfig | None = None,
        observer: RetrievalObserver | None = None,
    ):
        self.provider = provider
        self.config = config or RetrievalConfig()
        self.observer = observer or NullObserver()
        self.selector = ReasoningSelector(provider, self.config, self.observer)

    async def retrieve(
        self,
        entries: list[Entry],
        user_input: str,
        recent_history: list[StoryTurn],
    ) -> RetrievalResult:
        """Retrieve relevant entries using tiered injection.

        Args:
            entries: Every entry of the story
            user_input: The user's latest input
            recent_history: Recent story turns, oldest first

        Returns:
            RetrievalResult with tiers, the merged ranking and the context block
        """
        if not entries:
            return RetrievalResult.empty()

        self.observer.emit(
            "retrieval_started",
            total_entries=len(entries),
            user_input_length=len(user_input),
            recent_turns=len(recent_history),
        )

        tier1 = evaluate_mandatory(entries)
        self.observer.emit("mandatory_evaluated", tier1=len(tier1))

        candidates = selection_candidates(entries, tier1)
        tier2 = await self.selector.select(candidates, user_input, recent_history)
        tier3: list[RetrievedEntry] = []

        result = RetrievalResult(
            tier1=tier1,
            tier2=tier2,
            tier3=tier3,
            all=merge_ranked(tier1, tier2, tier3),
            context_block=format_context_block(tier1, tier2, tier3),
        )

        self.observer.emit(
            "retrieval_completed",
            tier1=len(tier1),
            tier2=len(tier2),
            context_length=len(result.context_block),
        )
        return result


async def retrieve_entries(
    entries: list[Entry],
    user_input: str,
    recent_history: list[StoryTurn],
    provider: TextGenerationProvider | None = None,
) -> RetrievalResult:
    """Run a one-off retrieval with the default configuration."""
    engine = EntryRetrievalEngine(provider)
    return await engine.retrieve(entries, user_input, recent_history)

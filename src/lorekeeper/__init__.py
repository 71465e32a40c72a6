"""Lorekeeper - Tiered lorebook retrieval for narrative generation."""

from lorekeeper.models import (
    CharacterState,
    Entry,
    FactionState,
    ItemState,
    LocationState,
    RetrievalConfig,
    RetrievalResult,
    RetrievedEntry,
    StoryTurn,
)
from lorekeeper.engine import EntryRetrievalEngine, retrieve_entries
from lorekeeper.providers import (
    GenerationRequest,
    GenerationResponse,
    OpenAIProvider,
    StaticProvider,
    TextGenerationProvider,
)
from lorekeeper.store import LorebookStore

__version__ = "0.1.0"

__all__ = [
    "EntryRetrievalEngine",
    "retrieve_entries",
    "RetrievalConfig",
    "RetrievalResult",
    "RetrievedEntry",
    "Entry",
    "CharacterState",
    "LocationState",
    "ItemState",
    "FactionState",
    "StoryTurn",
    "GenerationRequest",
    "GenerationResponse",
    "TextGenerationProvider",
    "OpenAIProvider",
    "StaticProvider",
    "LorebookStore",
]

"""Data models for Lorekeeper."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import ClassVar, Literal, Union

EntryType = Literal["character", "location", "item", "faction", "concept", "event"]
InjectionPolicy = Literal["always", "auto", "never"]
FactionStatus = Literal["neutral", "allied", "hostile"]
TurnKind = Literal["user_action", "narration"]

ENTRY_TYPES: tuple[str, ...] = (
    "character",
    "location",
    "item",
    "faction",
    "concept",
    "event",
)
INJECTION_POLICIES: tuple[str, ...] = ("always", "auto", "never")
FACTION_STATUSES: tuple[str, ...] = ("neutral", "allied", "hostile")
TURN_KINDS: tuple[str, ...] = ("user_action", "narration")
TIERS: tuple[int, ...] = (1, 2, 3)


@dataclass
class CharacterState:
    """Scene state of a character entry."""

    type: ClassVar[str] = "character"

    is_present: bool = False
    current_disposition: str | None = None


@dataclass
class LocationState:
    """Scene state of a location entry."""

    type: ClassVar[str] = "location"

    is_current_location: bool = False


@dataclass
class ItemState:
    """Scene state of an item entry."""

    type: ClassVar[str] = "item"

    in_inventory: bool = False


@dataclass
class FactionState:
    """Player standing with a faction."""

    type: ClassVar[str] = "faction"

    status: FactionStatus = "neutral"

    def __post_init__(self) -> None:
        if self.status not in FACTION_STATUSES:
            raise ValueError(f"Invalid faction status: {self.status}")


EntryState = Union[CharacterState, LocationState, ItemState, FactionState]

_STATE_CLASSES: dict[str, type] = {
    "character": CharacterState,
    "location": LocationState,
    "item": ItemState,
    "faction": FactionState,
}


@dataclass
class Entry:
    """A lorebook record.

    The state payload, when present, must be tagged with the entry's own
    type. Mismatches are rejected at construction time so that downstream
    consumers never have to guess which fields a state carries.
    """

    id: str
    type: EntryType
    name: str
    description: str = ""
    injection_policy: InjectionPolicy = "auto"
    injection_priority: int = 0
    state: EntryState | None = None

    def __post_init__(self) -> None:
        if self.type not in ENTRY_TYPES:
            raise ValueError(f"Invalid entry type: {self.type}")
        if self.injection_policy not in INJECTION_POLICIES:
            raise ValueError(f"Invalid injection policy: {self.injection_policy}")
        if self.state is not None and self.state.type != self.type:
            raise ValueError(
                f"State tag '{self.state.type}' does not match entry type "
                f"'{self.type}' for entry {self.id}"
            )


@dataclass
class StoryTurn:
    """One turn of recent narrative history."""

    kind: TurnKind
    content: str

    def __post_init__(self) -> None:
        if self.kind not in TURN_KINDS:
            raise ValueError(f"Invalid turn kind: {self.kind}")


@dataclass
class RetrievedEntry:
    """Decision record for an entry surfaced by the engine."""

    entry: Entry
    tier: int  # 1 = mandatory, 2 = reasoning-selected, 3 = reserved
    priority: int
    match_reason: str | None = None

    def __post_init__(self) -> None:
        if self.tier not in TIERS:
            raise ValueError(f"Invalid tier: {self.tier}")


@dataclass
class RetrievalResult:
    """Tiered breakdown plus the rendered context block."""

    tier1: list[RetrievedEntry] = field(default_factory=list)
    tier2: list[RetrievedEntry] = field(default_factory=list)
    tier3: list[RetrievedEntry] = field(default_factory=list)
    all: list[RetrievedEntry] = field(default_factory=list)
    context_block: str = ""

    @classmethod
    def empty(cls) -> RetrievalResult:
        return cls()


@dataclass(frozen=True)
class RetrievalConfig:
    """Configuration for EntryRetrievalEngine."""

    enable_reasoning_selection: bool = True
    always_select_all: bool = True  # bypasses selection_threshold
    selection_threshold: int = 0  # min candidates before the backend is asked
    max_selected_entries: int = 0  # 0 = unlimited
    recent_history_window: int = 5
    selection_model: str = "x-ai/grok-4.1-fast"

    def __post_init__(self) -> None:
        for name in (
            "selection_threshold",
            "max_selected_entries",
            "recent_history_window",
        ):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be >= 0")
        if not self.selection_model.strip():
            raise ValueError("selection_model must be a non-empty string")


# -------------------------------------------------------------------------
# Dict codecs
# -------------------------------------------------------------------------


def state_to_dict(state: EntryState | None) -> dict | None:
    """Serialize a state payload, tagged with its entry type."""
    if state is None:
        return None
    if isinstance(state, CharacterState):
        return {
            "type": state.type,
            "is_present": state.is_present,
            "current_disposition": state.current_disposition,
        }
    if isinstance(state, LocationState):
        return {"type": state.type, "is_current_location": state.is_current_location}
    if isinstance(state, ItemState):
        return {"type": state.type, "in_inventory": state.in_inventory}
    return {"type": state.type, "status": state.status}


def state_from_dict(data: dict | None) -> EntryState | None:
    """Build a state payload from its tagged dict form."""
    if not data:
        return None
    tag = data.get("type")
    state_cls = _STATE_CLASSES.get(tag)
    if state_cls is None:
        raise ValueError(f"Invalid state type: {tag}")
    fields = {key: value for key, value in data.items() if key != "type"}
    try:
        return state_cls(**fields)
    except TypeError as e:
        raise ValueError(f"Invalid {tag} state: {e}") from e


def entry_to_dict(entry: Entry) -> dict:
    return {
        "id": entry.id,
        "type": entry.type,
        "name": entry.name,
        "description": entry.description,
        "injection_policy": entry.injection_policy,
        "injection_priority": entry.injection_priority,
        "state": state_to_dict(entry.state),
    }


def entry_from_dict(data: dict) -> Entry:
    return Entry(
        id=str(data["id"]),
        type=data["type"],
        name=data["name"],
        description=data.get("description", ""),
        injection_policy=data.get("injection_policy", "auto"),
        injection_priority=int(data.get("injection_priority", 0)),
        state=state_from_dict(data.get("state")),
    )


def retrieved_to_dict(retrieved: RetrievedEntry) -> dict:
    return {
        "entry": entry_to_dict(retrieved.entry),
        "tier": retrieved.tier,
        "priority": retrieved.priority,
        "match_reason": retrieved.match_reason,
    }


def retrieved_from_dict(data: dict) -> RetrievedEntry:
    return RetrievedEntry(
        entry=entry_from_dict(data["entry"]),
        tier=int(data["tier"]),
        priority=int(data["priority"]),
        match_reason=data.get("match_reason"),
    )


def result_to_dict(result: RetrievalResult) -> dict:
    return {
        "tier1": [retrieved_to_dict(r) for r in result.tier1],
        "tier2": [retrieved_to_dict(r) for r in result.tier2],
        "tier3": [retrieved_to_dict(r) for r in result.tier3],
        "all": [retrieved_to_dict(r) for r in result.all],
        "context_block": result.context_block,
    }

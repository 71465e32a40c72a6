"""Lorebook Store - sqlite-backed source of entries and story turns."""

from __future__ import annotations

import json
import sqlite3
from pathlib import Path

from lorekeeper.models import (
    Entry,
    EntryState,
    INJECTION_POLICIES,
    StoryTurn,
    state_from_dict,
    state_to_dict,
)
from lorekeeper.queries import (
    build_entries_query,
    build_next_position_query,
    build_recent_turns_query,
)


class LorebookStore:
    """Persistent lorebook: stories, their entries and their turn history."""

    def __init__(self, db_path: str):
        self.db_path = db_path
        self.db = sqlite3.connect(db_path)
        self.db.row_factory = sqlite3.Row
        self.db.execute("PRAGMA foreign_keys = ON")
        self._init_schema()

    def _init_schema(self) -> None:
        """Initialize database schema."""
        schema_path = Path(__file__).parent / "schema.sql"
        with open(schema_path) as f:
            schema = f.read()
        self.db.executescript(schema)
        self.db.commit()

    def close(self) -> None:
        """Close database connection."""
        self.db.close()

    def __enter__(self) -> LorebookStore:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    # -------------------------------------------------------------------------
    # Story Operations
    # -------------------------------------------------------------------------

    def create_story(self, id: str, title: str | None = None) -> str:
        """Create a story that owns entries and turns.

        Args:
            id: Unique identifier for the story
            title: Human-readable title

        Returns:
            The story id
        """
        self.db.execute(
            "INSERT INTO stories (id, title) VALUES (?, ?)",
            (id, title),
        )
        self.db.commit()
        return id

    def list_stories(self) -> list[dict]:
        rows = self.db.execute(
            "SELECT id, title, created_at FROM stories ORDER BY created_at, id"
        ).fetchall()
        return [dict(row) for row in rows]

    def _require_story(self, story_id: str) -> None:
        row = self.db.execute(
            "SELECT 1 FROM stories WHERE id = ?", (story_id,)
        ).fetchone()
        if row is None:
            raise ValueError(f"Story not found: {story_id}")

    # -------------------------------------------------------------------------
    # Entry Operations
    # -------------------------------------------------------------------------

    def add_entry(self, story_id: str, entry: Entry) -> str:
        """Add an entry to a story's lorebook.

        Args:
            story_id: Owning story
            entry: The entry; its id must be unique within the story

        Returns:
            The entry id
        """
        self._require_story(story_id)
        position = self.db.execute(
            build_next_position_query(), {"story_id": story_id}
        ).fetchone()["next_position"]

        self.db.execute(
            """
            INSERT INTO entries (
                story_id, id, type, name, description,
                injection_policy, injection_priority, state, position
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                story_id,
                entry.id,
                entry.type,
                entry.name,
                entry.description,
                entry.injection_policy,
                entry.injection_priority,
                self._dump_state(entry.state),
                position,
            ),
        )
        self.db.commit()
        return entry.id

    def get_entry(self, story_id: str, entry_id: str) -> Entry | None:
        """Get a single entry."""
        row = self.db.execute(
            """
            SELECT id, type, name, description, injection_policy, injection_priority, state
            FROM entries
            WHERE story_id = ? AND id = ?
            """,
            (story_id, entry_id),
        ).fetchone()
        if row is None:
            return None
        return self._row_to_entry(row)

    def list_entries(
        self,
        story_id: str,
        entry_type: str | None = None,
        include_never: bool = True,
    ) -> list[Entry]:
        """List a story's entries in insertion order.

        Args:
            story_id: Which story
            entry_type: Only entries of this type
            include_never: Whether to include entries with policy 'never'

        Returns:
            List of Entry objects
        """
        self._require_story(story_id)
        rows = self.db.execute(
            build_entries_query(entry_type, include_never),
            {"story_id": story_id, "entry_type": entry_type},
        ).fetchall()
        return [self._row_to_entry(row) for row in rows]

    def update_entry_state(
        self,
        story_id: str,
        entry_id: str,
        state: EntryState | None,
    ) -> None:
        """Replace an entry's state payload.

        Args:
            story_id: Owning story
            entry_id: Entry to update
            state: New state, tagged with the entry's type (None clears it)
        """
        entry = self._require_entry(story_id, entry_id)
        if state is not None and state.type != entry.type:
            raise ValueError(
                f"State tag '{state.type}' does not match entry type "
                f"'{entry.type}' for entry {entry_id}"
            )

        self.db.execute(
            """
            UPDATE entries SET state = ?, updated_at = datetime('now')
            WHERE story_id = ? AND id = ?
            """,
            (self._dump_state(state), story_id, entry_id),
        )
        self.db.commit()

    def set_injection(
        self,
        story_id: str,
        entry_id: str,
        policy: str,
        priority: int | None = None,
    ) -> None:
        """Update an entry's injection policy and, optionally, its priority.

        Args:
            story_id: Owning story
            entry_id: Entry to update
            policy: 'always', 'auto' or 'never'
            priority: New injection priority; unchanged when None
        """
        if policy not in INJECTION_POLICIES:
            raise ValueError(f"Invalid injection policy: {policy}")
        entry = self._require_entry(story_id, entry_id)

        self.db.execute(
            """
            UPDATE entries
            SET injection_policy = ?, injection_priority = ?, updated_at = datetime('now')
            WHERE story_id = ? AND id = ?
            """,
            (
                policy,
                entry.injection_priority if priority is None else priority,
                story_id,
                entry_id,
            ),
        )
        self.db.commit()

    def remove_entry(self, story_id: str, entry_id: str) -> bool:
        """Delete an entry. Returns whether anything was removed."""
        cursor = self.db.execute(
            "DELETE FROM entries WHERE story_id = ? AND id = ?",
            (story_id, entry_id),
        )
        self.db.commit()
        return cursor.rowcount > 0

    def _require_entry(self, story_id: str, entry_id: str) -> Entry:
        entry = self.get_entry(story_id, entry_id)
        if entry is None:
            raise ValueError(f"Entry not found: {entry_id}")
        return entry

    # -------------------------------------------------------------------------
    # Turn Operations
    # -------------------------------------------------------------------------

    def record_turn(self, story_id: str, kind: str, content: str) -> int:
        """Append a turn to the story's history.

        Args:
            story_id: Owning story
            kind: 'user_action' or 'narration'
            content: Turn text

        Returns:
            The turn id
        """
        turn = StoryTurn(kind=kind, content=content)
        self._require_story(story_id)
        cursor = self.db.execute(
            "INSERT INTO story_turns (story_id, kind, content) VALUES (?, ?, ?)",
            (story_id, turn.kind, turn.content),
        )
        self.db.commit()
        return cursor.lastrowid

    def recent_turns(self, story_id: str, limit: int) -> list[StoryTurn]:
        """Get the latest turns of a story, oldest first."""
        if limit <= 0:
            return []
        rows = self.db.execute(
            build_recent_turns_query(),
            {"story_id": story_id, "limit": limit},
        ).fetchall()
        return [StoryTurn(kind=row["kind"], content=row["content"]) for row in rows]

    # -------------------------------------------------------------------------
    # Row mapping
    # -------------------------------------------------------------------------

    @staticmethod
    def _dump_state(state: EntryState | None) -> str | None:
        data = state_to_dict(state)
        return json.dumps(data) if data is not None else None

    @staticmethod
    def _row_to_entry(row: sqlite3.Row) -> Entry:
        return Entry(
            id=row["id"],
            type=row["type"],
            name=row["name"],
            description=row["description"],
            injection_policy=row["injection_policy"],
            injection_priority=row["injection_priority"],
            state=state_from_dict(json.loads(row["state"])) if row["state"] else None,
        )

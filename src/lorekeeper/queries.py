"""SQL query builders for the lorebook store."""


def build_entries_query(entry_type: str | None = None, include_never: bool = True) -> str:
    """Build query for a story's entries in insertion order."""
    query = """
    SELECT id, type, name, description, injection_policy, injection_priority, state
    FROM entries
    WHERE story_id = :story_id"""
    if entry_type is not None:
        query += " AND type = :entry_type"
    if not include_never:
        query += " AND injection_policy != 'never'"
    return query + "\n    ORDER BY position\n    "


def build_next_position_query() -> str:
    """Build query for the next insertion position within a story."""
    return """
    SELECT COALESCE(MAX(position), -1) + 1 AS next_position
    FROM entries
    WHERE story_id = :story_id
    """


def build_recent_turns_query() -> str:
    """Build query for the latest turns of a story, oldest first."""
    return """
    SELECT kind, content FROM (
        SELECT id, kind, content
        FROM story_turns
        WHERE story_id = :story_id
        ORDER BY id DESC
        LIMIT :limit
    )
    ORDER BY id
    """

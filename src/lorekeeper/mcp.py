"""MCP server for the Lorekeeper retrieval engine.

Exposes the lorebook store and tiered retrieval through Model Context
Protocol tools.
"""

from __future__ import annotations

import asyncio
import json
import os
from typing import Any

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool

from lorekeeper.engine import EntryRetrievalEngine
from lorekeeper.models import (
    ENTRY_TYPES,
    INJECTION_POLICIES,
    RetrievalConfig,
    entry_from_dict,
    entry_to_dict,
    result_to_dict,
    state_from_dict,
)
from lorekeeper.observability import StructlogObserver, setup_logging
from lorekeeper.providers import OpenAIProvider, StaticProvider, TextGenerationProvider
from lorekeeper.store import LorebookStore

# Global instances (initialized on first use)
_store: LorebookStore | None = None
_engine: EntryRetrievalEngine | None = None


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def get_store() -> LorebookStore:
    """Get or initialize the store instance."""
    global _store
    if _store is None:
        _store = LorebookStore(os.getenv("LOREKEEPER_DB_PATH", "lorebook.db"))
    return _store


def build_provider() -> TextGenerationProvider | None:
    """Build the reasoning backend selected by LOREKEEPER_PROVIDER."""
    backend = os.getenv("LOREKEEPER_PROVIDER", "openai")
    if backend == "none":
        return None
    if backend == "static":
        return StaticProvider(os.getenv("LOREKEEPER_STATIC_RESPONSE", "[]"))
    if backend == "openai":
        return OpenAIProvider(
            api_key=os.getenv("LOREKEEPER_API_KEY"),
            base_url=os.getenv("LOREKEEPER_BASE_URL"),
            timeout=float(os.getenv("LOREKEEPER_TIMEOUT", "60")),
        )
    raise ValueError(f"Unknown provider backend: {backend}")


def get_engine() -> EntryRetrievalEngine:
    """Get or initialize the engine instance."""
    global _engine
    if _engine is None:
        defaults = RetrievalConfig()
        config = RetrievalConfig(
            enable_reasoning_selection=_env_bool(
                "LOREKEEPER_ENABLE_SELECTION", defaults.enable_reasoning_selection
            ),
            always_select_all=_env_bool(
                "LOREKEEPER_ALWAYS_SELECT_ALL", defaults.always_select_all
            ),
            selection_threshold=int(
                os.getenv("LOREKEEPER_SELECTION_THRESHOLD", defaults.selection_threshold)
            ),
            max_selected_entries=int(
                os.getenv("LOREKEEPER_MAX_SELECTED", defaults.max_selected_entries)
            ),
            recent_history_window=int(
                os.getenv("LOREKEEPER_HISTORY_WINDOW", defaults.recent_history_window)
            ),
            selection_model=os.getenv(
                "LOREKEEPER_SELECTION_MODEL", defaults.selection_model
            ),
        )
        _engine = EntryRetrievalEngine(
            provider=build_provider(),
            config=config,
            observer=StructlogObserver(),
        )
    return _engine


# Initialize server
server = Server("lorekeeper")


# -------------------------------------------------------------------------
# Tool Definitions
# -------------------------------------------------------------------------

STATE_SCHEMA = {
    "type": "object",
    "description": (
        "State tagged with the entry type, e.g. "
        '{"type": "character", "is_present": true, "current_disposition": "wary"}'
    ),
    "properties": {
        "type": {"type": "string", "enum": ["character", "location", "item", "faction"]},
        "is_present": {"type": "boolean"},
        "current_disposition": {"type": "string"},
        "is_current_location": {"type": "boolean"},
        "in_inventory": {"type": "boolean"},
        "status": {"type": "string", "enum": ["neutral", "allied", "hostile"]},
    },
    "required": ["type"],
}

TOOLS = [
    Tool(
        name="create_story",
        description="Create a story that owns lorebook entries and turn history",
        inputSchema={
            "type": "object",
            "properties": {
                "id": {"type": "string", "description": "Unique identifier"},
                "title": {"type": "string", "description": "Human-readable title"},
            },
            "required": ["id"],
        },
    ),
    Tool(
        name="add_entry",
        description="Add a lorebook entry to a story",
        inputSchema={
            "type": "object",
            "properties": {
                "story_id": {"type": "string"},
                "id": {"type": "string", "description": "Unique within the story"},
                "type": {"type": "string", "enum": list(ENTRY_TYPES)},
                "name": {"type": "string"},
                "description": {"type": "string"},
                "injection_policy": {
                    "type": "string",
                    "enum": list(INJECTION_POLICIES),
                    "default": "auto",
                },
                "injection_priority": {"type": "integer", "default": 0},
                "state": STATE_SCHEMA,
            },
            "required": ["story_id", "id", "type", "name"],
        },
    ),
    Tool(
        name="get_entry",
        description="Get a lorebook entry",
        inputSchema={
            "type": "object",
            "properties": {
                "story_id": {"type": "string"},
                "entry_id": {"type": "string"},
            },
            "required": ["story_id", "entry_id"],
        },
    ),
    Tool(
        name="list_entries",
        description="List a story's lorebook entries, optionally filtered by type",
        inputSchema={
            "type": "object",
            "properties": {
                "story_id": {"type": "string"},
                "entry_type": {"type": "string", "enum": list(ENTRY_TYPES)},
            },
            "required": ["story_id"],
        },
    ),
    Tool(
        name="update_entry_state",
        description="Replace an entry's scene state (presence, location, inventory, standing)",
        inputSchema={
            "type": "object",
            "properties": {
                "story_id": {"type": "string"},
                "entry_id": {"type": "string"},
                "state": STATE_SCHEMA,
            },
            "required": ["story_id", "entry_id"],
        },
    ),
    Tool(
        name="set_injection",
        description="Set an entry's injection policy (always/auto/never) and priority",
        inputSchema={
            "type": "object",
            "properties": {
                "story_id": {"type": "string"},
                "entry_id": {"type": "string"},
                "policy": {"type": "string", "enum": list(INJECTION_POLICIES)},
                "priority": {"type": "integer"},
            },
            "required": ["story_id", "entry_id", "policy"],
        },
    ),
    Tool(
        name="remove_entry",
        description="Delete a lorebook entry",
        inputSchema={
            "type": "object",
            "properties": {
                "story_id": {"type": "string"},
                "entry_id": {"type": "string"},
            },
            "required": ["story_id", "entry_id"],
        },
    ),
    Tool(
        name="record_turn",
        description="Append a user action or narration to the story's history",
        inputSchema={
            "type": "object",
            "properties": {
                "story_id": {"type": "string"},
                "kind": {"type": "string", "enum": ["user_action", "narration"]},
                "content": {"type": "string"},
            },
            "required": ["story_id", "kind", "content"],
        },
    ),
    Tool(
        name="retrieve_context",
        description="Select the lorebook entries relevant to the next turn and render the context block",
        inputSchema={
            "type": "object",
            "properties": {
                "story_id": {"type": "string"},
                "user_input": {
                    "type": "string",
                    "description": "The user's next action, verbatim",
                },
            },
            "required": ["story_id", "user_input"],
        },
    ),
]


# -------------------------------------------------------------------------
# MCP Handlers
# -------------------------------------------------------------------------


@server.list_tools()
async def list_tools() -> list[Tool]:
    """List available tools."""
    return TOOLS


@server.call_tool()
async def call_tool(name: str, arguments: dict[str, Any]) -> list[TextContent]:
    """Handle tool calls."""
    try:
        store = get_store()

        if name == "create_story":
            result = store.create_story(
                id=arguments["id"],
                title=arguments.get("title"),
            )
            return [TextContent(type="text", text=f"Created story: {result}")]

        elif name == "add_entry":
            entry = entry_from_dict(
                {k: v for k, v in arguments.items() if k != "story_id"}
            )
            result = store.add_entry(arguments["story_id"], entry)
            return [TextContent(type="text", text=f"Added entry: {result}")]

        elif name == "get_entry":
            entry = store.get_entry(arguments["story_id"], arguments["entry_id"])
            if entry is None:
                return [
                    TextContent(
                        type="text",
                        text=f"Entry not found: {arguments['entry_id']}",
                    )
                ]
            return [
                TextContent(type="text", text=json.dumps(entry_to_dict(entry), indent=2))
            ]

        elif name == "list_entries":
            entries = store.list_entries(
                arguments["story_id"],
                entry_type=arguments.get("entry_type"),
            )
            result = [entry_to_dict(e) for e in entries]
            return [TextContent(type="text", text=json.dumps(result, indent=2))]

        elif name == "update_entry_state":
            store.update_entry_state(
                arguments["story_id"],
                arguments["entry_id"],
                state_from_dict(arguments.get("state")),
            )
            return [
                TextContent(
                    type="text",
                    text=f"Updated state of entry {arguments['entry_id']}",
                )
            ]

        elif name == "set_injection":
            store.set_injection(
                arguments["story_id"],
                arguments["entry_id"],
                policy=arguments["policy"],
                priority=arguments.get("priority"),
            )
            return [
                TextContent(
                    type="text",
                    text=f"Set entry {arguments['entry_id']} injection to {arguments['policy']}",
                )
            ]

        elif name == "remove_entry":
            removed = store.remove_entry(arguments["story_id"], arguments["entry_id"])
            text = (
                f"Removed entry: {arguments['entry_id']}"
                if removed
                else f"Entry not found: {arguments['entry_id']}"
            )
            return [TextContent(type="text", text=text)]

        elif name == "record_turn":
            result = store.record_turn(
                arguments["story_id"],
                kind=arguments["kind"],
                content=arguments["content"],
            )
            return [TextContent(type="text", text=f"Recorded turn: {result}")]

        elif name == "retrieve_context":
            engine = get_engine()
            story_id = arguments["story_id"]
            entries = store.list_entries(story_id)
            history = store.recent_turns(
                story_id, engine.config.recent_history_window
            )
            retrieval = await engine.retrieve(
                entries, arguments["user_input"], history
            )
            return [
                TextContent(
                    type="text", text=json.dumps(result_to_dict(retrieval), indent=2)
                )
            ]

        else:
            return [TextContent(type="text", text=f"Unknown tool: {name}")]

    except Exception as e:
        return [TextContent(type="text", text=f"Error: {str(e)}")]


# -------------------------------------------------------------------------
# Main Entry Point
# -------------------------------------------------------------------------


async def main():
    """Run the MCP server."""
    setup_logging(
        log_level=os.getenv("LOREKEEPER_LOG_LEVEL", "INFO"),
        log_format=os.getenv("LOREKEEPER_LOG_FORMAT", "json"),
    )
    async with stdio_server() as (read_stream, write_stream):
        await server.run(
            read_stream,
            write_stream,
            server.create_initialization_options(),
        )


def run() -> None:
    """Console entry point."""
    asyncio.run(main())


if __name__ == "__main__":
    run()

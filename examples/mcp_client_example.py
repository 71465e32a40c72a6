"""Example of using Lorekeeper through MCP.

This demonstrates how a narrator or orchestrator would build a lorebook and
ask for context before generating the next turn.
"""

import asyncio
import json
from mcp import ClientSession, StdioServerParameters
from mcp.client.stdio import stdio_client


async def run_example():
    """Run example MCP interactions."""
    # The static backend always "selects" the flood, so no API key is needed
    server_params = StdioServerParameters(
        command="lorekeeper-mcp",
        env={
            "LOREKEEPER_DB_PATH": "example_lorebook.db",
            "LOREKEEPER_PROVIDER": "static",
            "LOREKEEPER_STATIC_RESPONSE": '["flood"]',
            "LOREKEEPER_LOG_FORMAT": "console",
        },
    )

    async with stdio_client(server_params) as (read, write):
        async with ClientSession(read, write) as session:
            await session.initialize()

            tools = await session.list_tools()
            print(f"Available tools: {[t.name for t in tools.tools]}")

            print("\n=== Creating story ===")
            await session.call_tool(
                "create_story", {"id": "harbor", "title": "Harbor Nights"}
            )

            print("\n=== Adding entries ===")
            await session.call_tool(
                "add_entry",
                {
                    "story_id": "harbor",
                    "id": "kira",
                    "type": "character",
                    "name": "Kira",
                    "description": "A smuggler with a debt to the guild.",
                    "state": {
                        "type": "character",
                        "is_present": True,
                        "current_disposition": "wary",
                    },
                },
            )
            await session.call_tool(
                "add_entry",
                {
                    "story_id": "harbor",
                    "id": "dock",
                    "type": "location",
                    "name": "The Lower Docks",
                    "description": "Fog-bound piers below the city.",
                    "state": {"type": "location", "is_current_location": True},
                },
            )
            await session.call_tool(
                "add_entry",
                {
                    "story_id": "harbor",
                    "id": "flood",
                    "type": "event",
                    "name": "The Great Flood",
                    "description": "The night the lower city drowned.",
                },
            )

            print("\n=== Recording history ===")
            await session.call_tool(
                "record_turn",
                {
                    "story_id": "harbor",
                    "kind": "narration",
                    "content": "Kira watches the waterline with narrowed eyes.",
                },
            )

            print("\n=== Retrieving context ===")
            result = await session.call_tool(
                "retrieve_context",
                {
                    "story_id": "harbor",
                    "user_input": "Ask Kira what happened the night of the flood.",
                },
            )
            data = json.loads(result.content[0].text)
            for item in data["all"]:
                entry = item["entry"]
                print(f"  tier {item['tier']} ({item['priority']}) {entry['name']}")
            print(data["context_block"])


if __name__ == "__main__":
    asyncio.run(run_example())

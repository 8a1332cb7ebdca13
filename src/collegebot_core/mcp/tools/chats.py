"""Chat tools: inspect chats and their enrichment state."""

import json

from mcp.server.fastmcp import FastMCP

from collegebot_core.mcp.config import MCPConfig, get_stores


def register(mcp: FastMCP, config: MCPConfig) -> None:
    """Register chat tools on the MCP server.

    Args:
        mcp: FastMCP server instance.
        config: MCP configuration.
    """

    @mcp.tool()
    def get_chats(student_id: str, unprocessed_only: bool = False) -> str:
        """List the student's chats with their processing state."""
        try:
            store = get_stores(config).chats
            chats = (
                store.list_unprocessed(student_id)
                if unprocessed_only
                else store.list_chats(student_id)
            )
            return json.dumps(
                [
                    {
                        "id": chat.id,
                        "title": chat.title,
                        "messageCount": len(chat.messages),
                        "processed": chat.processed,
                        "stale": chat.is_stale,
                        "updatedAt": chat.updated_at.isoformat(),
                    }
                    for chat in chats
                ],
                indent=2,
            )
        except Exception as e:
            return f"Error: {str(e)}"

    @mcp.tool()
    def mark_chat_processed(student_id: str, chat_id: str) -> str:
        """Record that a chat has been fully analysed."""
        try:
            store = get_stores(config).chats
            chat = store.get_chat(student_id, chat_id)
            if chat is None:
                return f"Error: Chat {chat_id} not found."
            store.set_processed(student_id, chat_id, True, chat.last_message_at)
            return f"Marked chat {chat_id} processed."
        except Exception as e:
            return f"Error: {str(e)}"

    @mcp.tool()
    def mark_chats_unprocessed(student_id: str, chat_ids: list[str]) -> str:
        """Reset chats so the next enrichment run analyses them again."""
        try:
            store = get_stores(config).chats
            flipped = [
                chat_id
                for chat_id in chat_ids
                if store.set_processed(student_id, chat_id, False)
            ]
            return json.dumps({"unprocessed": flipped})
        except Exception as e:
            return f"Error: {str(e)}"

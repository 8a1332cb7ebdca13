"""Conversation records and their enrichment processing state."""

from collegebot_core.chats.models import Chat, ChatMessage
from collegebot_core.chats.store import ChatStore

__all__ = ["Chat", "ChatMessage", "ChatStore"]

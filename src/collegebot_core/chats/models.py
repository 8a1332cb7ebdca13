"""Conversation records and their processing state."""

from datetime import datetime, timezone
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _now() -> datetime:
    return datetime.now(timezone.utc)


class ChatMessage(BaseModel):
    """One message of a conversation."""

    role: Literal["user", "assistant", "thinking", "answer"]
    content: str
    timestamp: datetime = Field(default_factory=_now)

    @field_validator("timestamp")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        # Naive timestamps are UTC; comparisons need aware values.
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class Chat(BaseModel):
    """A student's conversation with the research agent.

    ``processed`` flips to True when an enrichment pass completes and
    records the newest message timestamp seen at that point. A chat whose
    newest message is later than that timestamp is stale.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str
    student_id: str = Field("", alias="studentId")
    title: str = ""
    messages: list[ChatMessage] = Field(default_factory=list)
    processed: bool = False
    processed_at: Optional[datetime] = Field(None, alias="processedAt")
    last_processed_message_at: Optional[datetime] = Field(
        None, alias="lastProcessedMessageAt"
    )
    created_at: datetime = Field(default_factory=_now, alias="createdAt")
    updated_at: datetime = Field(default_factory=_now, alias="updatedAt")

    @property
    def last_message_at(self) -> Optional[datetime]:
        """Timestamp of the most recent message, if any."""
        if not self.messages:
            return None
        return max(message.timestamp for message in self.messages)

    @property
    def is_stale(self) -> bool:
        """Processed, but a message arrived after the last enrichment pass."""
        if not self.processed:
            return False
        latest = self.last_message_at
        if latest is None:
            return False
        if self.last_processed_message_at is None:
            return True
        return latest > self.last_processed_message_at

    def transcript(self) -> list[dict[str, str]]:
        """Messages in the ``{role, content}`` shape the agent expects."""
        return [
            {"role": m.role, "content": m.content}
            for m in self.messages
            if m.role in ("user", "assistant", "answer")
        ]

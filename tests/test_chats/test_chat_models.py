"""Tests for chat models and the staleness rule."""

from datetime import datetime, timedelta, timezone

from collegebot_core.chats.models import ChatMessage
from collegebot_core.testing import make_chat, make_message


class TestChatMessage:
    def test_naive_timestamp_assumed_utc(self) -> None:
        msg = ChatMessage(role="user", content="hi", timestamp=datetime(2024, 1, 1, 9, 0))
        assert msg.timestamp.tzinfo is timezone.utc


class TestChat:
    def test_last_message_at(self) -> None:
        chat = make_chat(message_count=3)
        assert chat.last_message_at == chat.messages[2].timestamp

    def test_empty_chat_has_no_last_message(self) -> None:
        assert make_chat(message_count=0).last_message_at is None

    def test_unprocessed_chat_is_not_stale(self) -> None:
        assert make_chat().is_stale is False

    def test_processed_chat_with_newer_message_is_stale(self) -> None:
        chat = make_chat(message_count=2)
        chat.processed = True
        chat.last_processed_message_at = chat.messages[0].timestamp
        assert chat.is_stale is True

    def test_processed_chat_up_to_date(self) -> None:
        chat = make_chat(message_count=2)
        chat.processed = True
        chat.last_processed_message_at = chat.last_message_at
        assert chat.is_stale is False

    def test_transcript_drops_thinking(self) -> None:
        chat = make_chat(
            message_count=0,
            messages=[
                make_message(0, content="Which schools?"),
                make_message(1, role="thinking", content="(reasoning)"),
                make_message(2, role="answer", content="Stanford"),
            ],
        )
        assert chat.transcript() == [
            {"role": "user", "content": "Which schools?"},
            {"role": "answer", "content": "Stanford"},
        ]

    def test_accepts_camel_case(self) -> None:
        chat = make_chat(
            processed=True,
            lastProcessedMessageAt=datetime(2024, 1, 1, tzinfo=timezone.utc) + timedelta(days=1),
        )
        assert chat.last_processed_message_at.day == 2

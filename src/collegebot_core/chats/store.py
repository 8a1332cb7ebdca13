"""Per-student conversation store with processing state.

Backs the ``processed`` lifecycle: chats start unprocessed, flip to
processed when an enrichment pass completes, and flip back on an explicit
reset or when the staleness sweep finds messages newer than the pass.
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime
from typing import Optional

from collegebot_core.chats.models import Chat, ChatMessage
from collegebot_core.errors import ChatNotFoundError
from collegebot_core.sqlite import SQLiteStore, dumps, from_iso, loads, to_iso, utcnow

logger = logging.getLogger(__name__)


class ChatStore(SQLiteStore):
    """Chat store backed by SQLite."""

    SCHEMA = (
        """
        CREATE TABLE IF NOT EXISTS chats (
            id TEXT NOT NULL,
            student_id TEXT NOT NULL,
            title TEXT DEFAULT '',
            messages TEXT DEFAULT '[]',
            processed INTEGER NOT NULL DEFAULT 0,
            processed_at TEXT,
            last_processed_message_at TEXT,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL,
            PRIMARY KEY (student_id, id)
        )
        """,
        """
        CREATE INDEX IF NOT EXISTS idx_chats_processed
        ON chats(student_id, processed)
        """,
    )

    def list_chats(self, student_id: str) -> list[Chat]:
        """All chats for a student, oldest first."""
        with self._get_connection() as conn:
            rows = conn.execute(
                "SELECT * FROM chats WHERE student_id = ? ORDER BY created_at, id",
                (student_id,),
            ).fetchall()
            return [self._row_to_chat(row) for row in rows]

    def list_unprocessed(self, student_id: str) -> list[Chat]:
        """Chats still waiting for an enrichment pass, oldest first."""
        with self._get_connection() as conn:
            rows = conn.execute(
                "SELECT * FROM chats WHERE student_id = ? AND processed = 0 "
                "ORDER BY created_at, id",
                (student_id,),
            ).fetchall()
            return [self._row_to_chat(row) for row in rows]

    def get_chat(self, student_id: str, chat_id: str) -> Optional[Chat]:
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT * FROM chats WHERE student_id = ? AND id = ?",
                (student_id, chat_id),
            ).fetchone()
            return self._row_to_chat(row) if row else None

    def require_chat(self, student_id: str, chat_id: str) -> Chat:
        """Like get_chat, but raises ChatNotFoundError for unknown ids."""
        chat = self.get_chat(student_id, chat_id)
        if chat is None:
            raise ChatNotFoundError(student_id, chat_id)
        return chat

    def most_recent_chat(self, student_id: str) -> Optional[Chat]:
        """The chat with the latest ``updated_at``."""
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT * FROM chats WHERE student_id = ? "
                "ORDER BY updated_at DESC LIMIT 1",
                (student_id,),
            ).fetchone()
            return self._row_to_chat(row) if row else None

    def upsert_chat(self, student_id: str, chat: Chat) -> Chat:
        """Save a chat, preserving its creation time.

        A new chat, or one whose message count changed, is stored as
        unprocessed. Otherwise the stored processing state is kept.

        Args:
            student_id: Owning student.
            chat: Chat to save.

        Returns:
            The chat as stored.
        """
        now = utcnow()
        with self._transaction() as conn:
            row = conn.execute(
                "SELECT * FROM chats WHERE student_id = ? AND id = ?",
                (student_id, chat.id),
            ).fetchone()
            existing = self._row_to_chat(row) if row else None

            update: dict = {"student_id": student_id, "updated_at": now}
            if existing is None:
                update.update(
                    processed=False, processed_at=None, last_processed_message_at=None
                )
            else:
                update["created_at"] = existing.created_at
                if len(existing.messages) != len(chat.messages):
                    update.update(
                        processed=False,
                        processed_at=None,
                        last_processed_message_at=None,
                    )
                else:
                    update.update(
                        processed=existing.processed,
                        processed_at=existing.processed_at,
                        last_processed_message_at=existing.last_processed_message_at,
                    )
            stored = chat.model_copy(update=update)

            conn.execute(
                """
                INSERT OR REPLACE INTO chats (id, student_id, title, messages, processed,
                    processed_at, last_processed_message_at, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    stored.id,
                    student_id,
                    stored.title,
                    self._dump_messages(stored.messages),
                    int(stored.processed),
                    to_iso(stored.processed_at),
                    to_iso(stored.last_processed_message_at),
                    to_iso(stored.created_at),
                    to_iso(stored.updated_at),
                ),
            )
        return stored

    def append_message(
        self, student_id: str, chat_id: str, message: ChatMessage
    ) -> Chat:
        """Append a message without touching the processing state.

        Raises:
            ChatNotFoundError: If the chat does not exist.
        """
        with self._transaction() as conn:
            row = conn.execute(
                "SELECT * FROM chats WHERE student_id = ? AND id = ?",
                (student_id, chat_id),
            ).fetchone()
            if row is None:
                raise ChatNotFoundError(student_id, chat_id)
            chat = self._row_to_chat(row)
            chat.messages.append(message)
            chat.updated_at = utcnow()
            conn.execute(
                "UPDATE chats SET messages = ?, updated_at = ? "
                "WHERE student_id = ? AND id = ?",
                (
                    self._dump_messages(chat.messages),
                    to_iso(chat.updated_at),
                    student_id,
                    chat_id,
                ),
            )
        return chat

    def delete_chat(self, student_id: str, chat_id: str) -> bool:
        """Delete a chat.

        Returns:
            True if the chat was found and deleted.
        """
        with self._get_connection() as conn:
            cursor = conn.execute(
                "DELETE FROM chats WHERE student_id = ? AND id = ?",
                (student_id, chat_id),
            )
            return cursor.rowcount > 0

    def set_processed(
        self,
        student_id: str,
        chat_id: str,
        processed: bool,
        last_message_timestamp: Optional[datetime] = None,
    ) -> bool:
        """Flip a chat's processing state.

        Marking processed stamps ``processed_at`` with the current time and
        records the newest message timestamp seen by the pass. Marking
        unprocessed clears both.

        Returns:
            True if the chat exists.
        """
        if processed:
            params = (1, to_iso(utcnow()), to_iso(last_message_timestamp))
        else:
            params = (0, None, None)
        with self._get_connection() as conn:
            cursor = conn.execute(
                "UPDATE chats SET processed = ?, processed_at = ?, "
                "last_processed_message_at = ? WHERE student_id = ? AND id = ?",
                (*params, student_id, chat_id),
            )
            found = cursor.rowcount > 0
        if not found:
            logger.warning("Chat %s not found for student %s", chat_id, student_id)
        return found

    def mark_stale_unprocessed(self, student_id: str) -> list[str]:
        """Flip every stale processed chat back to unprocessed.

        Returns:
            Ids of the chats that were flipped.
        """
        stale = [
            chat.id for chat in self.list_chats(student_id) if chat.is_stale
        ]
        for chat_id in stale:
            self.set_processed(student_id, chat_id, False)
        if stale:
            logger.info("Marked %d stale chats unprocessed for %s", len(stale), student_id)
        return stale

    def _dump_messages(self, messages: list[ChatMessage]) -> str:
        return dumps([m.model_dump(mode="json") for m in messages])

    def _row_to_chat(self, row: sqlite3.Row) -> Chat:
        """Convert a database row to a Chat."""
        return Chat(
            id=row["id"],
            student_id=row["student_id"],
            title=row["title"] or "",
            messages=[ChatMessage(**m) for m in loads(row["messages"], [])],
            processed=bool(row["processed"]),
            processed_at=from_iso(row["processed_at"]),
            last_processed_message_at=from_iso(row["last_processed_message_at"]),
            created_at=from_iso(row["created_at"]),
            updated_at=from_iso(row["updated_at"]),
        )

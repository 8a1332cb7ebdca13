"""Calendar and task store backed by SQLite.

Items are idempotent on (student, title, date) so a re-run enrichment
pass does not duplicate them.
"""

from __future__ import annotations

import logging
import sqlite3
import uuid
from typing import Any

from collegebot_core.planner.models import CalendarItem, Task
from collegebot_core.sqlite import SQLiteStore, dumps, loads, to_iso, utcnow

logger = logging.getLogger(__name__)


class PlannerStore(SQLiteStore):
    """Calendar items and tasks per student."""

    SCHEMA = (
        """
        CREATE TABLE IF NOT EXISTS calendar_items (
            id TEXT PRIMARY KEY,
            student_id TEXT NOT NULL,
            title TEXT NOT NULL,
            description TEXT DEFAULT '',
            date TEXT NOT NULL,
            type TEXT NOT NULL,
            source_pins TEXT DEFAULT '[]',
            completed INTEGER NOT NULL DEFAULT 0,
            created_at TEXT NOT NULL,
            UNIQUE (student_id, title, date)
        )
        """,
        """
        CREATE TABLE IF NOT EXISTS tasks (
            id TEXT PRIMARY KEY,
            student_id TEXT NOT NULL,
            title TEXT NOT NULL,
            description TEXT DEFAULT '',
            due_date TEXT NOT NULL DEFAULT '',
            completed INTEGER NOT NULL DEFAULT 0,
            category TEXT NOT NULL,
            priority TEXT NOT NULL,
            tags TEXT DEFAULT '[]',
            source_pins TEXT DEFAULT '[]',
            source_chat TEXT,
            created_at TEXT NOT NULL,
            UNIQUE (student_id, title, due_date)
        )
        """,
    )

    def add_calendar_item(
        self, student_id: str, item: CalendarItem | dict[str, Any]
    ) -> CalendarItem:
        """Insert a calendar item unless one with the same title and date exists.

        Returns:
            The stored item (the existing one on a duplicate).
        """
        entry = item if isinstance(item, CalendarItem) else CalendarItem.model_validate(item)
        entry = entry.model_copy(
            update={"student_id": student_id, "id": entry.id or str(uuid.uuid4())}
        )
        with self._transaction() as conn:
            row = conn.execute(
                "SELECT * FROM calendar_items WHERE student_id = ? AND title = ? AND date = ?",
                (student_id, entry.title, entry.date.isoformat()),
            ).fetchone()
            if row is not None:
                logger.debug("Calendar item %r already exists", entry.title)
                return self._row_to_calendar_item(row)
            conn.execute(
                """
                INSERT INTO calendar_items (id, student_id, title, description, date,
                    type, source_pins, completed, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    entry.id,
                    student_id,
                    entry.title,
                    entry.description,
                    entry.date.isoformat(),
                    entry.type,
                    dumps(entry.source_pins),
                    int(entry.completed),
                    to_iso(utcnow()),
                ),
            )
        return entry

    def add_task(self, student_id: str, task: Task | dict[str, Any]) -> Task:
        """Insert a task unless one with the same title and due date exists.

        Returns:
            The stored task (the existing one on a duplicate).
        """
        entry = task if isinstance(task, Task) else Task.model_validate(task)
        entry = entry.model_copy(
            update={"student_id": student_id, "id": entry.id or str(uuid.uuid4())}
        )
        due = entry.due_date.isoformat() if entry.due_date else ""
        with self._transaction() as conn:
            row = conn.execute(
                "SELECT * FROM tasks WHERE student_id = ? AND title = ? AND due_date = ?",
                (student_id, entry.title, due),
            ).fetchone()
            if row is not None:
                logger.debug("Task %r already exists", entry.title)
                return self._row_to_task(row)
            conn.execute(
                """
                INSERT INTO tasks (id, student_id, title, description, due_date,
                    completed, category, priority, tags, source_pins, source_chat,
                    created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    entry.id,
                    student_id,
                    entry.title,
                    entry.description,
                    due,
                    int(entry.completed),
                    entry.category,
                    entry.priority,
                    dumps(entry.tags),
                    dumps(entry.source_pins),
                    entry.source_chat,
                    to_iso(utcnow()),
                ),
            )
        return entry

    def list_calendar_items(self, student_id: str) -> list[CalendarItem]:
        with self._get_connection() as conn:
            rows = conn.execute(
                "SELECT * FROM calendar_items WHERE student_id = ? ORDER BY date",
                (student_id,),
            ).fetchall()
            return [self._row_to_calendar_item(row) for row in rows]

    def list_tasks(self, student_id: str) -> list[Task]:
        with self._get_connection() as conn:
            rows = conn.execute(
                "SELECT * FROM tasks WHERE student_id = ? ORDER BY due_date, title",
                (student_id,),
            ).fetchall()
            return [self._row_to_task(row) for row in rows]

    def _row_to_calendar_item(self, row: sqlite3.Row) -> CalendarItem:
        return CalendarItem(
            id=row["id"],
            student_id=row["student_id"],
            title=row["title"],
            description=row["description"] or "",
            date=row["date"],
            type=row["type"],
            source_pins=loads(row["source_pins"], []),
            completed=bool(row["completed"]),
        )

    def _row_to_task(self, row: sqlite3.Row) -> Task:
        return Task(
            id=row["id"],
            student_id=row["student_id"],
            title=row["title"],
            description=row["description"] or "",
            due_date=row["due_date"] or None,
            completed=bool(row["completed"]),
            category=row["category"],
            priority=row["priority"],
            tags=loads(row["tags"], []),
            source_pins=loads(row["source_pins"], []),
            source_chat=row["source_chat"],
        )

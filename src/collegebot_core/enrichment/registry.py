"""Resolves the stores that belong to a student."""

import logging
import re
from pathlib import Path

from collegebot_core.chats.store import ChatStore
from collegebot_core.config import Settings
from collegebot_core.locations.store import LocationStore
from collegebot_core.memory.graph_store import GraphStore
from collegebot_core.planner.store import PlannerStore

logger = logging.getLogger(__name__)

_STUDENT_ID = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.@-]*$")


def validate_student_id(student_id: str) -> str:
    """Reject ids that cannot safely name a graph file.

    Raises:
        ValueError: If the id is empty or contains path characters.
    """
    if not student_id or not _STUDENT_ID.match(student_id):
        raise ValueError(f"Invalid student id: {student_id!r}")
    return student_id


class StoreRegistry:
    """Per-student knowledge graphs plus the shared SQLite stores.

    Graph stores are cached so every caller in the process sees the same
    in-memory graph for a student.

    Args:
        data_dir: Root directory holding ``graphs/`` and the database file.
    """

    def __init__(self, data_dir: Path) -> None:
        self.data_dir = data_dir
        db_path = data_dir / "collegebot.db"
        self.chats = ChatStore(db_path)
        self.locations = LocationStore(db_path)
        self.planner = PlannerStore(db_path)
        self._graphs: dict[str, GraphStore] = {}

    @classmethod
    def from_settings(cls, settings: Settings) -> "StoreRegistry":
        return cls(settings.data_dir)

    @property
    def graph_dir(self) -> Path:
        return self.data_dir / "graphs"

    def graph(self, student_id: str) -> GraphStore:
        """The knowledge graph for one student, loaded on first use."""
        validate_student_id(student_id)
        store = self._graphs.get(student_id)
        if store is None:
            logger.debug("Opening graph for student %s", student_id)
            store = GraphStore(self.graph_dir / f"{student_id}.json")
            self._graphs[student_id] = store
        return store

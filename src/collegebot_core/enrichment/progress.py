"""Progress reporting for enrichment passes."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

from collegebot_core.agent.tools import ToolOutcome


class ProgressKind(str, Enum):
    LOG = "log"
    STATUS = "status"
    TOOL = "tool"
    CHAT_STARTED = "chat_started"
    CHAT_FINISHED = "chat_finished"
    CHAT_FAILED = "chat_failed"
    BATCH_FINISHED = "batch_finished"


@dataclass
class ProgressEvent:
    """Something a caller may want to show while a pass runs.

    Attributes:
        kind: Event category.
        message: Human-readable description.
        chat_id: Chat the event belongs to, if any.
        processed_count: Chats finished so far in a batch.
        total_count: Chats in the batch.
        data: Extra structured detail (tool outcome, agent analysis block).
    """

    kind: ProgressKind
    message: str
    chat_id: str | None = None
    processed_count: int | None = None
    total_count: int | None = None
    data: dict[str, Any] = field(default_factory=dict)


ProgressCallback = Callable[[ProgressEvent], None]


@dataclass
class ChatResult:
    """Outcome of one analysis pass over one chat."""

    chat_id: str
    ok: bool
    error: str | None = None
    tool_outcomes: list[ToolOutcome] = field(default_factory=list)

    @property
    def writes(self) -> int:
        return sum(outcome.writes for outcome in self.tool_outcomes)


@dataclass
class BatchReport:
    """Outcome of a process-all run."""

    results: list[ChatResult] = field(default_factory=list)
    total_count: int = 0

    @property
    def processed_count(self) -> int:
        return len(self.results)

    @property
    def succeeded(self) -> list[ChatResult]:
        return [r for r in self.results if r.ok]

    @property
    def failed(self) -> list[ChatResult]:
        return [r for r in self.results if not r.ok]

    def summary(self) -> str:
        return (
            f"Processed {self.processed_count}/{self.total_count} chats: "
            f"{len(self.succeeded)} succeeded, {len(self.failed)} failed"
        )

"""Event records emitted by the analysis agent stream.

The gateway answers with newline-delimited JSON records. Network chunks
do not respect record boundaries, so ``StreamDecoder`` buffers partial
lines and yields complete events as they become available.
"""

import codecs
import json
import logging
from enum import Enum
from typing import Any, Iterable

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class EventType(str, Enum):
    THINKING = "thinking"
    STATUS = "status"
    TOOL_CALL = "tool_call"
    RESPONSE = "response"
    COMPLETE = "complete"
    ERROR = "error"


class AgentEvent(BaseModel):
    """One decoded stream record.

    Attributes:
        type: Event kind.
        content: Human-readable text carried by the event.
        tool: Tool name for ``tool_call`` events.
        arguments: Tool arguments for ``tool_call`` events.
        progress: Batch position for ``status`` events.
        total: Batch size for ``status`` events.
        analysis: Structured analysis block attached to ``thinking`` events.
        raw: The undecoded record.
    """

    type: EventType
    content: str | None = None
    tool: str | None = None
    arguments: dict[str, Any] = Field(default_factory=dict)
    progress: int | None = None
    total: int | None = None
    analysis: dict[str, Any] | None = None
    raw: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "AgentEvent":
        """Build an event from a decoded JSON record.

        Tool calls may name their tool under ``tool`` or ``name`` and carry
        arguments under ``arguments``, ``parameters`` or ``input``;
        arguments sent as a JSON string are decoded.

        Raises:
            ValueError: If the record type is missing or unknown, or tool
                arguments are not an object.
        """
        event_type = EventType(record.get("type"))
        content = record.get("content")
        if content is not None and not isinstance(content, str):
            content = json.dumps(content)

        tool = None
        arguments: Any = {}
        if event_type is EventType.TOOL_CALL:
            tool = record.get("tool") or record.get("name")
            if not tool:
                raise ValueError("tool_call record without a tool name")
            for key in ("arguments", "parameters", "input"):
                if key in record:
                    arguments = record[key]
                    break
            if isinstance(arguments, str):
                arguments = json.loads(arguments)
            if not isinstance(arguments, dict):
                raise ValueError("tool_call arguments must be an object")

        analysis = record.get("analysis")
        return cls(
            type=event_type,
            content=content,
            tool=tool,
            arguments=arguments,
            progress=record.get("progress"),
            total=record.get("total"),
            analysis=analysis if isinstance(analysis, dict) else None,
            raw=record,
        )


class StreamDecoder:
    """Incremental NDJSON decoder tolerant of arbitrary chunk boundaries.

    Accepts ``bytes`` or ``str`` chunks. Blank lines, SSE comment lines and
    ``data:`` prefixes are handled; malformed lines are logged and skipped.
    """

    def __init__(self) -> None:
        self._buffer = ""
        self._utf8 = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self.skipped = 0

    def feed(self, chunk: bytes | str) -> list[AgentEvent]:
        """Add a chunk and return every event completed by it."""
        if isinstance(chunk, bytes):
            chunk = self._utf8.decode(chunk)
        self._buffer += chunk
        *lines, self._buffer = self._buffer.split("\n")
        return self._decode_lines(lines)

    def flush(self) -> list[AgentEvent]:
        """Decode whatever is left once the stream has ended."""
        tail = self._buffer + self._utf8.decode(b"", final=True)
        self._buffer = ""
        return self._decode_lines([tail])

    def _decode_lines(self, lines: Iterable[str]) -> list[AgentEvent]:
        events = []
        for line in lines:
            event = self._decode_line(line)
            if event is not None:
                events.append(event)
        return events

    def _decode_line(self, line: str) -> AgentEvent | None:
        line = line.strip()
        if not line or line.startswith(":"):
            return None
        if line.startswith("data:"):
            line = line[len("data:"):].strip()
            if not line:
                return None
        try:
            record = json.loads(line)
            if not isinstance(record, dict):
                raise ValueError("record is not a JSON object")
            return AgentEvent.from_record(record)
        except ValueError as e:
            self.skipped += 1
            logger.warning("Skipping malformed stream record %.120r: %s", line, e)
            return None


def coalesce_thinking(events: Iterable[AgentEvent]) -> list[AgentEvent]:
    """Merge runs of ``thinking`` events that both carry an analysis block.

    Display helper only; store writes never depend on it.
    """
    merged: list[AgentEvent] = []
    for event in events:
        previous = merged[-1] if merged else None
        if (
            previous is not None
            and previous.type is EventType.THINKING
            and event.type is EventType.THINKING
            and previous.analysis is not None
            and event.analysis is not None
        ):
            text = "\n".join(t for t in (previous.content, event.content) if t)
            merged[-1] = previous.model_copy(
                update={
                    "content": text or None,
                    "analysis": {**previous.analysis, **event.analysis},
                }
            )
        else:
            merged.append(event)
    return merged

"""Tests for stream event decoding."""

import json

import pytest

from collegebot_core.agent.events import (
    AgentEvent,
    EventType,
    StreamDecoder,
    coalesce_thinking,
)


def _line(record: dict) -> str:
    return json.dumps(record, ensure_ascii=False) + "\n"


class TestAgentEvent:
    def test_tool_call_with_name_and_parameters(self) -> None:
        event = AgentEvent.from_record(
            {"type": "tool_call", "name": "create_entities", "parameters": {"entities": []}}
        )
        assert event.tool == "create_entities"
        assert event.arguments == {"entities": []}

    def test_string_arguments_decoded(self) -> None:
        event = AgentEvent.from_record(
            {"type": "tool_call", "tool": "geocode", "arguments": '{"address": "x"}'}
        )
        assert event.arguments == {"address": "x"}

    def test_tool_call_without_name_rejected(self) -> None:
        with pytest.raises(ValueError):
            AgentEvent.from_record({"type": "tool_call", "arguments": {}})

    def test_unknown_type_rejected(self) -> None:
        with pytest.raises(ValueError):
            AgentEvent.from_record({"type": "chatter"})

    def test_status_progress(self) -> None:
        event = AgentEvent.from_record(
            {"type": "status", "content": "Working", "progress": 2, "total": 5}
        )
        assert (event.progress, event.total) == (2, 5)

    def test_non_string_content_serialized(self) -> None:
        event = AgentEvent.from_record({"type": "response", "content": {"a": 1}})
        assert event.content == '{"a": 1}'


class TestStreamDecoder:
    def test_records_split_across_chunks(self) -> None:
        payload = (
            _line({"type": "thinking", "content": "hmm"})
            + _line({"type": "complete"})
        ).encode()
        decoder = StreamDecoder()
        events = []
        for i in range(0, len(payload), 7):
            events.extend(decoder.feed(payload[i : i + 7]))
        events.extend(decoder.flush())
        assert [e.type for e in events] == [EventType.THINKING, EventType.COMPLETE]

    def test_multibyte_character_split(self) -> None:
        payload = _line({"type": "response", "content": "café ✓"}).encode()
        split = payload.index("✓".encode()) + 1
        decoder = StreamDecoder()
        events = decoder.feed(payload[:split]) + decoder.feed(payload[split:])
        assert events[0].content == "café ✓"

    def test_last_record_without_newline(self) -> None:
        decoder = StreamDecoder()
        assert decoder.feed('{"type": "complete"}') == []
        assert [e.type for e in decoder.flush()] == [EventType.COMPLETE]

    def test_sse_framing(self) -> None:
        decoder = StreamDecoder()
        events = decoder.feed(': keep-alive\n\ndata: {"type": "status", "content": "ok"}\n')
        assert [e.content for e in events] == ["ok"]

    def test_malformed_lines_skipped(self) -> None:
        decoder = StreamDecoder()
        events = decoder.feed('not json\n[1, 2]\n{"type": "nope"}\n{"type": "complete"}\n')
        assert [e.type for e in events] == [EventType.COMPLETE]
        assert decoder.skipped == 3


class TestCoalesceThinking:
    def test_merges_adjacent_analysis_blocks(self) -> None:
        events = [
            AgentEvent(type=EventType.THINKING, content="a", analysis={"x": 1}),
            AgentEvent(type=EventType.THINKING, content="b", analysis={"y": 2}),
            AgentEvent(type=EventType.THINKING, content="plain"),
        ]
        merged = coalesce_thinking(events)
        assert len(merged) == 2
        assert merged[0].content == "a\nb"
        assert merged[0].analysis == {"x": 1, "y": 2}

    def test_other_events_untouched(self) -> None:
        events = [
            AgentEvent(type=EventType.THINKING, content="a", analysis={"x": 1}),
            AgentEvent(type=EventType.STATUS, content="s"),
            AgentEvent(type=EventType.THINKING, content="b", analysis={"y": 2}),
        ]
        assert coalesce_thinking(events) == events

"""Tests for tool call dispatch."""

from unittest.mock import MagicMock

import pytest

from collegebot_core.agent.tools import ToolDispatcher
from collegebot_core.enrichment.registry import StoreRegistry
from collegebot_core.testing import create_mock_geocoder, tool_call

ADDRESS = "1 Oxford St, Cambridge, MA"


@pytest.fixture
def geocoder():
    return create_mock_geocoder({ADDRESS: (42.37, -71.11)})


@pytest.fixture
def dispatcher(stores: StoreRegistry, student_id: str, geocoder) -> ToolDispatcher:
    return ToolDispatcher(
        student_id,
        "chat-1",
        graph=stores.graph(student_id),
        locations=stores.locations,
        planner=stores.planner,
        geocoder=geocoder,
    )


class TestGraphTools:
    def test_create_entities(self, dispatcher: ToolDispatcher) -> None:
        outcome = dispatcher.dispatch(
            tool_call(
                "create_entities",
                entities=[{"name": "Harvard", "entityType": "college", "observations": []}],
            )
        )
        assert outcome.ok
        assert outcome.writes == 1
        assert dispatcher.graph.read_graph().get("Harvard") is not None

    def test_partial_entity_batch(self, dispatcher: ToolDispatcher) -> None:
        outcome = dispatcher.dispatch(
            tool_call(
                "create_entities",
                entities=[{"name": "Harvard", "entityType": "college"}, {"name": "Nope"}],
            )
        )
        assert outcome.ok is False
        assert outcome.writes == 1
        assert "rejected" in outcome.message

    def test_repeated_relation_in_pass_skipped(self, dispatcher: ToolDispatcher) -> None:
        rel = {"from": "student", "to": "Harvard", "relationType": "interested_in"}
        dispatcher.dispatch(tool_call("create_relations", relations=[rel]))
        outcome = dispatcher.dispatch(tool_call("create_relations", relations=[rel, rel]))
        assert outcome.writes == 0
        assert "2 repeated" in outcome.message
        assert dispatcher.graph.get_stats().edge_count == 1

    def test_add_observations_memory_format(self, dispatcher: ToolDispatcher) -> None:
        dispatcher.dispatch(
            tool_call("create_entities", entities=[{"name": "Harvard", "entityType": "college"}])
        )
        outcome = dispatcher.dispatch(
            tool_call(
                "add_observations",
                observations=[
                    {"entityName": "Harvard", "contents": ["Deadline: Jan 1"]},
                    {"entityName": "Yale", "contents": ["Deadline: Jan 2"]},
                ],
            )
        )
        assert outcome.writes == 1
        assert outcome.ok is False
        assert "Yale" in outcome.message

    def test_add_observations_bare_strings_rejected(self, dispatcher: ToolDispatcher) -> None:
        outcome = dispatcher.dispatch(tool_call("add_observations", observations=["GPA: 3.9"]))
        assert outcome.ok is False
        assert outcome.writes == 0
        assert "rejected #0" in outcome.message

    def test_add_observations_single_string_contents(self, dispatcher: ToolDispatcher) -> None:
        dispatcher.dispatch(
            tool_call("create_entities", entities=[{"name": "Yale", "entityType": "college"}])
        )
        outcome = dispatcher.dispatch(
            tool_call("add_observations", entityName="Yale", contents="GPA: 3.9")
        )
        assert outcome.ok
        assert outcome.writes == 1
        yale = dispatcher.graph.read_graph().get("Yale")
        assert yale.observation_strings() == ["GPA: 3.9"]

    def test_add_observations_non_string_contents_rejected(
        self, dispatcher: ToolDispatcher
    ) -> None:
        dispatcher.dispatch(
            tool_call("create_entities", entities=[{"name": "Yale", "entityType": "college"}])
        )
        outcome = dispatcher.dispatch(
            tool_call("add_observations", entityName="Yale", contents={"GPA": 3.9})
        )
        assert outcome.ok is False
        assert "contents must be a list of strings" in outcome.message

    def test_unexpected_handler_error_becomes_failed_outcome(
        self, dispatcher: ToolDispatcher, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr(
            dispatcher.graph, "create_entities", MagicMock(side_effect=RuntimeError("disk full"))
        )
        outcome = dispatcher.dispatch(
            tool_call("create_entities", entities=[{"name": "Yale", "entityType": "college"}])
        )
        assert outcome.ok is False
        assert outcome.tool == "create_entities"
        assert "RuntimeError: disk full" in outcome.message

    def test_entities_must_be_a_list(self, dispatcher: ToolDispatcher) -> None:
        outcome = dispatcher.dispatch(tool_call("create_entities", entities="Harvard"))
        assert outcome.ok is False
        assert "must be a list" in outcome.message


class TestLocationTools:
    def test_create_location_records_chat(self, dispatcher: ToolDispatcher, student_id: str) -> None:
        outcome = dispatcher.dispatch(
            tool_call(
                "create_map_location",
                studentId=student_id,
                location={"name": "Harvard", "type": "college", "metadata": {"address": ADDRESS}},
            )
        )
        assert outcome.ok
        assert outcome.tool == "create_map_location"
        stored = dispatcher.locations.find_location(student_id, "Harvard", "college")
        assert stored.source_chats == ["chat-1"]
        assert stored.latitude == 42.37

    def test_flat_payload(self, dispatcher: ToolDispatcher, student_id: str) -> None:
        outcome = dispatcher.dispatch(
            tool_call(
                "update_map_location",
                name="Coca-Cola Scholars",
                type="scholarship",
                latitude=33.75,
                longitude=-84.39,
            )
        )
        assert outcome.ok
        assert dispatcher.locations.list_location_names(student_id)[0][0] == "Coca-Cola Scholars"

    def test_geocoding_failure_is_a_failed_outcome(self, dispatcher: ToolDispatcher) -> None:
        outcome = dispatcher.dispatch(
            tool_call(
                "create_map_location",
                location={"name": "Nowhere U", "type": "college", "metadata": {"address": "?"}},
            )
        )
        assert outcome.ok is False
        assert "No results" in outcome.message

    def test_missing_position_rejected(self, dispatcher: ToolDispatcher) -> None:
        outcome = dispatcher.dispatch(
            tool_call("create_map_location", location={"name": "Nowhere U", "type": "college"})
        )
        assert outcome.ok is False
        assert "metadata.address" in outcome.message

    def test_geocode_writes_nothing(self, dispatcher: ToolDispatcher, student_id: str) -> None:
        outcome = dispatcher.dispatch(tool_call("geocode", address=ADDRESS, name="Harvard"))
        assert outcome.ok
        assert outcome.writes == 0
        assert "42.37000" in outcome.message
        assert dispatcher.locations.list_locations(student_id) == []


class TestPlannerTools:
    def test_calendar_batch(self, dispatcher: ToolDispatcher, student_id: str) -> None:
        outcome = dispatcher.dispatch(
            tool_call(
                "create_calendar_items_batch",
                items=[
                    {"title": "EA deadline", "date": "2024-11-01"},
                    {"title": "Broken", "date": "not a date"},
                ],
            )
        )
        assert outcome.writes == 1
        assert outcome.ok is False
        assert len(dispatcher.planner.list_calendar_items(student_id)) == 1

    def test_task_records_source_chat(self, dispatcher: ToolDispatcher, student_id: str) -> None:
        outcome = dispatcher.dispatch(
            tool_call("create_task", task={"title": "Ask for recommendation"})
        )
        assert outcome.ok
        assert dispatcher.planner.list_tasks(student_id)[0].source_chat == "chat-1"


class TestDispatch:
    def test_unknown_tool(self, dispatcher: ToolDispatcher) -> None:
        outcome = dispatcher.dispatch(tool_call("launch_rockets"))
        assert outcome.ok is False
        assert "Unknown tool" in outcome.message

    def test_mark_chat_processed_is_deferred(self, dispatcher: ToolDispatcher) -> None:
        outcome = dispatcher.dispatch(tool_call("mark_chat_processed", chatId="chat-1"))
        assert outcome.ok
        assert outcome.writes == 0

    def test_tool_names(self, dispatcher: ToolDispatcher) -> None:
        assert "create_map_location" in dispatcher.tool_names

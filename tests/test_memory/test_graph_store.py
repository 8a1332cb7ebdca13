"""Tests for the knowledge graph store."""

import json

import pytest

from collegebot_core.memory.graph_store import GraphStore
from collegebot_core.memory.models import UNKNOWN_ENTITY_TYPE, Entity, Observation, Relation


@pytest.fixture
def graph_path(tmp_path):
    return tmp_path / "graphs" / "student-1.json"


@pytest.fixture
def graph(graph_path):
    return GraphStore(storage_path=graph_path)


class TestGraphStore:
    def test_empty_graph_stats(self, graph):
        stats = graph.get_stats()
        assert stats.node_count == 0
        assert stats.edge_count == 0
        assert stats.entity_types == []

    def test_create_entities(self, graph):
        result = graph.create_entities(
            [{"name": "Stanford", "entityType": "college", "observations": ["Location: CA"]}]
        )
        assert result.ok
        assert graph.get_stats().entity_types == ["college"]

    def test_idempotent_upsert(self, graph):
        entity = {"name": "Stanford", "entityType": "college", "observations": ["Location: CA"]}
        graph.create_entities([entity])
        graph.create_entities([entity])
        snapshot = graph.read_graph()
        assert len(snapshot.entities) == 1
        assert snapshot.get("Stanford").observation_strings() == ["Location: CA"]

    def test_merge_unions_observations_in_order(self, graph):
        graph.create_entities(
            [{"name": "Stanford", "entityType": "college", "observations": ["A: 1", "B: 2"]}]
        )
        graph.create_entities(
            [{"name": "Stanford", "entityType": "college", "observations": ["B: 2", "C: 3"]}]
        )
        entity = graph.read_graph().get("Stanford")
        assert entity.observation_strings() == ["A: 1", "B: 2", "C: 3"]

    def test_partial_batch_applies_valid_items(self, graph):
        result = graph.create_entities(
            [
                {"name": "Stanford", "entityType": "college"},
                {"entityType": "college"},
                {"name": "Gates Scholarship", "entityType": "scholarship"},
            ]
        )
        assert [r.ok for r in result.results] == [True, False, True]
        assert result.failed[0].index == 1
        assert "name" in result.failed[0].error
        assert graph.get_stats().node_count == 2

    def test_relations_auto_create_unknown_nodes(self, graph):
        result = graph.create_relations(
            [{"from": "student", "to": "Stanford", "relationType": "interested_in"}]
        )
        assert result.ok
        snapshot = graph.read_graph()
        assert snapshot.get("student").entity_type == UNKNOWN_ENTITY_TYPE
        assert snapshot.get("Stanford").entity_type == UNKNOWN_ENTITY_TYPE

    def test_unknown_type_upgraded_by_later_entity(self, graph):
        graph.create_relations([Relation(source="a", target="Stanford", relation_type="x")])
        graph.create_entities([Entity(name="Stanford", entity_type="college")])
        assert graph.read_graph().get("Stanford").entity_type == "college"

    def test_explicit_type_not_overwritten(self, graph):
        graph.create_entities([Entity(name="Stanford", entity_type="college")])
        graph.create_entities([Entity(name="Stanford", entity_type="organization")])
        assert graph.read_graph().get("Stanford").entity_type == "college"

    def test_duplicate_relations_are_kept(self, graph):
        rel = Relation(source="a", target="b", relation_type="offers")
        graph.create_relations([rel])
        graph.create_relations([rel])
        assert graph.get_stats().edge_count == 2

    def test_invalid_relation_rejected_individually(self, graph):
        result = graph.create_relations(
            [
                {"from": "a", "to": "b"},
                {"from": "a", "to": "b", "relationType": "offers"},
            ]
        )
        assert [r.ok for r in result.results] == [False, True]
        assert graph.get_stats().edge_count == 1

    def test_add_observations(self, graph):
        graph.create_entities([Entity(name="Stanford", entity_type="college")])
        added = graph.add_observations("Stanford", ["Deadline: Jan 5", "Deadline: Jan 5"])
        assert added == [Observation(key="Deadline", value="Jan 5")]
        assert graph.add_observations("Stanford", ["Deadline: Jan 5"]) == []

    def test_add_observations_unknown_entity(self, graph):
        with pytest.raises(KeyError):
            graph.add_observations("Nowhere", ["A: b"])

    def test_delete_entities_removes_relations(self, graph):
        graph.create_relations([Relation(source="a", target="b", relation_type="r")])
        removed = graph.delete_entities(["b", "missing"])
        assert removed == ["b"]
        stats = graph.get_stats()
        assert stats.node_count == 1
        assert stats.edge_count == 0

    def test_delete_relations_by_triple(self, graph):
        graph.create_relations(
            [
                Relation(source="a", target="b", relation_type="r"),
                Relation(source="a", target="b", relation_type="r"),
                Relation(source="a", target="b", relation_type="other"),
            ]
        )
        assert graph.delete_relations([{"from": "a", "to": "b", "relationType": "r"}]) == 2
        assert graph.get_neighbors("a") == [("other", "b")]

    def test_search_nodes_matches_observations(self, graph):
        graph.create_entities(
            [
                Entity(name="Stanford", entity_type="college", observations=["Location: California"]),
                Entity(name="MIT", entity_type="college", observations=["Location: Massachusetts"]),
            ]
        )
        graph.create_relations([Relation(source="Stanford", target="MIT", relation_type="rival")])
        found = graph.search_nodes("california")
        assert [e.name for e in found.entities] == ["Stanford"]
        assert found.relations == []

    def test_get_neighbors_unknown_node(self, graph):
        assert graph.get_neighbors("nonexistent") == []

    def test_persistence(self, graph_path):
        g1 = GraphStore(storage_path=graph_path)
        g1.create_entities([Entity(name="Stanford", entity_type="college", observations=["A: b"])])
        g1.create_relations([Relation(source="student", target="Stanford", relation_type="likes")])
        del g1

        g2 = GraphStore(storage_path=graph_path)
        snapshot = g2.read_graph()
        assert snapshot.get("Stanford").observation_strings() == ["A: b"]
        assert snapshot.relations == [
            Relation(source="student", target="Stanford", relation_type="likes")
        ]

    def test_corrupt_file_starts_empty(self, graph_path):
        graph_path.parent.mkdir(parents=True)
        graph_path.write_text("{not json")
        assert GraphStore(storage_path=graph_path).get_stats().node_count == 0

    def test_corrupt_file_moved_aside(self, graph_path):
        graph_path.parent.mkdir(parents=True)
        graph_path.write_text("{not json")
        graph = GraphStore(storage_path=graph_path)
        graph.create_entities([Entity(name="Stanford", entity_type="college")])

        aside = graph_path.with_name(graph_path.name + ".corrupt")
        assert aside.read_text() == "{not json"
        assert graph.read_graph().get("Stanford") is not None

    def test_two_stores_on_one_file_keep_both_writes(self, graph_path):
        first = GraphStore(storage_path=graph_path)
        second = GraphStore(storage_path=graph_path)
        first.create_entities([Entity(name="Yale", entity_type="college")])
        second.create_entities([Entity(name="MIT", entity_type="college")])

        names = {e.name for e in GraphStore(storage_path=graph_path).read_graph().entities}
        assert names == {"Yale", "MIT"}
        assert first.read_graph().get("MIT") is not None

    def test_add_observations_accepts_single_string(self, graph):
        graph.create_entities([Entity(name="Yale", entity_type="college")])
        added = graph.add_observations("Yale", "GPA: 3.9")
        assert [str(obs) for obs in added] == ["GPA: 3.9"]

    def test_file_is_node_link_json(self, graph, graph_path):
        graph.create_entities([Entity(name="Stanford", entity_type="college")])
        data = json.loads(graph_path.read_text())
        assert data["nodes"][0]["id"] == "Stanford"
        assert "links" in data

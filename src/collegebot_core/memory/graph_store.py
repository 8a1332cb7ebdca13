"""Knowledge graph store backed by NetworkX.

Persists a directed multigraph to a JSON file, one file per student.
Entities are upserted by name with observation-list union; relations are
appended as given, so identical triples may coexist.

Several processes may write the same file (the tool server and a CLI run).
Each public call first reloads the file if another writer replaced it.
"""

import json
import logging
import os
from collections.abc import Iterable
from pathlib import Path
from typing import Any

import networkx as nx
from networkx.readwrite import json_graph
from pydantic import ValidationError

from collegebot_core.memory.models import (
    UNKNOWN_ENTITY_TYPE,
    BatchResult,
    Entity,
    GraphStats,
    ItemResult,
    KnowledgeGraph,
    Observation,
    Relation,
)

logger = logging.getLogger(__name__)


def _error_text(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ())) or "item"
        parts.append(f"{loc}: {err.get('msg')}")
    return "; ".join(parts)


class GraphStore:
    """Directed knowledge multigraph with JSON file persistence.

    Args:
        storage_path: Path to the JSON file for graph persistence.
    """

    def __init__(self, storage_path: Path) -> None:
        self.storage_path = storage_path
        self.graph = nx.MultiDiGraph()
        self._signature: tuple[int, int, int] | None = None
        self._ensure_storage_dir()
        self._load()

    def _ensure_storage_dir(self) -> None:
        """Create parent directories if they don't exist."""
        self.storage_path.parent.mkdir(parents=True, exist_ok=True)

    def _file_signature(self) -> tuple[int, int, int] | None:
        """Identity of the file on disk; changes whenever it is replaced."""
        try:
            st = self.storage_path.stat()
        except FileNotFoundError:
            return None
        return (st.st_ino, st.st_mtime_ns, st.st_size)

    def _load(self) -> None:
        """Load graph from JSON file if it exists."""
        if self.storage_path.exists():
            try:
                with open(self.storage_path, "r") as f:
                    data = json.load(f)
                self.graph = json_graph.node_link_graph(
                    data, directed=True, multigraph=True, edges="links"
                )
                logger.info(
                    "Loaded graph from %s with %d nodes.",
                    self.storage_path,
                    self.graph.number_of_nodes(),
                )
            except Exception as e:
                aside = self.storage_path.with_suffix(self.storage_path.suffix + ".corrupt")
                logger.error(
                    "Failed to load graph %s: %s. Moved it to %s.",
                    self.storage_path,
                    e,
                    aside,
                )
                self.storage_path.replace(aside)
                self.graph = nx.MultiDiGraph()
        else:
            logger.debug("No existing graph at %s. Initialized empty graph.", self.storage_path)
        self._signature = self._file_signature()

    def _refresh(self) -> None:
        """Reload if another writer replaced the file since the last load or save."""
        if self._file_signature() != self._signature:
            logger.debug("Graph %s changed on disk. Reloading.", self.storage_path)
            self._load()

    def _save(self) -> None:
        """Persist graph to JSON file, replacing the old file in one step."""
        data = json_graph.node_link_data(self.graph, edges="links")
        tmp_path = self.storage_path.with_suffix(
            f"{self.storage_path.suffix}.{os.getpid()}.tmp"
        )
        with open(tmp_path, "w") as f:
            json.dump(data, f, indent=2)
        tmp_path.replace(self.storage_path)
        self._signature = self._file_signature()

    # ------------------------------------------------------------------
    # Node helpers
    # ------------------------------------------------------------------

    def _observations(self, name: str) -> list[Observation]:
        raw = self.graph.nodes[name].get("observations", [])
        return [Observation(**item) for item in raw]

    def _set_observations(self, name: str, observations: list[Observation]) -> None:
        self.graph.nodes[name]["observations"] = [
            obs.model_dump() for obs in observations
        ]

    def _ensure_node(self, name: str, role: str) -> None:
        if not self.graph.has_node(name):
            logger.warning(
                "%s node %s does not exist. Adding with type '%s'.",
                role,
                name,
                UNKNOWN_ENTITY_TYPE,
            )
            self.graph.add_node(
                name, entity_type=UNKNOWN_ENTITY_TYPE, observations=[]
            )

    def _merge_entity(self, entity: Entity) -> None:
        if not self.graph.has_node(entity.name):
            self.graph.add_node(
                entity.name, entity_type=entity.entity_type, observations=[]
            )
            self._set_observations(entity.name, _union([], entity.observations))
            return

        node = self.graph.nodes[entity.name]
        current_type = node.get("entity_type", UNKNOWN_ENTITY_TYPE)
        if current_type == UNKNOWN_ENTITY_TYPE:
            node["entity_type"] = entity.entity_type
        elif entity.entity_type not in (current_type, UNKNOWN_ENTITY_TYPE):
            logger.info(
                "Entity %s keeps type '%s' (ignoring '%s').",
                entity.name,
                current_type,
                entity.entity_type,
            )
        merged = _union(self._observations(entity.name), entity.observations)
        self._set_observations(entity.name, merged)

    def _entity(self, name: str) -> Entity:
        data = self.graph.nodes[name]
        return Entity(
            name=name,
            entity_type=data.get("entity_type", UNKNOWN_ENTITY_TYPE),
            observations=self._observations(name),
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def create_entities(self, entities: Iterable[Entity | dict[str, Any]]) -> BatchResult:
        """Upsert entities by name, unioning observation lists.

        Malformed items are rejected individually; the remaining items
        are still applied.

        Args:
            entities: Entity instances or raw agent payload dicts.

        Returns:
            BatchResult with one ItemResult per input item.
        """
        result = BatchResult()
        self._refresh()
        changed = False
        for index, raw in enumerate(entities):
            name = raw.get("name") if isinstance(raw, dict) else getattr(raw, "name", None)
            key = None if name is None else str(name)
            try:
                entity = raw if isinstance(raw, Entity) else Entity.model_validate(raw)
            except ValidationError as e:
                logger.warning("Rejected entity #%d (%s): %s", index, key, e.error_count())
                result.results.append(
                    ItemResult(index=index, key=key, ok=False, error=_error_text(e))
                )
                continue
            self._merge_entity(entity)
            changed = True
            result.results.append(ItemResult(index=index, key=entity.name, ok=True))

        if changed:
            self._save()
        return result

    def create_relations(
        self, relations: Iterable[Relation | dict[str, Any]]
    ) -> BatchResult:
        """Append directed edges. Duplicates are accepted as given.

        Auto-creates missing source/target nodes with the 'unknown' type.

        Args:
            relations: Relation instances or raw agent payload dicts.

        Returns:
            BatchResult with one ItemResult per input item.
        """
        result = BatchResult()
        self._refresh()
        changed = False
        for index, raw in enumerate(relations):
            try:
                relation = (
                    raw if isinstance(raw, Relation) else Relation.model_validate(raw)
                )
            except ValidationError as e:
                logger.warning("Rejected relation #%d: %s", index, e.error_count())
                result.results.append(
                    ItemResult(index=index, ok=False, error=_error_text(e))
                )
                continue

            self._ensure_node(relation.source, "Source")
            self._ensure_node(relation.target, "Target")
            self.graph.add_edge(
                relation.source,
                relation.target,
                relation_type=relation.relation_type,
            )
            changed = True
            result.results.append(
                ItemResult(
                    index=index,
                    key=f"{relation.source} -{relation.relation_type}-> {relation.target}",
                    ok=True,
                )
            )

        if changed:
            self._save()
        return result

    def add_observations(
        self, name: str, observations: Iterable[str | Observation]
    ) -> list[Observation]:
        """Append observations to an existing entity.

        Args:
            name: Entity name.
            observations: Observation objects or ``"Key: value"`` strings.

        Returns:
            The observations that were not already present.

        Raises:
            KeyError: If the entity does not exist.
        """
        self._refresh()
        if isinstance(observations, (str, Observation)):
            observations = [observations]
        if not self.graph.has_node(name):
            raise KeyError(name)
        incoming = [
            obs if isinstance(obs, Observation) else Observation.parse(obs)
            for obs in observations
        ]
        existing = self._observations(name)
        added = [obs for obs in _union([], incoming) if obs not in existing]
        if added:
            self._set_observations(name, existing + added)
            self._save()
        return added

    def read_graph(self) -> KnowledgeGraph:
        """Return the full graph snapshot.

        Returns:
            KnowledgeGraph with every entity and every stored relation.
        """
        self._refresh()
        entities = [self._entity(name) for name in self.graph.nodes]
        relations = [
            Relation(source=u, target=v, relation_type=data.get("relation_type", "related_to"))
            for u, v, data in self.graph.edges(data=True)
        ]
        return KnowledgeGraph(entities=entities, relations=relations)

    def delete_entities(self, names: Iterable[str]) -> list[str]:
        """Remove entities and every relation referencing them.

        Args:
            names: Entity names to remove. Unknown names are ignored.

        Returns:
            Names that were actually removed.
        """
        self._refresh()
        removed = []
        for name in names:
            if self.graph.has_node(name):
                self.graph.remove_node(name)
                removed.append(name)
        if removed:
            self._save()
            logger.info("Deleted %d entities: %s", len(removed), ", ".join(removed))
        return removed

    def delete_relations(self, relations: Iterable[Relation | dict[str, Any]]) -> int:
        """Remove every edge matching each given triple.

        Returns:
            Number of edges removed.
        """
        self._refresh()
        count = 0
        for raw in relations:
            relation = raw if isinstance(raw, Relation) else Relation.model_validate(raw)
            if not self.graph.has_edge(relation.source, relation.target):
                continue
            edge_data = self.graph.get_edge_data(relation.source, relation.target)
            doomed = [
                k
                for k, data in edge_data.items()
                if data.get("relation_type") == relation.relation_type
            ]
            for k in doomed:
                self.graph.remove_edge(relation.source, relation.target, key=k)
            count += len(doomed)
        if count:
            self._save()
        return count

    def search_nodes(self, query: str) -> KnowledgeGraph:
        """Find entities whose name, type or observations contain query.

        Args:
            query: Case-insensitive substring.

        Returns:
            KnowledgeGraph of matching entities and the relations among them.
        """
        self._refresh()
        needle = query.lower()
        matches = []
        for name in self.graph.nodes:
            entity = self._entity(name)
            haystack = [entity.name, entity.entity_type, *entity.observation_strings()]
            if any(needle in text.lower() for text in haystack):
                matches.append(entity)
        names = {e.name for e in matches}
        relations = [
            Relation(source=u, target=v, relation_type=data.get("relation_type", "related_to"))
            for u, v, data in self.graph.edges(data=True)
            if u in names and v in names
        ]
        return KnowledgeGraph(entities=matches, relations=relations)

    def get_neighbors(self, name: str) -> list[tuple[str, str]]:
        """Get 1-hop outgoing neighbours for a node.

        Args:
            name: The node to query.

        Returns:
            List of (relation_type, target_name) tuples, one per edge.
        """
        self._refresh()
        if not self.graph.has_node(name):
            return []
        return [
            (data.get("relation_type", "related_to"), target)
            for _, target, data in self.graph.out_edges(name, data=True)
        ]

    def get_stats(self) -> GraphStats:
        """Return current graph statistics."""
        self._refresh()
        types = {
            data["entity_type"]
            for _, data in self.graph.nodes(data=True)
            if "entity_type" in data
        }
        return GraphStats(
            node_count=self.graph.number_of_nodes(),
            edge_count=self.graph.number_of_edges(),
            entity_types=sorted(types),
        )


def _union(existing: list[Observation], incoming: Iterable[Observation]) -> list[Observation]:
    """Order-preserving union of observation lists."""
    merged = list(existing)
    seen = set(merged)
    for obs in incoming:
        if obs not in seen:
            merged.append(obs)
            seen.add(obs)
    return merged

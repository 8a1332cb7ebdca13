"""Student knowledge graph: entities, relations and typed observations."""

from collegebot_core.memory.graph_store import GraphStore
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

__all__ = [
    "BatchResult",
    "Entity",
    "GraphStats",
    "GraphStore",
    "ItemResult",
    "KnowledgeGraph",
    "Observation",
    "Relation",
    "UNKNOWN_ENTITY_TYPE",
]

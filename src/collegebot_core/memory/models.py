"""Data models for the student knowledge graph.

Pydantic models for entities, relations and their typed observations.
Agent payloads use camelCase keys (``entityType``, ``from``, ``to``,
``relationType``); both spellings are accepted.
"""

import re
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

UNKNOWN_ENTITY_TYPE = "unknown"

# "Key: value" with whitespace after the colon, so bare URLs stay whole.
_OBSERVATION_RE = re.compile(r"^\s*([^:\n]{1,80}?)\s*:\s+(.*\S)\s*$", re.DOTALL)


class Observation(BaseModel):
    """A single atomic fact about an entity."""

    model_config = ConfigDict(frozen=True)

    key: str = Field(..., min_length=1)
    value: str

    @classmethod
    def parse(cls, text: str) -> "Observation":
        """Build an observation from the conventional ``"Key: value"`` form.

        Text without a key prefix is stored under the ``Note`` key.
        """
        match = _OBSERVATION_RE.match(text)
        if match:
            return cls(key=match.group(1), value=match.group(2))
        return cls(key="Note", value=text.strip())

    def __str__(self) -> str:
        return f"{self.key}: {self.value}"


def _coerce_observation(raw: Any) -> Any:
    if isinstance(raw, str):
        return Observation.parse(raw)
    return raw


class Entity(BaseModel):
    """Represents a node in the knowledge graph."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., description="Unique, case-sensitive entity name")
    entity_type: str = Field(
        ...,
        alias="entityType",
        description="Open type tag (e.g. 'college', 'scholarship', 'student')",
    )
    observations: list[Observation] = Field(default_factory=list)

    @field_validator("name", "entity_type")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value

    @field_validator("observations", mode="before")
    @classmethod
    def _parse_observations(cls, value: Any) -> Any:
        if isinstance(value, (list, tuple)):
            return [_coerce_observation(item) for item in value]
        return value

    def observation_strings(self) -> list[str]:
        """Observations rendered back to ``"Key: value"`` strings."""
        return [str(obs) for obs in self.observations]


class Relation(BaseModel):
    """Represents a directed, labelled edge in the knowledge graph."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    source: str = Field(..., alias="from", description="Name of the source entity")
    target: str = Field(..., alias="to", description="Name of the target entity")
    relation_type: str = Field(
        ...,
        alias="relationType",
        description="Relation label (e.g. 'offers_scholarship', 'interested_in')",
    )

    @field_validator("source", "target", "relation_type")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value

    def as_triple(self) -> tuple[str, str, str]:
        return (self.source, self.target, self.relation_type)


class KnowledgeGraph(BaseModel):
    """Full snapshot of a student's graph."""

    entities: list[Entity] = Field(default_factory=list)
    relations: list[Relation] = Field(default_factory=list)

    def get(self, name: str) -> Entity | None:
        for entity in self.entities:
            if entity.name == name:
                return entity
        return None


class ItemResult(BaseModel):
    """Outcome for one item of a batch write."""

    index: int
    key: str | None = None
    ok: bool
    error: str | None = None


class BatchResult(BaseModel):
    """Per-item outcome of a batch write. Batches may finish partially."""

    results: list[ItemResult] = Field(default_factory=list)

    @property
    def succeeded(self) -> list[ItemResult]:
        return [r for r in self.results if r.ok]

    @property
    def failed(self) -> list[ItemResult]:
        return [r for r in self.results if not r.ok]

    @property
    def ok(self) -> bool:
        return not self.failed

    def summary(self) -> str:
        text = f"{len(self.succeeded)} of {len(self.results)} applied"
        if self.failed:
            reasons = "; ".join(
                f"#{r.index} {r.key or '?'}: {r.error}" for r in self.failed
            )
            text += f" (rejected: {reasons})"
        return text


class GraphStats(BaseModel):
    """Statistics about the current state of the knowledge graph."""

    node_count: int
    edge_count: int
    entity_types: list[str]

"""Knowledge graph tools: create, read, search and delete entities and relations."""

import json
from typing import Any

from mcp.server.fastmcp import FastMCP

from collegebot_core.mcp.config import MCPConfig, get_stores
from collegebot_core.memory.models import BatchResult, KnowledgeGraph


def _graph_json(graph: KnowledgeGraph) -> str:
    """Render a graph in the camelCase shape the agent writes."""
    return json.dumps(
        {
            "entities": [
                {
                    "name": e.name,
                    "entityType": e.entity_type,
                    "observations": e.observation_strings(),
                }
                for e in graph.entities
            ],
            "relations": [r.model_dump(by_alias=True) for r in graph.relations],
        },
        indent=2,
    )


def _batch_json(result: BatchResult) -> str:
    return json.dumps(
        {"summary": result.summary(), "results": result.model_dump()["results"]},
        indent=2,
    )


def register(mcp: FastMCP, config: MCPConfig) -> None:
    """Register knowledge graph tools on the MCP server.

    Args:
        mcp: FastMCP server instance.
        config: MCP configuration.
    """

    @mcp.tool()
    def create_entities(student_id: str, entities: list[dict[str, Any]]) -> str:
        """Create or merge entities ({name, entityType, observations}) in the student's graph."""
        try:
            store = get_stores(config).graph(student_id)
            return _batch_json(store.create_entities(entities))
        except Exception as e:
            return f"Error: {str(e)}"

    @mcp.tool()
    def create_relations(student_id: str, relations: list[dict[str, Any]]) -> str:
        """Create directed relations ({from, to, relationType}) in the student's graph."""
        try:
            store = get_stores(config).graph(student_id)
            return _batch_json(store.create_relations(relations))
        except Exception as e:
            return f"Error: {str(e)}"

    @mcp.tool()
    def add_observations(student_id: str, entity_name: str, contents: list[str]) -> str:
        """Append "Key: value" observations to an existing entity."""
        try:
            store = get_stores(config).graph(student_id)
            added = store.add_observations(entity_name, contents)
            return json.dumps(
                {"entityName": entity_name, "added": [str(o) for o in added]}
            )
        except KeyError:
            return f"Error: Entity {entity_name} not found."
        except Exception as e:
            return f"Error: {str(e)}"

    @mcp.tool()
    def read_graph(student_id: str) -> str:
        """Return every entity and relation in the student's graph."""
        try:
            return _graph_json(get_stores(config).graph(student_id).read_graph())
        except Exception as e:
            return f"Error: {str(e)}"

    @mcp.tool()
    def search_nodes(student_id: str, query: str) -> str:
        """Find entities whose name, type or observations contain the query."""
        try:
            return _graph_json(get_stores(config).graph(student_id).search_nodes(query))
        except Exception as e:
            return f"Error: {str(e)}"

    @mcp.tool()
    def delete_entities(student_id: str, entity_names: list[str]) -> str:
        """Delete entities and every relation that references them."""
        try:
            removed = get_stores(config).graph(student_id).delete_entities(entity_names)
            return json.dumps({"deleted": removed})
        except Exception as e:
            return f"Error: {str(e)}"

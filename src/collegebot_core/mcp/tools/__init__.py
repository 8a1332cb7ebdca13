"""MCP tool modules.

Each module provides a ``register(mcp, config)`` function that adds
tools to a FastMCP server instance.
"""

from collegebot_core.mcp.tools import chats, graph, locations

ALL_MODULES = [graph, locations, chats]

__all__ = ["ALL_MODULES", "chats", "graph", "locations"]

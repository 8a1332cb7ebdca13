"""MCP tool server exposing a student's stores to the research agent.

Tools cover the knowledge graph, map locations and chat processing state
and are assembled into a FastMCP server by ``create_server``.
"""

from collegebot_core.mcp.config import MCPConfig
from collegebot_core.mcp.server import create_server

__all__ = ["MCPConfig", "create_server"]

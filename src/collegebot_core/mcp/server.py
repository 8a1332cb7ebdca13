"""MCP server factory: assembles a FastMCP instance with the student data tools."""

from mcp.server.fastmcp import FastMCP

from collegebot_core.mcp.config import MCPConfig
from collegebot_core.mcp.tools import ALL_MODULES


def create_server(config: MCPConfig | None = None) -> FastMCP:
    """Create a configured MCP server with all student data tools registered.

    Args:
        config: Server configuration. Uses defaults if not provided.

    Returns:
        A FastMCP instance with all tools registered.
    """
    if config is None:
        config = MCPConfig()

    mcp = FastMCP(config.server_name)

    for module in ALL_MODULES:
        module.register(mcp, config)

    return mcp

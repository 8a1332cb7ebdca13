"""Tests for MCP server factory."""

from collegebot_core.mcp.config import MCPConfig
from collegebot_core.mcp.server import create_server


class TestCreateServer:
    """create_server factory tests."""

    def test_returns_fastmcp_instance(self, tmp_path) -> None:
        from mcp.server.fastmcp import FastMCP

        server = create_server(MCPConfig(data_dir=tmp_path))
        assert isinstance(server, FastMCP)

    def test_default_name(self, tmp_path) -> None:
        server = create_server(MCPConfig(data_dir=tmp_path))
        assert server.name == "Student Data"

    def test_custom_config(self, tmp_path) -> None:
        config = MCPConfig(server_name="Custom Server", data_dir=tmp_path)
        server = create_server(config)
        assert server.name == "Custom Server"

    def test_registers_tools(self, tmp_path) -> None:
        server = create_server(MCPConfig(data_dir=tmp_path))
        tool_names = {
            "create_entities",
            "create_relations",
            "add_observations",
            "read_graph",
            "search_nodes",
            "delete_entities",
            "geocode",
            "create_map_location",
            "update_map_location",
            "get_map_locations",
            "list_map_location_names",
            "clear_map_locations",
            "get_chats",
            "mark_chat_processed",
            "mark_chats_unprocessed",
        }
        registered = set()
        if hasattr(server, "_tool_manager"):
            registered = set(server._tool_manager._tools.keys())
        elif hasattr(server, "_tools"):
            registered = set(server._tools.keys())

        assert tool_names.issubset(
            registered
        ), f"Missing tools: {tool_names - registered}"

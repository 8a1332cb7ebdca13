"""Map location tools: geocode addresses and maintain the student's map pins."""

import json
from typing import Any, Optional

from mcp.server.fastmcp import FastMCP

from collegebot_core.locations.geocoding import GeocodingClient
from collegebot_core.locations.models import LocationType
from collegebot_core.mcp.config import MCPConfig, get_stores


def _geocoder(config: MCPConfig) -> Optional[GeocodingClient]:
    if not config.geocoding_api_key:
        return None
    return GeocodingClient(config.geocoding_api_key, config.geocoding_base_url)


def register(mcp: FastMCP, config: MCPConfig) -> None:
    """Register map location tools on the MCP server.

    Args:
        mcp: FastMCP server instance.
        config: MCP configuration.
    """
    geocoder = _geocoder(config)

    def _upsert(
        student_id: str, location: dict[str, Any], source_chat: Optional[str]
    ) -> str:
        stored = get_stores(config).locations.upsert_location(
            student_id, location, geocoder=geocoder, source_chat=source_chat
        )
        return json.dumps(stored.model_dump(mode="json", by_alias=True), indent=2)

    @mcp.tool()
    def geocode(address: str, name: str) -> str:
        """Look up latitude and longitude for an address."""
        if geocoder is None:
            return "Error: Geocoding requires COLLEGEBOT_GEOCODING_API_KEY."
        try:
            result = geocoder.geocode(address, name)
            return json.dumps(result.model_dump())
        except Exception as e:
            return f"Error: {str(e)}"

    @mcp.tool()
    def create_map_location(
        student_id: str, location: dict[str, Any], source_chat: str | None = None
    ) -> str:
        """Add a college or scholarship to the map, merging with an existing pin.

        The location needs ``name`` and ``type`` plus either latitude and
        longitude or ``metadata.address``.
        """
        try:
            return _upsert(student_id, location, source_chat)
        except Exception as e:
            return f"Error: {str(e)}"

    @mcp.tool()
    def update_map_location(
        student_id: str, location: dict[str, Any], source_chat: str | None = None
    ) -> str:
        """Update an existing map pin identified by name and type."""
        try:
            return _upsert(student_id, location, source_chat)
        except Exception as e:
            return f"Error: {str(e)}"

    @mcp.tool()
    def get_map_locations(student_id: str) -> str:
        """List every map pin of the student."""
        try:
            locations = get_stores(config).locations.list_locations(student_id)
            return json.dumps(
                [loc.model_dump(mode="json", by_alias=True) for loc in locations],
                indent=2,
            )
        except Exception as e:
            return f"Error: {str(e)}"

    @mcp.tool()
    def list_map_location_names(student_id: str, location_type: str | None = None) -> str:
        """List pin names, optionally limited to 'college' or 'scholarship'."""
        try:
            wanted = LocationType(location_type) if location_type else None
            names = [
                {"name": name, "type": kind.value}
                for name, kind in get_stores(config).locations.list_location_names(
                    student_id
                )
                if wanted is None or kind is wanted
            ]
            return json.dumps(names)
        except Exception as e:
            return f"Error: {str(e)}"

    @mcp.tool()
    def clear_map_locations(student_id: str) -> str:
        """Delete every map pin of the student."""
        try:
            count = get_stores(config).locations.clear_locations(student_id)
            return f"Cleared {count} map locations."
        except Exception as e:
            return f"Error: {str(e)}"

"""MCP server configuration model."""

from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel

from collegebot_core.config import DEFAULT_DATA_DIR, Settings
from collegebot_core.enrichment.registry import StoreRegistry


class MCPConfig(BaseModel):
    """Configuration for the student data tool server.

    Args:
        server_name: Display name for the MCP server.
        data_dir: Root directory of the student stores.
        geocoding_api_key: Optional Google Geocoding API key.
        geocoding_base_url: Geocoding endpoint.
    """

    server_name: str = "Student Data"
    data_dir: Path = DEFAULT_DATA_DIR
    geocoding_api_key: str | None = None
    geocoding_base_url: str = "https://maps.googleapis.com/maps/api/geocode/json"

    @classmethod
    def from_settings(cls, settings: Settings) -> "MCPConfig":
        return cls(
            data_dir=settings.data_dir,
            geocoding_api_key=settings.geocoding_api_key,
            geocoding_base_url=settings.geocoding_base_url,
        )


@lru_cache(maxsize=None)
def _registry(data_dir: Path) -> StoreRegistry:
    return StoreRegistry(data_dir)


def get_stores(config: MCPConfig) -> StoreRegistry:
    """Store registry shared by every tool module serving ``config.data_dir``."""
    return _registry(config.data_dir.expanduser().resolve())

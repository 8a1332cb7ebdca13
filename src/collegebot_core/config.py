"""Runtime settings for the enrichment pipeline.

Values come from ``COLLEGEBOT_*`` environment variables, with defaults
suitable for a single-user local install.
"""

import os
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

DEFAULT_DATA_DIR = Path.home() / ".collegebot"

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


class Settings(BaseModel):
    """Pipeline configuration.

    Args:
        data_dir: Root directory for the graph files and SQLite database.
        agent_base_url: Base URL of the analysis agent gateway.
        agent_timeout: Read timeout in seconds for the agent stream.
        geocoding_api_key: Google Geocoding API key, if configured.
        geocoding_base_url: Geocoding endpoint.
        retry_backoff_seconds: Pause after a failed chat in a batch.
        log_level: Root log level for the CLI.
    """

    data_dir: Path = DEFAULT_DATA_DIR
    agent_base_url: str = "http://localhost:3001/api/agent"
    agent_timeout: float = 300.0
    geocoding_api_key: str | None = None
    geocoding_base_url: str = "https://maps.googleapis.com/maps/api/geocode/json"
    retry_backoff_seconds: float = Field(2.0, ge=0.0)
    log_level: str = "INFO"

    @property
    def database_path(self) -> Path:
        """SQLite file holding chats, map locations and planner items."""
        return self.data_dir / "collegebot.db"

    @property
    def graph_dir(self) -> Path:
        """Directory holding one knowledge graph file per student."""
        return self.data_dir / "graphs"

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from the process environment.

        Returns:
            A populated Settings instance.

        Raises:
            RuntimeError: If a variable holds a value that cannot be used.
        """
        values: dict = {}

        data_dir = os.environ.get("COLLEGEBOT_DATA_DIR")
        if data_dir:
            values["data_dir"] = Path(data_dir).expanduser()

        agent_url = os.environ.get("COLLEGEBOT_AGENT_URL")
        if agent_url:
            values["agent_base_url"] = agent_url

        api_key = os.environ.get("COLLEGEBOT_GEOCODING_API_KEY") or os.environ.get(
            "GOOGLE_MAPS_API_KEY"
        )
        if api_key:
            values["geocoding_api_key"] = api_key

        for env_name, field_name in (
            ("COLLEGEBOT_AGENT_TIMEOUT", "agent_timeout"),
            ("COLLEGEBOT_RETRY_BACKOFF", "retry_backoff_seconds"),
        ):
            raw = os.environ.get(env_name)
            if raw is None:
                continue
            try:
                values[field_name] = float(raw)
            except ValueError:
                raise RuntimeError(
                    f"Invalid {env_name} value: {raw}. Must be a number of seconds."
                ) from None

        level = os.environ.get("COLLEGEBOT_LOG_LEVEL")
        if level:
            level = level.upper()
            if level not in _LOG_LEVELS:
                raise RuntimeError(
                    f"Invalid COLLEGEBOT_LOG_LEVEL value: {level}. "
                    f"Must be one of: {', '.join(_LOG_LEVELS)}."
                )
            values["log_level"] = level

        try:
            return cls(**values)
        except ValidationError as e:
            raise RuntimeError(f"Invalid settings: {e}") from None

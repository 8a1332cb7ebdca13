"""Shared test configuration and fixtures."""

from pathlib import Path

import pytest

from collegebot_core.config import Settings
from collegebot_core.enrichment.registry import StoreRegistry


@pytest.fixture
def student_id() -> str:
    return "student-1"


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings pointing at a temporary data directory."""
    return Settings(data_dir=tmp_path / "data", retry_backoff_seconds=0)


@pytest.fixture
def stores(settings: Settings) -> StoreRegistry:
    """Store registry over the temporary data directory."""
    return StoreRegistry.from_settings(settings)

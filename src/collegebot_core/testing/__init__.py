"""Shared test utilities, fixtures, and factories."""

from collegebot_core.testing.factories import (
    complete_event,
    error_event,
    make_chat,
    make_entity,
    make_location_input,
    make_message,
    make_relation,
    tool_call,
)
from collegebot_core.testing.fixtures import (
    create_mock_agent_client,
    create_mock_geocoder,
)

__all__ = [
    "complete_event",
    "create_mock_agent_client",
    "create_mock_geocoder",
    "error_event",
    "make_chat",
    "make_entity",
    "make_location_input",
    "make_message",
    "make_relation",
    "tool_call",
]

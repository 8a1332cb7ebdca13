"""Mock fixtures for testing against collegebot-core interfaces."""

from typing import Iterator, Sequence, Union
from unittest.mock import MagicMock

from collegebot_core.agent.events import AgentEvent
from collegebot_core.errors import GeocodingError
from collegebot_core.locations.geocoding import GeocodeResult

ScriptStep = Union[AgentEvent, BaseException]


def create_mock_agent_client(
    script: Union[Sequence[ScriptStep], dict[str, Sequence[ScriptStep]]] = (),
) -> MagicMock:
    """Create a mock AgentClient whose ``analyze`` replays scripted events.

    Args:
        script: Events to yield for every chat, or a mapping of chat id to
            events. An exception in the sequence is raised at that point of
            the stream.

    Returns:
        MagicMock with AgentClient interface. ``closed`` on the mock lists
        chat ids whose stream was closed.
    """
    mock = MagicMock()
    mock.closed = []

    def analyze(student_id, chat, mode) -> Iterator[AgentEvent]:
        steps = script.get(chat.id, ()) if isinstance(script, dict) else script
        try:
            for step in steps:
                if isinstance(step, BaseException):
                    raise step
                yield step
        finally:
            mock.closed.append(chat.id)

    mock.analyze.side_effect = analyze
    mock.health_check.return_value = True
    return mock


def create_mock_geocoder(
    positions: dict[str, tuple[float, float]] | None = None,
) -> MagicMock:
    """Create a mock Geocoder resolving known addresses.

    Args:
        positions: Address to (latitude, longitude). Unknown addresses raise
            GeocodingError.

    Returns:
        MagicMock with Geocoder interface.
    """
    positions = positions or {}

    def geocode(address: str, name: str) -> GeocodeResult:
        if address not in positions:
            raise GeocodingError(f"No results for address: {address}")
        lat, lng = positions[address]
        return GeocodeResult(
            name=name, latitude=lat, longitude=lng, formatted_address=address
        )

    mock = MagicMock()
    mock.geocode.side_effect = geocode
    return mock

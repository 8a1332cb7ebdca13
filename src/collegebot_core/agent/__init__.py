"""Client for the analysis agent and dispatch of its tool calls."""

from collegebot_core.agent.client import AgentClient, AnalysisMode
from collegebot_core.agent.events import (
    AgentEvent,
    EventType,
    StreamDecoder,
    coalesce_thinking,
)
from collegebot_core.agent.tools import ToolDispatcher, ToolOutcome

__all__ = [
    "AgentClient",
    "AgentEvent",
    "AnalysisMode",
    "EventType",
    "StreamDecoder",
    "ToolDispatcher",
    "ToolOutcome",
    "coalesce_thinking",
]

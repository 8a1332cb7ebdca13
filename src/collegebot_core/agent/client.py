"""HTTP client for the analysis agent gateway.

The gateway receives a chat transcript plus a processing mode and streams
back newline-delimited event records while the agent works through the
conversation.
"""

import logging
from enum import Enum
from typing import Any, Iterator

import httpx

from collegebot_core.agent.events import AgentEvent, StreamDecoder
from collegebot_core.chats.models import Chat
from collegebot_core.errors import AgentStreamError

logger = logging.getLogger(__name__)


class AnalysisMode(str, Enum):
    MAP_ENRICHMENT = "map_enrichment"
    GRAPH_ENRICHMENT = "graph_enrichment"


class AgentClient:
    """Streaming client for the analysis agent.

    Args:
        base_url: Base URL of the gateway (e.g. http://localhost:3001/api/agent).
        timeout: Read timeout in seconds between stream chunks.
    """

    def __init__(self, base_url: str, timeout: float = 300.0) -> None:
        if not base_url or not base_url.strip():
            raise ValueError("AgentClient requires a non-empty base_url")
        base_url = base_url.strip()
        if not base_url.startswith(("http://", "https://")):
            raise ValueError(
                f"base_url must start with http:// or https://, got: {base_url}"
            )
        self.base_url = base_url.rstrip("/")
        self.client = httpx.Client(timeout=httpx.Timeout(timeout, connect=10.0))

    def analyze(
        self, student_id: str, chat: Chat, mode: AnalysisMode | str
    ) -> Iterator[AgentEvent]:
        """Stream an analysis pass over one chat.

        The HTTP response is released when the iterator is exhausted or
        closed, including when the consumer stops early.

        Args:
            student_id: Owning student.
            chat: Chat whose transcript is analysed.
            mode: Which stores the agent should target.

        Yields:
            Decoded AgentEvent records in arrival order.

        Raises:
            AgentStreamError: On connection failures or HTTP errors.
        """
        payload: dict[str, Any] = {
            "studentId": student_id,
            "chatId": chat.id,
            "mode": AnalysisMode(mode).value,
            "title": chat.title,
            "messages": chat.transcript(),
        }
        decoder = StreamDecoder()
        try:
            with self.client.stream(
                "POST", f"{self.base_url}/analyze", json=payload
            ) as resp:
                if resp.status_code >= 400:
                    resp.read()
                    raise AgentStreamError(
                        f"Agent returned HTTP {resp.status_code}: {resp.text[:200]}",
                        retryable=resp.status_code >= 500 or resp.status_code == 429,
                    )
                for chunk in resp.iter_bytes():
                    yield from decoder.feed(chunk)
                yield from decoder.flush()
        except httpx.HTTPError as e:
            raise AgentStreamError(f"Agent stream failed: {e}") from e
        finally:
            if decoder.skipped:
                logger.warning(
                    "Skipped %d malformed records for chat %s", decoder.skipped, chat.id
                )

    def health_check(self) -> bool:
        """Check if the gateway is reachable.

        Returns:
            True if the server responds, False otherwise.
        """
        try:
            resp = self.client.get(f"{self.base_url}/health")
            return resp.status_code < 400
        except (httpx.ConnectError, httpx.TimeoutException):
            return False

    def close(self) -> None:
        """Close the HTTP client."""
        self.client.close()

    def __enter__(self) -> "AgentClient":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

"""Enrichment orchestrator.

Drives the analysis agent over a student's chats and applies the tool
calls it emits to the knowledge graph, map location and planner stores.
Writes happen as the stream arrives; a pass that fails part way keeps
everything it already wrote and leaves the chat unprocessed, so the
next run repeats it against idempotent stores.
"""

import logging
import time
from typing import Callable, Iterator, Optional

from collegebot_core.agent.client import AgentClient, AnalysisMode
from collegebot_core.agent.events import AgentEvent, EventType
from collegebot_core.agent.tools import ToolDispatcher
from collegebot_core.config import Settings
from collegebot_core.errors import AgentStreamError, CollegebotError
from collegebot_core.enrichment.progress import (
    BatchReport,
    ChatResult,
    ProgressCallback,
    ProgressEvent,
    ProgressKind,
)
from collegebot_core.enrichment.registry import StoreRegistry
from collegebot_core.locations.geocoding import Geocoder, GeocodingClient

logger = logging.getLogger(__name__)


class EnrichmentOrchestrator:
    """Runs analysis passes and records their outcome.

    Args:
        stores: Store registry for the data directory.
        agent: Client for the analysis agent.
        geocoder: Geocoder used for locations without coordinates.
        retry_backoff_seconds: Pause after a failed chat in a batch.
        sleep: Sleep function, replaceable in tests.
    """

    def __init__(
        self,
        stores: StoreRegistry,
        agent: AgentClient,
        geocoder: Optional[Geocoder] = None,
        retry_backoff_seconds: float = 2.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.stores = stores
        self.agent = agent
        self.geocoder = geocoder
        self.retry_backoff_seconds = retry_backoff_seconds
        self._sleep = sleep

    @classmethod
    def from_settings(cls, settings: Settings) -> "EnrichmentOrchestrator":
        """Wire the stores, agent client and geocoder from settings."""
        geocoder = None
        if settings.geocoding_api_key:
            geocoder = GeocodingClient(
                settings.geocoding_api_key, settings.geocoding_base_url
            )
        else:
            logger.warning(
                "No geocoding API key configured; locations without "
                "coordinates will be rejected"
            )
        return cls(
            StoreRegistry.from_settings(settings),
            AgentClient(settings.agent_base_url, settings.agent_timeout),
            geocoder=geocoder,
            retry_backoff_seconds=settings.retry_backoff_seconds,
        )

    def process_chat(
        self,
        student_id: str,
        chat_id: str,
        mode: AnalysisMode | str = AnalysisMode.GRAPH_ENRICHMENT,
        on_progress: Optional[ProgressCallback] = None,
    ) -> ChatResult:
        """Run one analysis pass over one chat.

        The chat is marked processed only when the agent reports
        completion. An error event, a transport failure or a stream that
        ends early fails the pass without undoing writes already applied.

        Args:
            student_id: Owning student.
            chat_id: Chat to analyse.
            mode: Which stores the agent should target.
            on_progress: Optional callback receiving progress events.

        Returns:
            ChatResult for the pass.

        Raises:
            ChatNotFoundError: If the chat does not exist.
        """
        chat = self.stores.chats.require_chat(student_id, chat_id)
        mode = AnalysisMode(mode)
        emit = _emitter(on_progress)
        emit(
            ProgressEvent(
                ProgressKind.CHAT_STARTED,
                f"Analysing {chat.title or chat.id} ({mode.value})",
                chat_id=chat.id,
            )
        )

        dispatcher = ToolDispatcher(
            student_id,
            chat.id,
            graph=self.stores.graph(student_id),
            locations=self.stores.locations,
            planner=self.stores.planner,
            geocoder=self.geocoder,
        )
        result = ChatResult(chat_id=chat.id, ok=False)
        events: Iterator[AgentEvent] = iter(self.agent.analyze(student_id, chat, mode))
        try:
            for event in events:
                if event.type is EventType.TOOL_CALL:
                    outcome = dispatcher.dispatch(event)
                    result.tool_outcomes.append(outcome)
                    emit(
                        ProgressEvent(
                            ProgressKind.TOOL,
                            outcome.message,
                            chat_id=chat.id,
                            data=outcome.model_dump(),
                        )
                    )
                elif event.type is EventType.ERROR:
                    result.error = event.content or "Agent reported an error"
                    break
                elif event.type is EventType.COMPLETE:
                    self.stores.chats.set_processed(
                        student_id, chat.id, True, chat.last_message_at
                    )
                    result.ok = True
                    break
                elif event.type is EventType.STATUS:
                    emit(
                        ProgressEvent(
                            ProgressKind.STATUS,
                            event.content or "",
                            chat_id=chat.id,
                            data={"progress": event.progress, "total": event.total},
                        )
                    )
                else:
                    emit(
                        ProgressEvent(
                            ProgressKind.LOG,
                            event.content or "",
                            chat_id=chat.id,
                            data={"type": event.type.value, "analysis": event.analysis},
                        )
                    )
            else:
                result.error = "Agent stream ended before completion"
        except AgentStreamError as e:
            result.error = str(e)
        finally:
            close = getattr(events, "close", None)
            if close is not None:
                close()

        if result.ok:
            logger.info(
                "Chat %s processed for %s (%d writes)", chat.id, student_id, result.writes
            )
            emit(
                ProgressEvent(
                    ProgressKind.CHAT_FINISHED,
                    f"Finished {chat.title or chat.id}: {result.writes} writes",
                    chat_id=chat.id,
                )
            )
        else:
            logger.warning(
                "Chat %s failed for %s after %d writes: %s",
                chat.id,
                student_id,
                result.writes,
                result.error,
            )
            emit(
                ProgressEvent(
                    ProgressKind.CHAT_FAILED,
                    f"Failed {chat.title or chat.id}: {result.error}",
                    chat_id=chat.id,
                )
            )
        return result

    def process_all(
        self,
        student_id: str,
        mode: AnalysisMode | str = AnalysisMode.GRAPH_ENRICHMENT,
        on_progress: Optional[ProgressCallback] = None,
    ) -> BatchReport:
        """Process every unprocessed chat of a student, one at a time.

        A failing chat is reported and the batch moves on after a short
        backoff.

        Returns:
            BatchReport with one result per attempted chat.
        """
        emit = _emitter(on_progress)
        pending = self.stores.chats.list_unprocessed(student_id)
        report = BatchReport(total_count=len(pending))
        logger.info("Processing %d unprocessed chats for %s", len(pending), student_id)
        if not pending:
            emit(
                ProgressEvent(
                    ProgressKind.BATCH_FINISHED,
                    "No unprocessed chats",
                    processed_count=0,
                    total_count=0,
                )
            )
            return report

        for index, chat in enumerate(pending, start=1):
            emit(
                ProgressEvent(
                    ProgressKind.STATUS,
                    f"Processing chat {index} of {len(pending)}: {chat.title or chat.id}",
                    chat_id=chat.id,
                    processed_count=index - 1,
                    total_count=len(pending),
                )
            )
            try:
                result = self.process_chat(student_id, chat.id, mode, on_progress)
            except CollegebotError as e:
                logger.error("Chat %s could not be processed: %s", chat.id, e)
                result = ChatResult(chat_id=chat.id, ok=False, error=str(e))
                emit(
                    ProgressEvent(
                        ProgressKind.CHAT_FAILED,
                        f"Failed {chat.title or chat.id}: {e}",
                        chat_id=chat.id,
                    )
                )
            report.results.append(result)
            emit(
                ProgressEvent(
                    ProgressKind.STATUS,
                    f"Processed {index} of {len(pending)} chats",
                    chat_id=chat.id,
                    processed_count=index,
                    total_count=len(pending),
                )
            )
            if not result.ok and index < len(pending) and self.retry_backoff_seconds:
                self._sleep(self.retry_backoff_seconds)

        logger.info(report.summary())
        emit(
            ProgressEvent(
                ProgressKind.BATCH_FINISHED,
                report.summary(),
                processed_count=report.processed_count,
                total_count=report.total_count,
                data={"failed": [r.chat_id for r in report.failed]},
            )
        )
        return report

    def mark_unprocessed(
        self, student_id: str, chat_ids: Optional[list[str]] = None
    ) -> list[str]:
        """Reset chats so the next batch analyses them again.

        Args:
            student_id: Owning student.
            chat_ids: Chats to reset; every chat of the student when None.

        Returns:
            Ids of the chats that exist and were reset.
        """
        if chat_ids is None:
            chat_ids = [chat.id for chat in self.stores.chats.list_chats(student_id)]
        flipped = [
            chat_id
            for chat_id in chat_ids
            if self.stores.chats.set_processed(student_id, chat_id, False)
        ]
        logger.info("Marked %d chats unprocessed for %s", len(flipped), student_id)
        return flipped

    def mark_recent_unprocessed(self, student_id: str) -> Optional[str]:
        """Reset the most recently updated chat.

        Returns:
            The chat id, or None if the student has no chats.
        """
        chat = self.stores.chats.most_recent_chat(student_id)
        if chat is None:
            return None
        self.stores.chats.set_processed(student_id, chat.id, False)
        logger.info("Marked most recent chat %s unprocessed for %s", chat.id, student_id)
        return chat.id

    def refresh_stale(self, student_id: str) -> list[str]:
        """Reset processed chats that received messages after their last pass."""
        return self.stores.chats.mark_stale_unprocessed(student_id)

    def close(self) -> None:
        self.agent.close()
        close = getattr(self.geocoder, "close", None)
        if close is not None:
            close()


def _emitter(on_progress: Optional[ProgressCallback]) -> ProgressCallback:
    def emit(event: ProgressEvent) -> None:
        logger.debug("[%s] %s", event.kind.value, event.message)
        if on_progress is not None:
            on_progress(event)

    return emit

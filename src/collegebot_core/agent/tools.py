"""Translate agent tool calls into store writes.

One dispatcher serves one enrichment pass over one chat. Every call is
applied synchronously, so by the time ``dispatch`` returns the write is
durable. Bad arguments and failed lookups become failed outcomes rather
than exceptions, which lets the stream carry on with the next call.
"""

import logging
from typing import Any, Callable, Optional

from pydantic import BaseModel, ValidationError

from collegebot_core.agent.events import AgentEvent
from collegebot_core.errors import CollegebotError
from collegebot_core.locations.geocoding import Geocoder
from collegebot_core.locations.store import LocationStore
from collegebot_core.memory.graph_store import GraphStore
from collegebot_core.memory.models import Relation
from collegebot_core.planner.store import PlannerStore

logger = logging.getLogger(__name__)


class ToolOutcome(BaseModel):
    """Result of applying one tool call."""

    tool: str
    ok: bool
    message: str
    writes: int = 0


def _as_list(arguments: dict[str, Any], key: str) -> list[Any]:
    value = arguments.get(key)
    if not isinstance(value, list):
        raise ValueError(f"'{key}' must be a list")
    return value


def _payload(arguments: dict[str, Any], key: str) -> dict[str, Any]:
    """Tool payloads arrive either wrapped (``{"location": {...}}``) or flat."""
    inner = arguments.get(key)
    if isinstance(inner, dict):
        return inner
    return {k: v for k, v in arguments.items() if k != "studentId"}


class ToolDispatcher:
    """Applies tool calls from one analysis pass.

    Args:
        student_id: Student whose stores are written.
        chat_id: Chat being analysed; recorded on map locations and tasks.
        graph: The student's knowledge graph.
        locations: Map location store.
        planner: Calendar and task store.
        geocoder: Gateway for locations that arrive without coordinates.
    """

    def __init__(
        self,
        student_id: str,
        chat_id: str,
        graph: GraphStore,
        locations: LocationStore,
        planner: PlannerStore,
        geocoder: Optional[Geocoder] = None,
    ) -> None:
        self.student_id = student_id
        self.chat_id = chat_id
        self.graph = graph
        self.locations = locations
        self.planner = planner
        self.geocoder = geocoder
        self._applied_relations: set[tuple[str, str, str]] = set()
        self._handlers: dict[str, Callable[[dict[str, Any]], ToolOutcome]] = {
            "create_entities": self._create_entities,
            "create_relations": self._create_relations,
            "add_observations": self._add_observations,
            "create_map_location": self._upsert_location,
            "update_map_location": self._upsert_location,
            "geocode": self._geocode,
            "create_calendar_item": self._create_calendar_item,
            "create_calendar_items_batch": self._create_calendar_items_batch,
            "create_task": self._create_task,
            "create_tasks_batch": self._create_tasks_batch,
            "mark_chat_processed": self._mark_chat_processed,
        }

    @property
    def tool_names(self) -> list[str]:
        return sorted(self._handlers)

    def dispatch(self, event: AgentEvent) -> ToolOutcome:
        """Apply one ``tool_call`` event.

        Args:
            event: The tool call.

        Returns:
            ToolOutcome describing what was written.
        """
        tool = event.tool or ""
        handler = self._handlers.get(tool)
        if handler is None:
            logger.warning("Unknown tool %r in chat %s", tool, self.chat_id)
            return ToolOutcome(tool=tool, ok=False, message=f"Unknown tool: {tool}")

        requested = event.arguments.get("studentId")
        if requested and requested != self.student_id:
            logger.warning(
                "Tool %s asked for student %s; writing to %s",
                tool,
                requested,
                self.student_id,
            )

        try:
            outcome = handler(event.arguments)
        except (ValidationError, ValueError, KeyError, TypeError, CollegebotError) as e:
            logger.warning("Tool %s failed in chat %s: %s", tool, self.chat_id, e)
            return ToolOutcome(tool=tool, ok=False, message=f"{tool} failed: {e}")
        except Exception as e:
            logger.exception("Tool %s raised unexpectedly in chat %s", tool, self.chat_id)
            return ToolOutcome(
                tool=tool, ok=False, message=f"{tool} failed: {type(e).__name__}: {e}"
            )

        outcome.tool = tool
        log = logger.info if outcome.ok else logger.warning
        log("Tool %s: %s", tool, outcome.message)
        return outcome

    # ------------------------------------------------------------------
    # Knowledge graph
    # ------------------------------------------------------------------

    def _create_entities(self, arguments: dict[str, Any]) -> ToolOutcome:
        result = self.graph.create_entities(_as_list(arguments, "entities"))
        return ToolOutcome(
            tool="create_entities",
            ok=result.ok,
            message=f"Entities: {result.summary()}",
            writes=len(result.succeeded),
        )

    def _create_relations(self, arguments: dict[str, Any]) -> ToolOutcome:
        fresh: list[Any] = []
        repeats = 0
        for raw in _as_list(arguments, "relations"):
            try:
                triple = Relation.model_validate(raw).as_triple()
            except ValidationError:
                # Let the store reject it so the failure is reported per item.
                fresh.append(raw)
                continue
            if triple in self._applied_relations:
                repeats += 1
                continue
            self._applied_relations.add(triple)
            fresh.append(raw)

        result = self.graph.create_relations(fresh)
        message = f"Relations: {result.summary()}"
        if repeats:
            message += f", {repeats} repeated in this pass skipped"
        return ToolOutcome(
            tool="create_relations",
            ok=result.ok,
            message=message,
            writes=len(result.succeeded),
        )

    def _add_observations(self, arguments: dict[str, Any]) -> ToolOutcome:
        if "observations" in arguments and "entityName" not in arguments:
            groups = _as_list(arguments, "observations")
        else:
            groups = [
                {
                    "entityName": arguments.get("entityName"),
                    "contents": arguments.get("contents")
                    or arguments.get("observations")
                    or [],
                }
            ]
        added = 0
        missing = []
        rejected = []
        for index, group in enumerate(groups):
            if not isinstance(group, dict) or not group.get("entityName"):
                rejected.append(f"#{index}: expected entityName and contents")
                continue
            name = group["entityName"]
            contents = group.get("contents", [])
            if isinstance(contents, str):
                contents = [contents]
            if not isinstance(contents, list) or not all(
                isinstance(item, str) for item in contents
            ):
                rejected.append(f"{name}: contents must be a list of strings")
                continue
            try:
                added += len(self.graph.add_observations(name, contents))
            except KeyError:
                missing.append(str(name))
        message = f"Added {added} observations"
        if missing:
            message += f"; unknown entities: {', '.join(missing)}"
        if rejected:
            message += f"; rejected {'; '.join(rejected)}"
        return ToolOutcome(
            tool="add_observations",
            ok=not (missing or rejected),
            message=message,
            writes=added,
        )

    # ------------------------------------------------------------------
    # Map locations
    # ------------------------------------------------------------------

    def _upsert_location(self, arguments: dict[str, Any]) -> ToolOutcome:
        stored = self.locations.upsert_location(
            self.student_id,
            _payload(arguments, "location"),
            geocoder=self.geocoder,
            source_chat=self.chat_id,
        )
        return ToolOutcome(
            tool="upsert_location",
            ok=True,
            message=f"Saved {stored.type.value} {stored.name} ({stored.id})",
            writes=1,
        )

    def _geocode(self, arguments: dict[str, Any]) -> ToolOutcome:
        if self.geocoder is None:
            return ToolOutcome(tool="geocode", ok=False, message="No geocoder configured")
        result = self.geocoder.geocode(arguments.get("address", ""), arguments.get("name", ""))
        return ToolOutcome(
            tool="geocode",
            ok=True,
            message=(
                f"{result.name}: {result.latitude:.5f},{result.longitude:.5f} "
                f"({result.formatted_address})"
            ),
        )

    # ------------------------------------------------------------------
    # Calendar and tasks
    # ------------------------------------------------------------------

    def _create_calendar_item(self, arguments: dict[str, Any]) -> ToolOutcome:
        item = self.planner.add_calendar_item(self.student_id, _payload(arguments, "item"))
        return ToolOutcome(
            tool="create_calendar_item",
            ok=True,
            message=f"Calendar item {item.title} on {item.date.isoformat()}",
            writes=1,
        )

    def _create_calendar_items_batch(self, arguments: dict[str, Any]) -> ToolOutcome:
        written = 0
        errors = []
        for index, raw in enumerate(_as_list(arguments, "items")):
            try:
                self.planner.add_calendar_item(self.student_id, raw)
                written += 1
            except ValidationError as e:
                errors.append(f"#{index}: {e.error_count()} errors")
        message = f"{written} calendar items saved"
        if errors:
            message += f" (rejected {'; '.join(errors)})"
        return ToolOutcome(
            tool="create_calendar_items_batch",
            ok=not errors,
            message=message,
            writes=written,
        )

    def _create_task(self, arguments: dict[str, Any]) -> ToolOutcome:
        payload = {"sourceChat": self.chat_id, **_payload(arguments, "task")}
        task = self.planner.add_task(self.student_id, payload)
        return ToolOutcome(
            tool="create_task", ok=True, message=f"Task {task.title}", writes=1
        )

    def _create_tasks_batch(self, arguments: dict[str, Any]) -> ToolOutcome:
        written = 0
        errors = []
        for index, raw in enumerate(_as_list(arguments, "tasks")):
            try:
                payload = {"sourceChat": self.chat_id, **raw}
                self.planner.add_task(self.student_id, payload)
                written += 1
            except (ValidationError, TypeError) as e:
                errors.append(f"#{index}: {e}")
        message = f"{written} tasks saved"
        if errors:
            message += f" (rejected {'; '.join(errors)})"
        return ToolOutcome(
            tool="create_tasks_batch", ok=not errors, message=message, writes=written
        )

    def _mark_chat_processed(self, arguments: dict[str, Any]) -> ToolOutcome:
        # Processing state is recorded by the orchestrator on completion.
        return ToolOutcome(
            tool="mark_chat_processed",
            ok=True,
            message="Chat will be marked processed when the pass completes",
        )

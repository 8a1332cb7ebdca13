"""Calendar items and tasks produced by enrichment passes."""

from collegebot_core.planner.models import CalendarItem, Task
from collegebot_core.planner.store import PlannerStore

__all__ = ["CalendarItem", "PlannerStore", "Task"]

"""Calendar items and tasks created during enrichment passes."""

import datetime as dt
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class CalendarItem(BaseModel):
    """A dated entry on the student's calendar."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = ""
    student_id: str = Field("", alias="studentId")
    title: str = Field(..., min_length=1)
    description: str = ""
    date: dt.date
    type: Literal["deadline", "event", "reminder", "appointment", "task"] = "deadline"
    source_pins: list[str] = Field(default_factory=list, alias="sourcePins")
    completed: bool = False


class Task(BaseModel):
    """An actionable to-do for the student."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = ""
    student_id: str = Field("", alias="studentId")
    title: str = Field(..., min_length=1)
    description: str = ""
    due_date: Optional[dt.date] = Field(None, alias="dueDate")
    completed: bool = False
    category: Literal[
        "application",
        "scholarship",
        "financial",
        "testing",
        "visit",
        "deadline",
        "other",
    ] = "other"
    priority: Literal["high", "medium", "low"] = "medium"
    tags: list[str] = Field(default_factory=list)
    source_pins: list[str] = Field(default_factory=list, alias="sourcePins")
    source_chat: Optional[str] = Field(None, alias="sourceChat")

"""Household task data model for pairplan."""

from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field, field_validator

from pairplan.models.recurrence import as_utc


class HouseholdTask(BaseModel):
    """Household (rotation) task.

    `frequency` is kept as a free-form tag: rows written by older clients may
    carry values the engine does not know, which it treats as non-recurring.
    `weekdays` and `month_day` refine a bare frequency tag when the task has
    no `recurrence_rule`.
    """

    id: str = Field(..., description="Unique task identifier (UUID v4)")
    title: str = Field(..., description="Task title")
    description: Optional[str] = Field(None, description="Task description")
    frequency: str = Field("once", description="Recurrence tag: once, daily, weekly, monthly, ...")
    weekdays: Optional[List[int]] = Field(None, description="Weekday ordinals (0=Sunday..6=Saturday) for custom tasks")
    month_day: Optional[int] = Field(None, ge=1, le=31, description="Day of month for monthly tasks")
    assigned_to: Optional[str] = Field(None, description="Partner the task is assigned to")
    due_date: Optional[datetime] = Field(None, description="Current due date (UTC)")
    completed: bool = Field(False, description="Whether the task is completed")
    completed_at: Optional[datetime] = Field(None, description="When the task was last completed")
    next_due_date: Optional[datetime] = Field(
        None, description="Due date of the next cycle, set when a recurring task is completed"
    )
    recurrence_rule: Optional[str] = Field(None, description="iCalendar-subset rule string")
    priority: int = Field(0, ge=0, le=2, description="0 low, 1 medium, 2 high")
    position: int = Field(0, description="Manual sort position")
    created_at: Optional[datetime] = Field(None, description="Creation timestamp")

    @field_validator("due_date", "completed_at", "next_due_date", "created_at")
    @classmethod
    def _validate_utc(cls, v):
        return as_utc(v)

    @field_validator("weekdays")
    @classmethod
    def _validate_weekdays(cls, v):
        if v is None:
            return None
        for day in v:
            if not 0 <= day <= 6:
                raise ValueError(f"weekday ordinal out of range: {day}")
        return sorted(set(v))

"""Task completion history model for pairplan."""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field, field_validator

from pairplan.models.recurrence import as_utc


class TaskCompletionRecord(BaseModel):
    """One completion (or un-completion) of a household task.

    `completed_date` is when the toggle happened; `expected_date` is the due
    date the task had at that moment. Records with `is_completed=False` mark a
    cycle that was reopened, which is how missed cycles are found.
    """

    id: str = Field(..., description="Unique record identifier (UUID v4)")
    task_id: str = Field(..., description="Household task the record belongs to")
    completed_by: Optional[str] = Field(None, description="Partner who toggled the task")
    completed_date: datetime = Field(..., description="When the task was toggled (UTC)")
    expected_date: Optional[datetime] = Field(None, description="Due date at the time of the toggle")
    is_completed: bool = Field(True, description="False when the toggle reopened the task")
    created_at: Optional[datetime] = Field(None, description="Creation timestamp")

    @field_validator("completed_date", "expected_date", "created_at")
    @classmethod
    def _validate_utc(cls, v):
        return as_utc(v)

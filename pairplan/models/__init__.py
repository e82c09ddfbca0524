"""Data models for pairplan."""

from pairplan.models.recurrence import RecurrenceFrequency, RecurrenceSpec, WEEKDAY_CODES
from pairplan.models.event import Event
from pairplan.models.household_task import HouseholdTask
from pairplan.models.task_completion import TaskCompletionRecord

__all__ = [
    "RecurrenceFrequency",
    "RecurrenceSpec",
    "WEEKDAY_CODES",
    "Event",
    "HouseholdTask",
    "TaskCompletionRecord",
]

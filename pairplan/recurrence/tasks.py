"""Recurring household task roll-forward.

Completing a recurring task stores the due date of its next cycle in
`next_due_date`; un-completing it clears that date instead of computing a new
one, so toggling a task back and forth cannot pile up future cycles.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Optional

from pairplan.models.constants import DEFAULT_TIMEZONE, NON_RECURRING_FREQUENCIES
from pairplan.models.household_task import HouseholdTask
from pairplan.models.task_completion import TaskCompletionRecord
from pairplan.recurrence.calculator import calculate_next_date
from pairplan.recurrence.dates import coerce_datetime, resolve_now
from pairplan.recurrence.rrule import frequency_to_spec, parse_rule

logger = logging.getLogger(__name__)


def is_recurring_task(task: HouseholdTask) -> bool:
    return bool(task.frequency) and task.frequency.lower() not in NON_RECURRING_FREQUENCIES


def should_reactivate_task(task: HouseholdTask, *, now: Optional[datetime] = None) -> bool:
    """True if a completed recurring task is due for its next cycle.

    A task with a `next_due_date` still in the future waits; one without a
    (valid) `next_due_date` is reactivated right away.
    """
    if not task.completed or not is_recurring_task(task):
        return False

    next_due = coerce_datetime(task.next_due_date)
    if next_due is not None and next_due > resolve_now(now):
        return False
    return True


def calculate_next_due_date_for_task(
    task: HouseholdTask,
    *,
    now: Optional[datetime] = None,
    timezone: str = DEFAULT_TIMEZONE,
) -> Optional[datetime]:
    """Next due date for a recurring task, anchored at its due date (or now).

    The stored rule string is preferred; the bare frequency tag, refined by
    the task's `weekdays` and `month_day`, is the fallback.
    """
    if not is_recurring_task(task):
        return None

    now = resolve_now(now)
    base = coerce_datetime(task.due_date) or now

    spec = parse_rule(task.recurrence_rule, base, timezone=timezone) if task.recurrence_rule else None
    if spec is None:
        spec = frequency_to_spec(
            task.frequency, base, weekdays=task.weekdays, month_day=task.month_day, timezone=timezone
        )
    if spec is None:
        return None
    return calculate_next_date(base, spec, now=now)


def complete_task(
    task: HouseholdTask,
    completed: bool,
    *,
    now: Optional[datetime] = None,
    timezone: str = DEFAULT_TIMEZONE,
) -> HouseholdTask:
    """Return a copy of `task` marked completed or not completed."""
    now = resolve_now(now)
    if not completed:
        return task.model_copy(update={"completed": False, "completed_at": None, "next_due_date": None})

    update = {"completed": True, "completed_at": now}
    if is_recurring_task(task):
        next_due = calculate_next_due_date_for_task(task, now=now, timezone=timezone)
        if next_due is not None:
            update["next_due_date"] = next_due
            logger.debug(f"Task {task.id} ({task.frequency}) next due {next_due.isoformat()}")
    return task.model_copy(update=update)


def reactivate_task(
    task: HouseholdTask,
    *,
    now: Optional[datetime] = None,
    timezone: str = DEFAULT_TIMEZONE,
) -> HouseholdTask:
    """Reopen a completed recurring task for its next cycle.

    Tasks for which `should_reactivate_task` is False are returned unchanged.
    """
    now = resolve_now(now)
    if not should_reactivate_task(task, now=now):
        return task

    due = coerce_datetime(task.next_due_date) or calculate_next_due_date_for_task(task, now=now, timezone=timezone)
    return task.model_copy(
        update={
            "completed": False,
            "completed_at": None,
            "due_date": due if due is not None else task.due_date,
            "next_due_date": None,
        }
    )


def completion_record(
    task: HouseholdTask,
    completed: bool,
    *,
    now: Optional[datetime] = None,
    completed_by: Optional[str] = None,
) -> Optional[TaskCompletionRecord]:
    """History entry for toggling `task` to `completed`, taken before the toggle.

    Completing always yields a record. Un-completing yields one only when the
    task was completed, so reopening an open task leaves no trace.
    """
    if not completed and not task.completed:
        return None
    return TaskCompletionRecord(
        id=str(uuid.uuid4()),
        task_id=task.id,
        completed_by=completed_by or task.assigned_to,
        completed_date=resolve_now(now),
        expected_date=task.due_date,
        is_completed=completed,
    )

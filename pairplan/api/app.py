"""FastAPI web application for pairplan."""

import logging
import uuid
from datetime import datetime
from typing import Dict, List, Optional

from dateutil.relativedelta import relativedelta
from fastapi import Depends, FastAPI, HTTPException, Query
from pydantic import BaseModel, Field, ValidationError
from sqlalchemy.orm import Session

from pairplan.database.database import get_db
from pairplan.database.event_repository import EventRepository
from pairplan.database.household_task_repository import HouseholdTaskRepository
from pairplan.database.task_completion_repository import TaskCompletionRepository
from pairplan.models.constants import DEFAULT_TIMEZONE, DEFAULT_WINDOW_MONTHS
from pairplan.models.event import Event
from pairplan.models.household_task import HouseholdTask
from pairplan.models.recurrence import RecurrenceFrequency, RecurrenceSpec
from pairplan.models.task_completion import TaskCompletionRecord
from pairplan.recurrence.dates import coerce_datetime, is_overdue, resolve_timezone, utc_now
from pairplan.recurrence.expand import expand_recurring_events
from pairplan.recurrence.rrule import RecurrenceRuleError, build_rule, frequency_to_spec, parse_rule_strict
from pairplan.recurrence.tasks import complete_task, completion_record, reactivate_task, should_reactivate_task

logger = logging.getLogger(__name__)

app = FastAPI(
    title="pairplan API",
    description="Shared calendar and household task rotation for couples",
    version="0.1.0",
)


def get_now() -> datetime:
    """Current time for one request (override in tests to pin the clock)."""
    return utc_now()


# Request models
class EventCreateRequest(BaseModel):
    title: str
    description: Optional[str] = None
    date: datetime
    start_time: str
    end_time: str
    location: Optional[str] = None
    emoji: Optional[str] = None
    period: str
    recurrence: RecurrenceFrequency = RecurrenceFrequency.NEVER
    recurrence_end: Optional[datetime] = None
    recurrence_rule: Optional[str] = None
    timezone: Optional[str] = None


class EventUpdateRequest(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    date: Optional[datetime] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    location: Optional[str] = None
    emoji: Optional[str] = None
    period: Optional[str] = None
    recurrence: Optional[RecurrenceFrequency] = None
    recurrence_end: Optional[datetime] = None
    recurrence_rule: Optional[str] = None
    timezone: Optional[str] = None


class TaskCreateRequest(BaseModel):
    title: str
    description: Optional[str] = None
    frequency: str = "once"
    weekdays: Optional[List[int]] = None
    month_day: Optional[int] = Field(None, ge=1, le=31)
    assigned_to: Optional[str] = None
    due_date: Optional[datetime] = None
    recurrence_rule: Optional[str] = None
    priority: int = Field(0, ge=0, le=2)
    position: int = 0


class TaskCompleteRequest(BaseModel):
    completed: bool
    completed_by: Optional[str] = None


class RecurrenceRuleRequest(BaseModel):
    frequency: RecurrenceFrequency
    interval: Optional[int] = Field(None, ge=1)
    weekdays: Optional[List[int]] = None
    month_day: Optional[int] = Field(None, ge=1, le=31)
    end_date: Optional[datetime] = None


# Response models
class EventResponse(BaseModel):
    event: Event


class EventListResponse(BaseModel):
    events: List[Event]
    count: int


class TaskView(HouseholdTask):
    """Household task plus derived display state."""
    overdue: bool = False


class TaskResponse(BaseModel):
    task: TaskView


class TaskListResponse(BaseModel):
    tasks: List[TaskView]
    count: int


class TaskHistoryResponse(BaseModel):
    records: List[TaskCompletionRecord]
    count: int


class MissedTasksResponse(BaseModel):
    missed: Dict[str, List[datetime]]
    count: int


class RecurrenceRuleResponse(BaseModel):
    rule: str


# Fields a PUT may leave out but not set to null
_NON_NULLABLE_EVENT_FIELDS = ("title", "date", "start_time", "end_time", "period", "recurrence")


def _validate_timezone(tz: Optional[str]) -> Optional[str]:
    if tz is None:
        return None
    try:
        resolve_timezone(tz)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return tz


def _resolve_event_rule(
    recurrence: RecurrenceFrequency,
    rule: Optional[str],
    date: datetime,
    recurrence_end: Optional[datetime],
    tz: str,
) -> Optional[str]:
    """Rule string to persist for an event: validated if given, built from the tag if not."""
    if not RecurrenceFrequency(recurrence).is_recurring:
        return None
    if rule:
        try:
            parse_rule_strict(rule, date, timezone=tz)
        except RecurrenceRuleError as e:
            raise HTTPException(status_code=400, detail=f"Invalid recurrence rule: {str(e)}")
        return rule.strip()
    spec = frequency_to_spec(recurrence, date, recurrence_end, timezone=tz)
    return build_rule(spec) if spec else None


def _task_view(task: HouseholdTask, now: datetime) -> TaskView:
    overdue = not task.completed and is_overdue(task.due_date, now=now)
    return TaskView(**task.model_dump(), overdue=overdue)


def _history_period(start: Optional[datetime], end: Optional[datetime]):
    period_start, period_end = coerce_datetime(start), coerce_datetime(end)
    if period_start is None or period_end is None:
        raise HTTPException(status_code=400, detail="Period start and end must be given together")
    if period_end < period_start:
        raise HTTPException(status_code=400, detail="Period end must not be before period start")
    return period_start, period_end


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy", "version": "0.1.0"}


@app.post("/events", response_model=EventResponse, status_code=201)
def create_event(
    request: EventCreateRequest,
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    """Create an event. Recurring events without a rule get one built from their frequency."""
    tz = _validate_timezone(request.timezone)
    rule = _resolve_event_rule(
        request.recurrence, request.recurrence_rule, request.date, request.recurrence_end, tz or DEFAULT_TIMEZONE
    )
    event = Event(
        id=str(uuid.uuid4()),
        title=request.title,
        description=request.description,
        date=request.date,
        start_time=request.start_time,
        end_time=request.end_time,
        location=request.location,
        emoji=request.emoji,
        period=request.period,
        recurrence=request.recurrence,
        recurrence_end=request.recurrence_end,
        recurrence_rule=rule,
        timezone=tz,
        created_at=now,
        updated_at=now,
    )
    try:
        created = EventRepository(db).create(event)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to create event: {str(e)}")
    return EventResponse(event=created)


@app.get("/events", response_model=EventListResponse)
def list_events(
    start: Optional[datetime] = Query(None, description="Window start (default: now)"),
    end: Optional[datetime] = Query(None, description="Window end (default: start + 3 months)"),
    tz: str = Query(DEFAULT_TIMEZONE, description="IANA zone for events stored without one"),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    """List events with recurring ones expanded into occurrences for the window.

    Each event recurs in its own stored timezone; `tz` applies only to events
    created without one.
    """
    tz = _validate_timezone(tz)
    window_start = coerce_datetime(start) or now
    window_end = coerce_datetime(end) or (window_start + relativedelta(months=DEFAULT_WINDOW_MONTHS))
    if window_end < window_start:
        raise HTTPException(status_code=400, detail="Window end must not be before window start")

    events = EventRepository(db).get_all()
    expanded = expand_recurring_events(events, window_start, window_end, now=now, timezone=tz)
    return EventListResponse(events=expanded, count=len(expanded))


@app.get("/events/{event_id}", response_model=EventResponse)
def get_event(event_id: str, db: Session = Depends(get_db)):
    event = EventRepository(db).get(event_id)
    if event is None:
        raise HTTPException(status_code=404, detail="Event not found")
    return EventResponse(event=event)


@app.put("/events/{event_id}", response_model=EventResponse)
def update_event(
    event_id: str,
    request: EventUpdateRequest,
    db: Session = Depends(get_db),
):
    """Update an event. Changing the frequency or recurrence end without a new rule rebuilds the rule.

    Omitted fields keep their stored value. An explicit null clears optional
    fields and is rejected with 422 for required ones.
    """
    repo = EventRepository(db)
    event = repo.get(event_id)
    if event is None:
        raise HTTPException(status_code=404, detail="Event not found")

    changes = request.model_dump(exclude_unset=True)
    nulled = [name for name in _NON_NULLABLE_EVENT_FIELDS if name in changes and changes[name] is None]
    if nulled:
        raise HTTPException(status_code=422, detail=f"Fields cannot be null: {', '.join(nulled)}")
    if "timezone" in changes:
        _validate_timezone(changes["timezone"])

    merged = event.model_copy(update=changes)
    rule = merged.recurrence_rule
    if "recurrence_rule" not in changes and ({"recurrence", "recurrence_end"} & changes.keys()):
        rule = None
    merged = merged.model_copy(
        update={
            "recurrence_rule": _resolve_event_rule(
                merged.recurrence, rule, merged.date, merged.recurrence_end, merged.timezone or DEFAULT_TIMEZONE
            )
        }
    )
    # model_copy skips validation; run it once on the merged result
    try:
        merged = Event.model_validate(merged.model_dump())
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=f"Invalid event: {e.errors()[0]['msg']}")
    try:
        updated = repo.update(merged)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to update event: {str(e)}")
    return EventResponse(event=updated)


@app.delete("/events/{event_id}", status_code=204)
def delete_event(event_id: str, db: Session = Depends(get_db)):
    if not EventRepository(db).delete(event_id):
        raise HTTPException(status_code=404, detail="Event not found")


@app.post("/tasks", response_model=TaskResponse, status_code=201)
def create_task(
    request: TaskCreateRequest,
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    if request.recurrence_rule:
        try:
            parse_rule_strict(request.recurrence_rule, request.due_date or now)
        except RecurrenceRuleError as e:
            raise HTTPException(status_code=400, detail=f"Invalid recurrence rule: {str(e)}")
    try:
        task = HouseholdTask(
            id=str(uuid.uuid4()),
            created_at=now,
            **request.model_dump(),
        )
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=f"Invalid task: {e.errors()[0]['msg']}")
    try:
        created = HouseholdTaskRepository(db).create(task)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to create task: {str(e)}")
    return TaskResponse(task=_task_view(created, now))


@app.get("/tasks", response_model=TaskListResponse)
def list_tasks(db: Session = Depends(get_db), now: datetime = Depends(get_now)):
    tasks = [_task_view(t, now) for t in HouseholdTaskRepository(db).get_all()]
    return TaskListResponse(tasks=tasks, count=len(tasks))


@app.get("/tasks/missed", response_model=MissedTasksResponse)
def list_missed_tasks(
    start: datetime = Query(..., description="Period start"),
    end: datetime = Query(..., description="Period end"),
    db: Session = Depends(get_db),
):
    """Tasks reopened after completion within the period, with the dates they were reopened."""
    period_start, period_end = _history_period(start, end)
    missed = TaskCompletionRepository(db).get_missed_for_period(period_start, period_end)
    return MissedTasksResponse(missed=missed, count=len(missed))


@app.get("/tasks/{task_id}", response_model=TaskResponse)
def get_task(task_id: str, db: Session = Depends(get_db), now: datetime = Depends(get_now)):
    task = HouseholdTaskRepository(db).get(task_id)
    if task is None:
        raise HTTPException(status_code=404, detail="Task not found")
    return TaskResponse(task=_task_view(task, now))


@app.delete("/tasks/{task_id}", status_code=204)
def delete_task(task_id: str, db: Session = Depends(get_db)):
    if not HouseholdTaskRepository(db).delete(task_id):
        raise HTTPException(status_code=404, detail="Task not found")


@app.patch("/tasks/{task_id}/complete", response_model=TaskResponse)
def set_task_completion(
    task_id: str,
    request: TaskCompleteRequest,
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    """Mark a task completed (rolling a recurring task forward) or not completed.

    Each toggle is appended to the task's completion history.
    """
    repo = HouseholdTaskRepository(db)
    task = repo.get(task_id)
    if task is None:
        raise HTTPException(status_code=404, detail="Task not found")
    # Taken before the update: it needs the due date and state being left
    record = completion_record(task, request.completed, now=now, completed_by=request.completed_by)
    try:
        updated = repo.update(complete_task(task, request.completed, now=now))
        if record is not None:
            TaskCompletionRepository(db).add(record)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to update task completion status: {str(e)}")
    return TaskResponse(task=_task_view(updated, now))


@app.get("/tasks/{task_id}/history", response_model=TaskHistoryResponse)
def get_task_history(
    task_id: str,
    start: Optional[datetime] = Query(None, description="Period start (requires end)"),
    end: Optional[datetime] = Query(None, description="Period end (requires start)"),
    db: Session = Depends(get_db),
):
    """Completion history of a task, most recent first, optionally limited to a period."""
    if HouseholdTaskRepository(db).get(task_id) is None:
        raise HTTPException(status_code=404, detail="Task not found")
    repo = TaskCompletionRepository(db)
    if start is None and end is None:
        records = repo.get_for_task(task_id)
    else:
        period_start, period_end = _history_period(start, end)
        records = repo.get_for_period(task_id, period_start, period_end)
    return TaskHistoryResponse(records=records, count=len(records))


@app.post("/tasks/reactivate", response_model=TaskListResponse)
def reactivate_tasks(db: Session = Depends(get_db), now: datetime = Depends(get_now)):
    """Reopen every completed recurring task whose next cycle has come due."""
    repo = HouseholdTaskRepository(db)
    reactivated: List[TaskView] = []
    for task in repo.get_completed_recurring():
        if not should_reactivate_task(task, now=now):
            continue
        try:
            updated = repo.update(reactivate_task(task, now=now))
        except Exception as e:
            logger.error(f"Failed to reactivate task {task.id}: {type(e).__name__}: {str(e)}")
            continue
        reactivated.append(_task_view(updated, now))
    return TaskListResponse(tasks=reactivated, count=len(reactivated))


@app.post("/recurrence/rule", response_model=RecurrenceRuleResponse)
def build_recurrence_rule(request: RecurrenceRuleRequest, now: datetime = Depends(get_now)):
    """Serialize a recurrence description into the stored rule string."""
    try:
        spec = RecurrenceSpec(
            frequency=request.frequency,
            interval=request.interval,
            weekdays=tuple(request.weekdays) if request.weekdays is not None else None,
            month_day=request.month_day,
            end_date=request.end_date,
            start_date=now,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return RecurrenceRuleResponse(rule=build_rule(spec))

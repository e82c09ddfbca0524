"""SQLAlchemy database models for pairplan."""

from datetime import datetime, timezone
from typing import List, Optional, Union, TypeVar, Type
import uuid
from sqlalchemy import Column, String, Integer, Boolean, DateTime, ForeignKey

from pairplan.database.database import Base
from pairplan.models.recurrence import RecurrenceFrequency, as_utc

T = TypeVar('T')


def enum_to_value(enum_obj: Union[str, T]) -> str:
    """Convert enum to string value (handles both enum and string)."""
    if hasattr(enum_obj, 'value'):
        return enum_obj.value
    return str(enum_obj)


def value_to_enum(value: str, enum_class: Type[T], default: T) -> T:
    """Convert string to enum with fallback to default.

    Args:
        value: String value to convert
        enum_class: Enum class to convert to
        default: Default enum value if conversion fails

    Returns:
        Enum instance, or default if conversion fails
    """
    if not value:
        return default
    try:
        return enum_class(value.lower())
    except (ValueError, AttributeError):
        return default


def to_db_datetime(value: Optional[datetime]) -> Optional[datetime]:
    """Datetimes are stored as naive UTC."""
    if value is None:
        return None
    return as_utc(value).replace(tzinfo=None)


def utcnow_naive() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def weekdays_to_db(weekdays: Optional[List[int]]) -> Optional[str]:
    """Weekday ordinals are stored as a comma-separated string, e.g. '1,3,5'."""
    if not weekdays:
        return None
    return ",".join(str(int(d)) for d in weekdays)


def weekdays_from_db(value: Optional[str]) -> Optional[List[int]]:
    if not value:
        return None
    days = [int(part) for part in value.split(",") if part.strip().isdigit()]
    return days or None


class EventDB(Base):
    """Database model for Event (recurrence definition)."""

    __tablename__ = "events"

    # Primary key
    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))

    # Basic fields
    title = Column(String, nullable=False)
    description = Column(String, nullable=True)
    date = Column(DateTime, nullable=False, index=True)
    start_time = Column(String, nullable=False)
    end_time = Column(String, nullable=False)
    location = Column(String, nullable=True)
    emoji = Column(String, nullable=True)
    period = Column(String, nullable=False)

    # Recurrence (only the serialized rule is persisted)
    recurrence = Column(String, nullable=False, default=RecurrenceFrequency.NEVER.value)
    recurrence_end = Column(DateTime, nullable=True)
    recurrence_rule = Column(String, nullable=True)
    timezone = Column(String, nullable=True)

    # Timestamps
    created_at = Column(DateTime, nullable=False, default=utcnow_naive)
    updated_at = Column(DateTime, nullable=False, default=utcnow_naive, onupdate=utcnow_naive)

    def to_pydantic(self):
        """Convert database model to Pydantic model."""
        from pairplan.models.event import Event

        return Event(
            id=self.id,
            title=self.title,
            description=self.description,
            date=self.date,
            start_time=self.start_time,
            end_time=self.end_time,
            location=self.location,
            emoji=self.emoji,
            period=self.period,
            recurrence=value_to_enum(self.recurrence, RecurrenceFrequency, RecurrenceFrequency.NEVER),
            recurrence_end=self.recurrence_end,
            recurrence_rule=self.recurrence_rule,
            timezone=self.timezone,
            created_at=as_utc(self.created_at),
            updated_at=as_utc(self.updated_at),
        )

    @classmethod
    def from_pydantic(cls, event):
        """Create database model from Pydantic model."""
        return cls(
            id=event.id,
            title=event.title,
            description=event.description,
            date=to_db_datetime(event.date),
            start_time=event.start_time,
            end_time=event.end_time,
            location=event.location,
            emoji=event.emoji,
            period=event.period,
            recurrence=enum_to_value(event.recurrence),
            recurrence_end=to_db_datetime(event.recurrence_end),
            recurrence_rule=event.recurrence_rule,
            timezone=event.timezone,
            created_at=to_db_datetime(event.created_at) or utcnow_naive(),
            updated_at=to_db_datetime(event.updated_at) or utcnow_naive(),
        )


class HouseholdTaskDB(Base):
    """Database model for HouseholdTask."""

    __tablename__ = "household_tasks"

    # Primary key
    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))

    # Basic fields
    title = Column(String, nullable=False)
    description = Column(String, nullable=True)
    frequency = Column(String, nullable=False, default="once")
    weekdays = Column(String, nullable=True)
    month_day = Column(Integer, nullable=True)
    assigned_to = Column(String, nullable=True, index=True)
    priority = Column(Integer, nullable=False, default=0)
    position = Column(Integer, nullable=False, default=0)

    # Completion and recurrence
    due_date = Column(DateTime, nullable=True)
    completed = Column(Boolean, nullable=False, default=False)
    completed_at = Column(DateTime, nullable=True)
    next_due_date = Column(DateTime, nullable=True, index=True)
    recurrence_rule = Column(String, nullable=True)

    created_at = Column(DateTime, nullable=False, default=utcnow_naive)

    def to_pydantic(self):
        """Convert database model to Pydantic model."""
        from pairplan.models.household_task import HouseholdTask

        return HouseholdTask(
            id=self.id,
            title=self.title,
            description=self.description,
            frequency=self.frequency or "once",
            weekdays=weekdays_from_db(self.weekdays),
            month_day=self.month_day,
            assigned_to=self.assigned_to,
            due_date=self.due_date,
            completed=bool(self.completed),
            completed_at=self.completed_at,
            next_due_date=self.next_due_date,
            recurrence_rule=self.recurrence_rule,
            priority=self.priority or 0,
            position=self.position or 0,
            created_at=self.created_at,
        )

    @classmethod
    def from_pydantic(cls, task):
        """Create database model from Pydantic model."""
        return cls(
            id=task.id,
            title=task.title,
            description=task.description,
            frequency=task.frequency,
            weekdays=weekdays_to_db(task.weekdays),
            month_day=task.month_day,
            assigned_to=task.assigned_to,
            due_date=to_db_datetime(task.due_date),
            completed=task.completed,
            completed_at=to_db_datetime(task.completed_at),
            next_due_date=to_db_datetime(task.next_due_date),
            recurrence_rule=task.recurrence_rule,
            priority=task.priority,
            position=task.position,
            created_at=to_db_datetime(task.created_at) or utcnow_naive(),
        )


class TaskCompletionHistoryDB(Base):
    """Database model for TaskCompletionRecord."""

    __tablename__ = "task_completion_history"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    task_id = Column(String, ForeignKey("household_tasks.id", ondelete="CASCADE"), nullable=False, index=True)
    completed_by = Column(String, nullable=True)
    completed_date = Column(DateTime, nullable=False, index=True)
    expected_date = Column(DateTime, nullable=True)
    is_completed = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=utcnow_naive)

    def to_pydantic(self):
        """Convert database model to Pydantic model."""
        from pairplan.models.task_completion import TaskCompletionRecord

        return TaskCompletionRecord(
            id=self.id,
            task_id=self.task_id,
            completed_by=self.completed_by,
            completed_date=self.completed_date,
            expected_date=self.expected_date,
            is_completed=bool(self.is_completed),
            created_at=self.created_at,
        )

    @classmethod
    def from_pydantic(cls, record):
        """Create database model from Pydantic model."""
        return cls(
            id=record.id,
            task_id=record.task_id,
            completed_by=record.completed_by,
            completed_date=to_db_datetime(record.completed_date),
            expected_date=to_db_datetime(record.expected_date),
            is_completed=record.is_completed,
            created_at=to_db_datetime(record.created_at) or utcnow_naive(),
        )

"""Recurrence models for pairplan.

`RecurrenceSpec` is the transient, in-memory form of a recurrence. Only its
serialized rule string (see `pairplan.recurrence.rrule`) is persisted
alongside an event or household task.
"""

from __future__ import annotations

from datetime import datetime, timezone as dt_timezone
from enum import Enum
from typing import Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, ConfigDict, Field, field_validator

from pairplan.models.constants import DEFAULT_TIMEZONE, NON_RECURRING_FREQUENCIES


class RecurrenceFrequency(str, Enum):
    NEVER = "never"
    ONCE = "once"
    DAILY = "daily"
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"
    CUSTOM = "custom"

    @property
    def is_recurring(self) -> bool:
        return self.value not in NON_RECURRING_FREQUENCIES


# Weekday ordinals are Sunday-first: 0=Sunday .. 6=Saturday
WEEKDAY_CODES: Tuple[str, ...] = ("SU", "MO", "TU", "WE", "TH", "FR", "SA")


def sunday_first_weekday(value: datetime) -> int:
    """Weekday ordinal of `value` with Sunday=0 (Python's weekday() has Monday=0)."""
    return (value.weekday() + 1) % 7


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Normalize to aware UTC; naive values are taken to already be UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=dt_timezone.utc)
    return value.astimezone(dt_timezone.utc)


class RecurrenceSpec(BaseModel):
    """Immutable recurrence definition.

    Notes:
    - `interval` left as None means "not set"; arithmetic uses `effective_interval`.
    - `month_day` is carried and serialized but does not steer next-date arithmetic.
    - All datetimes are normalized to aware UTC; naive input is taken as UTC.
    """

    model_config = ConfigDict(frozen=True)

    frequency: RecurrenceFrequency
    interval: Optional[int] = Field(None, ge=1, description="Every N units (days/weeks/months/...)")
    weekdays: Optional[Tuple[int, ...]] = Field(
        None, description="Weekday ordinals (0=Sunday..6=Saturday) for weekly/custom patterns"
    )
    month_day: Optional[int] = Field(None, ge=1, le=31, description="Day of month for monthly patterns")
    end_date: Optional[datetime] = Field(None, description="No occurrence is produced after this instant")
    start_date: datetime = Field(..., description="Anchor for next-occurrence calculations")
    timezone: str = Field(DEFAULT_TIMEZONE, description="IANA zone used for wall-clock arithmetic")

    @field_validator("weekdays")
    @classmethod
    def _validate_weekdays(cls, v):
        if v is None:
            return None
        for day in v:
            if not 0 <= int(day) <= 6:
                raise ValueError(f"weekday ordinal out of range: {day}")
        # Deduplicate, Sunday-first order
        return tuple(sorted({int(day) for day in v}))

    @field_validator("start_date", "end_date")
    @classmethod
    def _validate_utc(cls, v):
        return as_utc(v)

    @field_validator("timezone")
    @classmethod
    def _validate_timezone(cls, v):
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"unknown timezone: {v}") from e
        return v

    @property
    def effective_interval(self) -> int:
        return self.interval or 1

    @property
    def is_recurring(self) -> bool:
        return self.frequency.is_recurring

    @property
    def zone(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

"""Calendar event data model for pairplan."""

from datetime import datetime
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
from pydantic import BaseModel, Field, field_validator

from pairplan.models.recurrence import RecurrenceFrequency, as_utc


class Event(BaseModel):
    """Calendar event.

    A stored event is a recurrence *definition*. Expansion produces copies of it
    (occurrences) with `date` replaced, `is_recurring=True` and `original_date`
    pointing back at the stored date. Occurrences are never persisted.
    """

    id: str = Field(..., description="Unique event identifier (UUID v4)")
    title: str = Field(..., description="Event title")
    description: Optional[str] = Field(None, description="Event description")
    date: datetime = Field(..., description="Event date (UTC)")
    start_time: str = Field(..., description="Wall-clock start, e.g. '09:00'")
    end_time: str = Field(..., description="Wall-clock end, e.g. '10:00'")
    location: Optional[str] = Field(None, description="Event location")
    emoji: Optional[str] = Field(None, description="Display emoji")
    period: str = Field(..., description="Day period (morning, afternoon, evening, ...)")
    recurrence: RecurrenceFrequency = Field(RecurrenceFrequency.NEVER, description="Recurrence frequency tag")
    recurrence_end: Optional[datetime] = Field(None, description="Last instant an occurrence may fall on")
    recurrence_rule: Optional[str] = Field(None, description="iCalendar-subset rule string")
    timezone: Optional[str] = Field(None, description="IANA zone the recurrence is defined in (None: viewer default)")
    created_at: Optional[datetime] = Field(None, description="Creation timestamp")
    updated_at: Optional[datetime] = Field(None, description="Last update timestamp")

    # Occurrence markers (set only on expanded copies)
    is_recurring: bool = Field(False, description="True for occurrences generated by expansion")
    original_date: Optional[datetime] = Field(None, description="Stored date of the owning definition")

    @field_validator("date", "recurrence_end", "original_date")
    @classmethod
    def _validate_utc(cls, v):
        return as_utc(v)

    @field_validator("timezone")
    @classmethod
    def _validate_timezone(cls, v):
        if v is None:
            return None
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"unknown timezone: {v}") from e
        return v

    class Config:
        """Pydantic configuration."""
        use_enum_values = True

"""Date coercion and arithmetic helpers for the recurrence engine.

Definitions arrive from storage and from HTTP clients with dates as
`datetime`, `date`, or strings (ISO-8601 or iCalendar basic format). Everything
is normalized to aware UTC here; anything unparseable becomes None.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Any, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dateutil.relativedelta import relativedelta

from pairplan.models.recurrence import as_utc

logger = logging.getLogger(__name__)

_ICAL_FORMATS = ("%Y%m%dT%H%M%SZ", "%Y%m%dT%H%M%S", "%Y%m%d")


def utc_now() -> datetime:
    """Default clock."""
    return datetime.now(timezone.utc)


def resolve_now(now: Optional[datetime] = None) -> datetime:
    """Pin "now" for one logical calculation: the injected value, or the clock."""
    return as_utc(now) if now is not None else utc_now()


def coerce_datetime(value: Any) -> Optional[datetime]:
    """Best-effort conversion to an aware UTC datetime.

    Accepts datetimes (naive = UTC), dates (midnight UTC), ISO-8601 strings
    (including a trailing 'Z') and iCalendar basic strings such as
    '20250131T000000Z'. Returns None for anything else.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return as_utc(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if not isinstance(value, str):
        return None

    raw = value.strip()
    if not raw:
        return None
    for fmt in _ICAL_FORMATS:
        try:
            return datetime.strptime(raw, fmt).replace(tzinfo=timezone.utc)
        except ValueError:
            continue
    try:
        # fromisoformat only accepts a trailing 'Z' from Python 3.11 on
        if raw.endswith(("Z", "z")):
            raw = raw[:-1] + "+00:00"
        return as_utc(datetime.fromisoformat(raw))
    except ValueError:
        logger.debug(f"Unparseable date value: {value!r}")
        return None


def validate_date(value: Any) -> Optional[datetime]:
    """Return the value as an aware UTC datetime, or None if it is not a valid date."""
    return coerce_datetime(value)


def is_overdue(value: Any, *, now: Optional[datetime] = None) -> bool:
    """True if `value` is a valid date strictly before now."""
    due = coerce_datetime(value)
    if due is None:
        return False
    return due < resolve_now(now)


def add_months(value: datetime, months: int) -> datetime:
    """Add calendar months, clamping to the last day of the target month."""
    return value + relativedelta(months=months)


def resolve_timezone(name: Optional[str]) -> ZoneInfo:
    """Look up an IANA zone; raise ValueError for unknown names."""
    try:
        return ZoneInfo(name or "UTC")
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValueError(f"Unknown timezone: {name}") from e

"""Next-occurrence calculation."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone as dt_timezone
from typing import Any, Optional

from dateutil.relativedelta import relativedelta

from pairplan.models.constants import MAX_WEEKDAY_SCAN_DAYS
from pairplan.models.recurrence import RecurrenceFrequency, RecurrenceSpec, sunday_first_weekday
from pairplan.recurrence.dates import coerce_datetime, resolve_now

logger = logging.getLogger(__name__)


def _next_custom(start: datetime, spec: RecurrenceSpec, max_scan: int) -> datetime:
    """Next local day whose weekday is in `spec.weekdays`, else +interval days."""
    if spec.weekdays:
        candidate = start + timedelta(days=1)
        for _ in range(max_scan):
            if sunday_first_weekday(candidate) in spec.weekdays:
                return candidate
            candidate = candidate + timedelta(days=1)
    return start + timedelta(days=spec.effective_interval)


def _advance(local_start: datetime, spec: RecurrenceSpec, max_scan: int) -> datetime:
    n = spec.effective_interval
    freq = spec.frequency
    if freq == RecurrenceFrequency.DAILY:
        return local_start + timedelta(days=n)
    if freq == RecurrenceFrequency.WEEKLY:
        return local_start + timedelta(weeks=n)
    if freq == RecurrenceFrequency.BIWEEKLY:
        return local_start + timedelta(weeks=2)
    if freq == RecurrenceFrequency.MONTHLY:
        return local_start + relativedelta(months=n)
    if freq == RecurrenceFrequency.QUARTERLY:
        return local_start + relativedelta(months=3 * n)
    if freq == RecurrenceFrequency.YEARLY:
        return local_start + relativedelta(years=n)
    if freq == RecurrenceFrequency.CUSTOM:
        return _next_custom(local_start, spec, max_scan)
    raise ValueError(f"Unsupported recurrence frequency: {freq}")


def calculate_next_date(
    base_date: Any,
    spec: RecurrenceSpec,
    *,
    now: Optional[datetime] = None,
    max_weekday_scan: Optional[int] = None,
) -> Optional[datetime]:
    """Compute the occurrence following `base_date`.

    Catch-up anchoring: when `base_date` is in the past (or missing/invalid)
    the calculation starts from `now` instead, so an overdue definition jumps
    straight to the next present-relative occurrence.

    Arithmetic is done on the wall clock of `spec.timezone` and converted back
    to UTC, so a 09:00 local occurrence stays at 09:00 across DST changes.
    Anchored steps take the time of day from `spec.start_date`: a local time
    that falls into a DST gap is shifted for that one occurrence only, and the
    following ones return to the original wall time.

    Returns None for non-recurring frequencies, when the result would fall
    after `spec.end_date`, or on any internal error.
    """
    if not spec.is_recurring:
        return None

    try:
        now = resolve_now(now)
        base = coerce_datetime(base_date)
        anchored = base is not None and base > now
        effective_start = base if anchored else now

        local_start = effective_start.astimezone(spec.zone)
        max_scan = MAX_WEEKDAY_SCAN_DAYS if max_weekday_scan is None else max_weekday_scan
        # Aware arithmetic keeps the wall clock; the UTC offset follows the new date
        stepped = _advance(local_start, spec, max_scan)
        if anchored:
            wall = spec.start_date.astimezone(spec.zone)
            stepped = stepped.replace(
                hour=wall.hour, minute=wall.minute, second=wall.second, microsecond=wall.microsecond, fold=0
            )
        next_date = stepped.astimezone(dt_timezone.utc)

        if spec.end_date is not None and next_date > spec.end_date:
            return None
        return next_date
    except Exception as e:
        logger.error(f"Failed to calculate next recurrence date: {type(e).__name__}: {str(e)}")
        return None

"""Expand recurring calendar events into concrete occurrences for a window."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Iterable, List, Optional

from pairplan.models.constants import DEFAULT_TIMEZONE, MAX_EXPANSION_ITERATIONS, NON_RECURRING_FREQUENCIES
from pairplan.models.event import Event
from pairplan.recurrence.calculator import calculate_next_date
from pairplan.recurrence.dates import coerce_datetime, resolve_now
from pairplan.recurrence.rrule import parse_rule

logger = logging.getLogger(__name__)


def _is_recurring_tag(value: Any) -> bool:
    tag = getattr(value, "value", value)
    return bool(tag) and str(tag).lower() not in NON_RECURRING_FREQUENCIES


def expand_recurring_event(
    event: Event,
    window_start: Any,
    window_end: Any,
    *,
    now: Optional[datetime] = None,
    timezone: str = DEFAULT_TIMEZONE,
    max_iterations: Optional[int] = None,
) -> List[Event]:
    """Expand one event over [window_start, window_end].

    The stored event is always the first element, even when its own date lies
    outside the window. Each further element is a copy of the event with
    `date` replaced, `is_recurring=True` and `original_date` set to the stored
    date. No occurrence lies after min(recurrence_end, window_end).

    Steps go through `calculate_next_date`, so occurrences between the event
    date and `now` are skipped (catch-up anchoring).

    The event's own `timezone` wins over the `timezone` argument, which only
    covers events stored without one.
    """
    result: List[Event] = [event]

    if not _is_recurring_tag(event.recurrence) or not event.recurrence_rule:
        return result

    try:
        event_date = coerce_datetime(event.date)
        end = coerce_datetime(window_end)
        if event_date is None or end is None:
            return result

        if event_date > end:
            return result

        recurrence_end = coerce_datetime(event.recurrence_end)
        final_end = recurrence_end if recurrence_end is not None and recurrence_end < end else end

        spec = parse_rule(event.recurrence_rule, event_date, timezone=event.timezone or timezone)
        if spec is None:
            return result

        now = resolve_now(now)
        limit = MAX_EXPANSION_ITERATIONS if max_iterations is None else max_iterations
        current = event_date
        iterations = 0
        while current < final_end and iterations < limit:
            next_date = calculate_next_date(current, spec, now=now)
            if next_date is None:
                break
            current = next_date
            iterations += 1
            if current > final_end:
                break
            result.append(
                event.model_copy(
                    update={
                        "date": current,
                        "is_recurring": True,
                        "original_date": event_date,
                    }
                )
            )

        if iterations >= limit:
            logger.debug(f"Expansion of event {event.id} stopped at {limit} occurrences")
        return result
    except Exception as e:
        logger.error(f"Failed to expand recurring event {event.id}: {type(e).__name__}: {str(e)}")
        return result


def expand_recurring_events(
    events: Iterable[Event],
    window_start: Any,
    window_end: Any,
    *,
    now: Optional[datetime] = None,
    timezone: str = DEFAULT_TIMEZONE,
    max_iterations: Optional[int] = None,
) -> List[Event]:
    """Expand every event over the window, reading the clock once for the whole list."""
    now = resolve_now(now)
    result: List[Event] = []
    for event in events:
        result.extend(
            expand_recurring_event(
                event,
                window_start,
                window_end,
                now=now,
                timezone=timezone,
                max_iterations=max_iterations,
            )
        )
    return result

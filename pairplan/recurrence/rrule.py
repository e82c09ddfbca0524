"""Parse and build iCalendar-subset RRULE strings.

The rule string is the only persisted form of a recurrence:

    FREQ=<DAILY|WEEKLY|MONTHLY|YEARLY>[;INTERVAL=n][;BYDAY=SU,MO,..][;BYMONTHDAY=n][;UNTIL=yyyyMMddTHHmmssZ]

`parse_rule` never raises: a malformed or unsupported rule means "not
recurring" to its callers. `parse_rule_strict` raises `RecurrenceRuleError`
and is used where bad input should be reported (request validation).
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone as dt_timezone
from typing import Any, Dict, Iterable, List, Optional

from pydantic import ValidationError

from pairplan.models.constants import DEFAULT_TIMEZONE
from pairplan.models.recurrence import WEEKDAY_CODES, RecurrenceFrequency, RecurrenceSpec
from pairplan.recurrence.dates import coerce_datetime, resolve_now

logger = logging.getLogger(__name__)


class RecurrenceRuleError(ValueError):
    """Malformed or unsupported recurrence rule."""

    def __init__(self, message: str, *, rule: Optional[str] = None):
        super().__init__(message)
        self.rule = rule


_RULE_FREQ_MAP: Dict[str, RecurrenceFrequency] = {
    "DAILY": RecurrenceFrequency.DAILY,
    "WEEKLY": RecurrenceFrequency.WEEKLY,
    "MONTHLY": RecurrenceFrequency.MONTHLY,
    "YEARLY": RecurrenceFrequency.YEARLY,
}

_FREQ_RULE_MAP: Dict[RecurrenceFrequency, str] = {
    RecurrenceFrequency.DAILY: "DAILY",
    RecurrenceFrequency.WEEKLY: "WEEKLY",
    RecurrenceFrequency.BIWEEKLY: "WEEKLY",
    RecurrenceFrequency.MONTHLY: "MONTHLY",
    RecurrenceFrequency.QUARTERLY: "MONTHLY",
    RecurrenceFrequency.YEARLY: "YEARLY",
    RecurrenceFrequency.CUSTOM: "DAILY",
}

# Frequencies whose interval is implied by the tag itself
_FORCED_INTERVALS: Dict[RecurrenceFrequency, int] = {
    RecurrenceFrequency.BIWEEKLY: 2,
    RecurrenceFrequency.QUARTERLY: 3,
}

_INTEGER_KEYS = ("INTERVAL", "BYMONTHDAY", "COUNT")

_CODE_TO_WEEKDAY: Dict[str, int] = {code: i for i, code in enumerate(WEEKDAY_CODES)}


def _split_rule(rule: str) -> Dict[str, Any]:
    body = rule.strip()
    if body.upper().startswith("RRULE:"):
        body = body[len("RRULE:"):]

    fields: Dict[str, Any] = {}
    for part in body.split(";"):
        key, sep, value = part.partition("=")
        key = key.strip().upper()
        value = value.strip()
        if not sep or not key or not value:
            continue
        if key in _INTEGER_KEYS:
            try:
                fields[key] = int(value)
            except ValueError as e:
                raise RecurrenceRuleError(f"{key} must be an integer, got {value!r}", rule=rule) from e
        else:
            fields[key] = value
    return fields


def _weekdays_from_byday(byday: str) -> Optional[tuple]:
    days = []
    for code in byday.split(","):
        code = code.strip().upper()
        # Unknown codes are dropped
        if code in _CODE_TO_WEEKDAY:
            days.append(_CODE_TO_WEEKDAY[code])
    return tuple(days) if days else None


def parse_rule_strict(
    rule: str,
    start_date: Any,
    *,
    timezone: str = DEFAULT_TIMEZONE,
) -> RecurrenceSpec:
    """Parse a rule string into a RecurrenceSpec anchored at `start_date`.

    Raises:
        RecurrenceRuleError: if the rule is empty, lacks a supported FREQ, or
            carries values RecurrenceSpec rejects.
    """
    if not rule or not rule.strip():
        raise RecurrenceRuleError("Recurrence rule is empty", rule=rule)

    fields = _split_rule(rule)

    freq_raw = fields.get("FREQ")
    if not freq_raw:
        raise RecurrenceRuleError("Recurrence rule has no FREQ", rule=rule)
    frequency = _RULE_FREQ_MAP.get(str(freq_raw).upper())
    if frequency is None:
        raise RecurrenceRuleError(f"Unsupported FREQ: {freq_raw}", rule=rule)

    interval = fields.get("INTERVAL")
    if interval is not None and interval < 1:
        interval = None

    weekdays = _weekdays_from_byday(fields["BYDAY"]) if "BYDAY" in fields else None
    end_date = coerce_datetime(fields["UNTIL"]) if "UNTIL" in fields else None

    anchor = coerce_datetime(start_date) or resolve_now()

    try:
        return RecurrenceSpec(
            frequency=frequency,
            interval=interval,
            weekdays=weekdays,
            month_day=fields.get("BYMONTHDAY"),
            end_date=end_date,
            start_date=anchor,
            timezone=timezone or DEFAULT_TIMEZONE,
        )
    except ValidationError as e:
        raise RecurrenceRuleError(f"Invalid recurrence rule: {e.errors()[0]['msg']}", rule=rule) from e


def parse_rule(
    rule: Optional[str],
    start_date: Any,
    *,
    timezone: str = DEFAULT_TIMEZONE,
) -> Optional[RecurrenceSpec]:
    """Parse a rule string; return None if it is missing, malformed or unsupported."""
    if not rule:
        return None
    try:
        return parse_rule_strict(rule, start_date, timezone=timezone)
    except RecurrenceRuleError as e:
        logger.debug(f"Ignoring recurrence rule {rule!r}: {str(e)}")
        return None
    except Exception as e:
        logger.error(f"Failed to parse recurrence rule {rule!r}: {type(e).__name__}: {str(e)}")
        return None


def build_rule(spec: RecurrenceSpec) -> str:
    """Serialize a RecurrenceSpec to a rule string (no 'RRULE:' prefix).

    `never`/`once` produce an empty string. `biweekly` and `quarterly` are
    written as WEEKLY/MONTHLY with their implied interval, so they reparse as
    `weekly` with interval 2 and `monthly` with interval 3.
    """
    if not spec.is_recurring:
        return ""

    parts: List[str] = [f"FREQ={_FREQ_RULE_MAP[spec.frequency]}"]

    forced = _FORCED_INTERVALS.get(spec.frequency)
    if forced is not None:
        parts.append(f"INTERVAL={forced}")
    elif spec.interval:
        parts.append(f"INTERVAL={int(spec.interval)}")

    if spec.weekdays:
        parts.append("BYDAY=" + ",".join(WEEKDAY_CODES[d] for d in spec.weekdays))

    if spec.month_day:
        parts.append(f"BYMONTHDAY={int(spec.month_day)}")

    if spec.end_date:
        until: datetime = spec.end_date.astimezone(dt_timezone.utc)
        parts.append(f"UNTIL={until.strftime('%Y%m%dT%H%M%SZ')}")

    return ";".join(parts)


def frequency_to_spec(
    frequency: Optional[str],
    start_date: Any,
    end_date: Any = None,
    *,
    weekdays: Optional[Iterable[int]] = None,
    month_day: Optional[int] = None,
    timezone: str = DEFAULT_TIMEZONE,
) -> Optional[RecurrenceSpec]:
    """Build a spec from a bare frequency tag ('daily', 'weekly', ...).

    `weekdays` and `month_day` refine the tag the way a task's own fields do.
    Returns None for an empty or unknown tag, or for refinements `RecurrenceSpec` rejects.
    """
    if not frequency:
        return None
    tag = getattr(frequency, "value", frequency)
    try:
        freq = RecurrenceFrequency(str(tag).strip().lower())
    except ValueError:
        logger.warning(f"Unknown recurrence frequency tag: {frequency!r}")
        return None
    anchor = coerce_datetime(start_date) or resolve_now()
    try:
        return RecurrenceSpec(
            frequency=freq,
            start_date=anchor,
            end_date=coerce_datetime(end_date),
            weekdays=tuple(weekdays) if weekdays else None,
            month_day=month_day,
            timezone=timezone or DEFAULT_TIMEZONE,
        )
    except ValidationError as e:
        logger.warning(f"Could not build recurrence for {frequency!r}: {e.errors()[0]['msg']}")
        return None

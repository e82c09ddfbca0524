"""Recurrence engine for pairplan."""

from pairplan.recurrence.rrule import (
    RecurrenceRuleError,
    build_rule,
    frequency_to_spec,
    parse_rule,
    parse_rule_strict,
)
from pairplan.recurrence.calculator import calculate_next_date
from pairplan.recurrence.expand import expand_recurring_event, expand_recurring_events
from pairplan.recurrence.tasks import (
    calculate_next_due_date_for_task,
    complete_task,
    completion_record,
    reactivate_task,
    should_reactivate_task,
)

__all__ = [
    "RecurrenceRuleError",
    "build_rule",
    "frequency_to_spec",
    "parse_rule",
    "parse_rule_strict",
    "calculate_next_date",
    "expand_recurring_event",
    "expand_recurring_events",
    "calculate_next_due_date_for_task",
    "complete_task",
    "completion_record",
    "reactivate_task",
    "should_reactivate_task",
]

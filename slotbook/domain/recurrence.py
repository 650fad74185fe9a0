"""
Occurrence date expansion for recurring bookings.
"""

from datetime import date
from typing import Iterator, List

import pendulum

from .exceptions import InvalidRuleError
from .models import RecurrencePattern, RecurrenceRule

DEFAULT_MAX_OCCURRENCES = 104


def _nth_occurrence(start: pendulum.Date, pattern: RecurrencePattern, index: int) -> pendulum.Date:
    if pattern is RecurrencePattern.WEEKLY:
        return start.add(weeks=index)
    if pattern is RecurrencePattern.BIWEEKLY:
        return start.add(weeks=2 * index)
    # Counted from the start date so a 31st start does not drift after a short month.
    return start.add(months=index)


def iter_occurrences(rule: RecurrenceRule) -> Iterator[pendulum.Date]:
    """Yield occurrence dates from ``rule.start_date`` while on or before ``rule.end_date``."""
    start = pendulum.date(rule.start_date.year, rule.start_date.month, rule.start_date.day)
    index = 0
    while True:
        occurrence = _nth_occurrence(start, rule.pattern, index)
        if occurrence > rule.end_date:
            return
        yield occurrence
        index += 1


def occurrence_dates(
    rule: RecurrenceRule,
    max_occurrences: int = DEFAULT_MAX_OCCURRENCES,
) -> List[date]:
    """
    Expand a recurrence rule into its ordered occurrence dates.

    Raises:
        InvalidRuleError: If the series would exceed ``max_occurrences``
    """
    dates: List[date] = []
    for occurrence in iter_occurrences(rule):
        if len(dates) == max_occurrences:
            raise InvalidRuleError(
                f"Recurrence from {rule.start_date} to {rule.end_date} exceeds "
                f"the limit of {max_occurrences} occurrences"
            )
        dates.append(occurrence)
    return dates

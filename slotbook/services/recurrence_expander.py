"""
Recurring bookings: expand a rule into occurrences and schedule each one.
"""

from __future__ import annotations

import logging
import uuid
from datetime import date
from typing import List

from ..domain.exceptions import InvalidRuleError
from ..domain.models import BookingRequest, RecurrenceRule, RecurringBookingResult
from ..domain.recurrence import DEFAULT_MAX_OCCURRENCES, occurrence_dates
from .booking_scheduler import BookingScheduler

logger = logging.getLogger(__name__)


class RecurrenceExpander:
    """
    Drives the scheduler once per occurrence of a recurrence rule.

    Partial success is the expected outcome: a conflicting occurrence is
    recorded as rejected and the remaining occurrences are still attempted.
    Occurrences run sequentially so the outcome order matches date order.
    Rejected occurrences are not retried or moved to another slot.
    """

    def __init__(
        self,
        scheduler: BookingScheduler,
        max_occurrences: int = DEFAULT_MAX_OCCURRENCES,
    ) -> None:
        self._scheduler = scheduler
        self.max_occurrences = max_occurrences

    def expand(self, rule: RecurrenceRule) -> List[date]:
        """
        Return the ordered occurrence dates for ``rule``.

        Raises:
            InvalidRuleError: If the rule has no duration or the series is too long
        """
        if rule.duration_minutes is None:
            raise InvalidRuleError("Recurrence rule needs a duration")
        return occurrence_dates(rule, max_occurrences=self.max_occurrences)

    async def schedule_series(self, rule: RecurrenceRule) -> RecurringBookingResult:
        """
        Expand the rule and schedule every occurrence.

        The rule is validated before anything is scheduled, so an invalid rule
        never leaves a partial series behind.
        """
        dates = self.expand(rule)
        result = RecurringBookingResult(group_id=uuid.uuid4().hex)

        for occurrence in dates:
            request = BookingRequest(
                service_id=rule.service_id,
                date=occurrence,
                start_time=rule.start_time,
                duration_minutes=rule.duration_minutes,
                staff_id=rule.staff_id,
                customer_id=rule.customer_id,
                price=rule.price,
                notes=rule.notes,
                recurrence_group_id=result.group_id,
            )
            result.outcomes.append(await self._scheduler.schedule(request))

        logger.info(
            "Recurring %s series %s: %d created, %d skipped",
            rule.pattern.value,
            result.group_id,
            len(result.created),
            len(result.skipped),
        )
        return result

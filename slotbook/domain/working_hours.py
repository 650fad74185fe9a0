"""
Resolution of a staff member's effective working interval for one day.
"""

from datetime import date
from typing import Optional, Sequence

from .models import StaffWorkingHours, TimeRange, WorkingHoursOverride, at_time


class WorkingHoursResolver:
    """
    Resolves the working interval for a day from, in order of precedence:

    1. a per-day override for that date
    2. the staff member's weekly template
    3. the business-wide default template (only when the staff member has
       no template configured at all)

    Returns None when the staff member does not work that day. That is a
    valid outcome, not an error.
    """

    def __init__(
        self,
        default_hours: Optional[Sequence[StaffWorkingHours]],
        timezone: str = "UTC",
    ):
        self.default_hours = list(default_hours) if default_hours else []
        self.timezone = timezone

    def resolve(
        self,
        day: date,
        weekly_hours: Optional[Sequence[StaffWorkingHours]] = None,
        override: Optional[WorkingHoursOverride] = None,
    ) -> TimeRange | None:
        """
        Get the working interval for a specific day.

        Args:
            day: Calendar day to resolve
            weekly_hours: The staff member's weekly template, None or empty
                when nothing is configured
            override: Optional per-day exception for ``day``

        Returns:
            The [start, end) working interval, or None when not working
        """
        if override is not None:
            entry = override
        else:
            template = weekly_hours or self.default_hours
            entry = self._entry_for_weekday(template, day.weekday())

        if entry is None or not entry.is_working:
            return None

        return TimeRange(
            start=at_time(day, entry.start_time, self.timezone),
            end=at_time(day, entry.end_time, self.timezone),
        )

    @staticmethod
    def _entry_for_weekday(
        template: Sequence[StaffWorkingHours],
        weekday: int,
    ) -> StaffWorkingHours | None:
        for entry in template:
            if entry.weekday == weekday:
                return entry
        return None

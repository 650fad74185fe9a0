"""
Tests for working hours resolution.
"""

from datetime import time

import pendulum

from slotbook.domain.models import StaffWorkingHours, WorkingHoursOverride
from slotbook.domain.working_hours import WorkingHoursResolver

from conftest import MONDAY, SATURDAY, weekday_hours


class TestWorkingHoursResolver:
    """Tests for WorkingHoursResolver."""

    def test_weekly_template(self):
        """A working weekday resolves to its template interval."""
        resolver = WorkingHoursResolver(default_hours=None, timezone="Europe/Berlin")

        interval = resolver.resolve(MONDAY, weekly_hours=weekday_hours(1))

        assert interval is not None
        assert interval.start == pendulum.datetime(2024, 1, 1, 9, 0, tz="Europe/Berlin")
        assert interval.end == pendulum.datetime(2024, 1, 1, 17, 0, tz="Europe/Berlin")

    def test_non_working_day(self):
        resolver = WorkingHoursResolver(default_hours=weekday_hours(None))

        assert resolver.resolve(SATURDAY, weekly_hours=weekday_hours(1)) is None

    def test_missing_weekday_entry_means_not_working(self):
        """A configured template without an entry for the weekday does not fall back."""
        resolver = WorkingHoursResolver(default_hours=weekday_hours(None))
        only_tuesday = [
            StaffWorkingHours(weekday=1, is_working=True, start_time=time(9), end_time=time(12), staff_id=1)
        ]

        assert resolver.resolve(MONDAY, weekly_hours=only_tuesday) is None

    def test_unconfigured_staff_uses_default(self):
        """Staff without any schedule fall back to business hours."""
        resolver = WorkingHoursResolver(
            default_hours=weekday_hours(None, start=time(8), end=time(18))
        )

        interval = resolver.resolve(MONDAY, weekly_hours=None)

        assert interval is not None
        assert interval.start.hour == 8
        assert interval.end.hour == 18

    def test_empty_template_uses_default(self):
        resolver = WorkingHoursResolver(default_hours=weekday_hours(None))

        assert resolver.resolve(MONDAY, weekly_hours=[]) is not None

    def test_no_schedule_and_no_default(self):
        """No record and no default is a valid not-working outcome."""
        resolver = WorkingHoursResolver(default_hours=None)

        assert resolver.resolve(MONDAY) is None

    def test_override_closes_working_day(self):
        resolver = WorkingHoursResolver(default_hours=None)
        override = WorkingHoursOverride(staff_id=1, date=MONDAY, is_working=False)

        assert resolver.resolve(MONDAY, weekly_hours=weekday_hours(1), override=override) is None

    def test_override_opens_day_off(self):
        resolver = WorkingHoursResolver(default_hours=None)
        override = WorkingHoursOverride(
            staff_id=1,
            date=SATURDAY,
            is_working=True,
            start_time=time(10),
            end_time=time(14),
        )

        interval = resolver.resolve(SATURDAY, weekly_hours=weekday_hours(1), override=override)

        assert interval is not None
        assert interval.duration_minutes() == 240

"""
Tests for domain models.
"""

from datetime import time

import pendulum
import pytest

from slotbook.domain.exceptions import InvalidRuleError
from slotbook.domain.models import (
    Booking,
    BookingStatus,
    RecurrencePattern,
    RecurrenceRule,
    RecurringBookingResult,
    RejectionReason,
    ScheduleOutcome,
    StaffWorkingHours,
    TimeRange,
    WorkingHoursOverride,
    parse_date,
    parse_time,
)

from conftest import make_booking


class TestTimeRange:
    """Tests for TimeRange model."""

    def test_create_valid_time_range(self):
        """Test creating a valid time range."""
        start = pendulum.parse("2024-11-25 09:00", tz="Europe/Berlin")
        end = pendulum.parse("2024-11-25 17:00", tz="Europe/Berlin")

        tr = TimeRange(start=start, end=end)

        assert tr.start == start
        assert tr.end == end
        assert tr.duration_minutes() == 480  # 8 hours

    def test_invalid_time_range_raises_error(self):
        """Test that creating an invalid time range raises ValueError."""
        start = pendulum.parse("2024-11-25 17:00", tz="Europe/Berlin")
        end = pendulum.parse("2024-11-25 09:00", tz="Europe/Berlin")

        with pytest.raises(ValueError, match="Start time .* must be before end time"):
            TimeRange(start=start, end=end)

    def test_overlaps(self):
        """Touching endpoints do not overlap."""
        tr1 = TimeRange(
            start=pendulum.parse("2024-11-25 09:00", tz="Europe/Berlin"),
            end=pendulum.parse("2024-11-25 12:00", tz="Europe/Berlin")
        )
        tr2 = TimeRange(
            start=pendulum.parse("2024-11-25 11:00", tz="Europe/Berlin"),
            end=pendulum.parse("2024-11-25 14:00", tz="Europe/Berlin")
        )
        tr3 = TimeRange(
            start=pendulum.parse("2024-11-25 14:00", tz="Europe/Berlin"),
            end=pendulum.parse("2024-11-25 17:00", tz="Europe/Berlin")
        )

        assert tr1.overlaps(tr2)
        assert tr2.overlaps(tr1)
        assert not tr1.overlaps(tr3)
        assert not tr2.overlaps(tr3)

    def test_contains(self):
        """A range contains ranges that end exactly at its end."""
        day = TimeRange(
            start=pendulum.parse("2024-11-25 09:00"),
            end=pendulum.parse("2024-11-25 17:00"),
        )
        last = TimeRange(
            start=pendulum.parse("2024-11-25 16:30"),
            end=pendulum.parse("2024-11-25 17:00"),
        )
        overrun = TimeRange(
            start=pendulum.parse("2024-11-25 16:45"),
            end=pendulum.parse("2024-11-25 17:15"),
        )

        assert day.contains(last)
        assert not day.contains(overrun)


class TestWorkingHoursEntries:
    """Tests for StaffWorkingHours and WorkingHoursOverride validation."""

    def test_non_working_entry_ignores_times(self):
        entry = StaffWorkingHours(weekday=6, is_working=False)

        assert entry.start_time is None

    def test_working_entry_requires_ordered_times(self):
        with pytest.raises(ValueError, match="must be before"):
            StaffWorkingHours(weekday=0, is_working=True, start_time=time(17), end_time=time(9))

    def test_weekday_out_of_range(self):
        with pytest.raises(ValueError, match="weekday"):
            StaffWorkingHours(weekday=7, is_working=False)

    def test_override_requires_times_when_working(self):
        with pytest.raises(ValueError, match="start_time and end_time"):
            WorkingHoursOverride(staff_id=1, date=pendulum.date(2024, 1, 1), is_working=True)


class TestBooking:
    """Tests for Booking model."""

    def test_time_range_uses_duration(self):
        booking = make_booking(1, start="10:00", duration=45)

        tr = booking.time_range("UTC")

        assert tr.start.format("HH:mm") == "10:00"
        assert tr.end.format("HH:mm") == "10:45"

    def test_cancelled_is_not_active(self):
        assert make_booking(1).is_active
        assert not make_booking(1, status=BookingStatus.CANCELLED).is_active
        assert make_booking(1, status=BookingStatus.COMPLETED).is_active

    def test_non_positive_duration_rejected(self):
        with pytest.raises(ValueError, match="duration_minutes"):
            Booking(
                id=1,
                service_id=1,
                date=pendulum.date(2024, 1, 1),
                start_time=time(10),
                duration_minutes=0,
            )


class TestRecurrenceRule:
    """Tests for RecurrenceRule validation."""

    def _rule(self, **overrides) -> RecurrenceRule:
        values = dict(
            pattern="weekly",
            start_date=pendulum.date(2024, 1, 1),
            end_date=pendulum.date(2024, 1, 22),
            start_time=time(10),
            service_id=1,
            staff_id=1,
            duration_minutes=30,
        )
        values.update(overrides)
        return RecurrenceRule(**values)

    def test_pattern_coerced_from_string(self):
        assert self._rule().pattern is RecurrencePattern.WEEKLY

    def test_end_before_start_is_invalid(self):
        with pytest.raises(InvalidRuleError, match="precedes"):
            self._rule(end_date=pendulum.date(2023, 12, 31))

    def test_non_positive_duration_is_invalid(self):
        with pytest.raises(InvalidRuleError, match="Duration"):
            self._rule(duration_minutes=0)

    def test_unknown_pattern_is_invalid(self):
        with pytest.raises(InvalidRuleError, match="pattern"):
            self._rule(pattern="daily")


class TestRecurringBookingResult:
    """Created and skipped views keep occurrence order."""

    def test_created_and_skipped(self):
        first = make_booking(1, day=pendulum.date(2024, 1, 1))
        third = make_booking(3, day=pendulum.date(2024, 1, 15))
        result = RecurringBookingResult(
            group_id="g",
            outcomes=[
                ScheduleOutcome.accept(first),
                ScheduleOutcome.reject(pendulum.date(2024, 1, 8), RejectionReason.SLOT_CONFLICT),
                ScheduleOutcome.accept(third),
            ],
        )

        assert [b.id for b in result.created] == [1, 3]
        assert len(result.skipped) == 1
        assert result.skipped[0].date == pendulum.date(2024, 1, 8)
        assert result.skipped[0].reason is RejectionReason.SLOT_CONFLICT


class TestParsing:
    def test_parse_date(self):
        assert parse_date("2024-01-08") == pendulum.date(2024, 1, 8)

    def test_parse_time(self):
        assert parse_time("09:30") == time(9, 30)

    def test_parse_time_invalid(self):
        with pytest.raises(ValueError, match="HH:MM"):
            parse_time("9.30")

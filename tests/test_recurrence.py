"""
Tests for occurrence date expansion.
"""

from datetime import time

import pendulum
import pytest

from slotbook.domain.exceptions import InvalidRuleError
from slotbook.domain.models import RecurrenceRule
from slotbook.domain.recurrence import occurrence_dates


def _rule(pattern: str, start: str, end: str) -> RecurrenceRule:
    return RecurrenceRule(
        pattern=pattern,
        start_date=pendulum.parse(start, exact=True),
        end_date=pendulum.parse(end, exact=True),
        start_time=time(10),
        service_id=1,
        staff_id=1,
        duration_minutes=30,
    )


def _iso(dates) -> list:
    return [d.isoformat() for d in dates]


class TestOccurrenceDates:
    """Tests for occurrence_dates."""

    def test_weekly(self):
        dates = occurrence_dates(_rule("weekly", "2024-01-01", "2024-01-22"))

        assert _iso(dates) == ["2024-01-01", "2024-01-08", "2024-01-15", "2024-01-22"]

    def test_biweekly(self):
        dates = occurrence_dates(_rule("biweekly", "2024-01-01", "2024-02-01"))

        assert _iso(dates) == ["2024-01-01", "2024-01-15", "2024-01-29"]

    def test_monthly_clamps_to_month_end(self):
        """A 31st start clamps in short months and returns to the 31st afterwards."""
        dates = occurrence_dates(_rule("monthly", "2024-01-31", "2024-05-31"))

        assert _iso(dates) == [
            "2024-01-31",
            "2024-02-29",
            "2024-03-31",
            "2024-04-30",
            "2024-05-31",
        ]

    def test_single_occurrence_when_start_equals_end(self):
        assert _iso(occurrence_dates(_rule("weekly", "2024-01-01", "2024-01-01"))) == ["2024-01-01"]

    def test_end_date_is_inclusive_bound(self):
        dates = occurrence_dates(_rule("weekly", "2024-01-01", "2024-01-21"))

        assert _iso(dates)[-1] == "2024-01-15"

    def test_series_exceeding_limit_is_invalid(self):
        with pytest.raises(InvalidRuleError, match="limit of 3"):
            occurrence_dates(_rule("weekly", "2024-01-01", "2024-12-31"), max_occurrences=3)

    def test_series_at_limit_is_valid(self):
        dates = occurrence_dates(_rule("weekly", "2024-01-01", "2024-01-15"), max_occurrences=3)

        assert len(dates) == 3

"""
Tests for slot generation.
"""

import pendulum
import pytest

from slotbook.domain.models import TimeRange
from slotbook.domain.slot_generator import SlotGenerator


def _interval(start: str = "09:00", end: str = "17:00") -> TimeRange:
    return TimeRange(
        start=pendulum.parse(f"2024-11-25 {start}", tz="Europe/Berlin"),
        end=pendulum.parse(f"2024-11-25 {end}", tz="Europe/Berlin"),
    )


def _labels(slots) -> list:
    return [
        f"{slot.time_range.start.format('HH:mm')}-{slot.time_range.end.format('HH:mm')}"
        for slot in slots
    ]


class TestSlotGenerator:
    """Tests for SlotGenerator."""

    def test_full_day_half_hour_slots(self):
        """09:00-17:00 with 30 minute service and step gives 16 slots."""
        slots = list(SlotGenerator(step_minutes=30).generate(_interval(), 30))

        labels = _labels(slots)
        assert len(slots) == 16
        assert labels[0] == "09:00-09:30"
        assert labels[-1] == "16:30-17:00"
        assert "16:45-17:15" not in labels

    def test_slot_ending_at_close_is_kept(self):
        slots = list(SlotGenerator(step_minutes=15).generate(_interval(end="10:00"), 30))

        assert _labels(slots) == ["09:00-09:30", "09:15-09:45", "09:30-10:00"]

    def test_overrunning_slot_is_excluded(self):
        slots = list(SlotGenerator(step_minutes=30).generate(_interval(end="10:15"), 60))

        assert _labels(slots) == ["09:00-10:00"]

    def test_step_independent_of_duration(self):
        """Candidates may overlap each other when the step is shorter than the duration."""
        slots = list(SlotGenerator(step_minutes=30).generate(_interval(end="11:00"), 90))

        assert _labels(slots) == ["09:00-10:30", "09:30-11:00"]
        assert slots[0].time_range.overlaps(slots[1].time_range)

    def test_duration_longer_than_interval(self):
        assert list(SlotGenerator().generate(_interval(end="09:30"), 60)) == []

    def test_generation_is_deterministic_and_restartable(self):
        """Iterating twice, or generating twice, yields identical slots."""
        generator = SlotGenerator(step_minutes=30)
        sequence = generator.generate(_interval(), 45)

        first = list(sequence)
        second = list(sequence)
        third = list(generator.generate(_interval(), 45))

        assert first == second == third
        assert all(slot.is_available for slot in first)

    def test_invalid_step(self):
        with pytest.raises(ValueError, match="step_minutes"):
            SlotGenerator(step_minutes=0)

    def test_invalid_duration(self):
        with pytest.raises(ValueError, match="duration_minutes"):
            SlotGenerator().generate(_interval(), 0)

"""
Discrete slot generation within a working interval.

Pure domain logic: no store access, no clock reads.
"""

from dataclasses import dataclass
from typing import Iterator

from .models import TimeRange, TimeSlot

DEFAULT_STEP_MINUTES = 30


@dataclass(frozen=True)
class SlotSequence:
    """
    Lazy, finite and restartable sequence of candidate slots.

    Every iteration starts again from the interval start, so iterating
    twice yields identical slots.
    """
    interval: TimeRange
    duration_minutes: int
    step_minutes: int

    def __iter__(self) -> Iterator[TimeSlot]:
        index = 0
        while True:
            start = self.interval.start.add(minutes=index * self.step_minutes)
            end = start.add(minutes=self.duration_minutes)

            # No slot may run past closing time; ending exactly at close is fine.
            if end > self.interval.end:
                return

            yield TimeSlot(time_range=TimeRange(start=start, end=end))
            index += 1


class SlotGenerator:
    """
    Turns a working interval and a service duration into candidate slots.

    Slot i starts at ``interval.start + i * step_minutes`` and lasts the
    service duration. The step sets slot density independently of the
    duration, so candidates may overlap each other.
    """

    def __init__(self, step_minutes: int = DEFAULT_STEP_MINUTES):
        if step_minutes <= 0:
            raise ValueError(f"step_minutes must be positive, got {step_minutes}")
        self.step_minutes = step_minutes

    def generate(self, interval: TimeRange, duration_minutes: int) -> SlotSequence:
        """
        Generate candidate slots for one working interval.

        Args:
            interval: The [start, end) working interval
            duration_minutes: Length of every slot

        Returns:
            A SlotSequence that can be iterated any number of times
        """
        if duration_minutes <= 0:
            raise ValueError(f"duration_minutes must be positive, got {duration_minutes}")

        return SlotSequence(
            interval=interval,
            duration_minutes=duration_minutes,
            step_minutes=self.step_minutes,
        )

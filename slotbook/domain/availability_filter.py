"""
Conflict detection between candidate slots and existing bookings.
"""

from typing import Iterable, List, Sequence

from .models import Booking, TimeRange, TimeSlot


def find_conflicts(
    candidate: TimeRange,
    bookings: Iterable[Booking],
    timezone: str,
) -> List[Booking]:
    """
    Return the active bookings whose interval intersects ``candidate``.

    Cancelled bookings never conflict. Intervals are half-open, so a booking
    ending at 10:00 does not conflict with a candidate starting at 10:00.
    """
    return [
        booking for booking in bookings
        if booking.is_active and candidate.overlaps(booking.time_range(timezone))
    ]


class AvailabilityFilter:
    """
    Marks candidate slots as available or taken.

    The full candidate list is returned so callers can render both free and
    taken slots. Applying the filter twice to the same inputs gives the same
    flags.
    """

    def __init__(self, timezone: str = "UTC"):
        self.timezone = timezone

    def filter(
        self,
        candidates: Iterable[TimeSlot],
        bookings: Sequence[Booking],
    ) -> List[TimeSlot]:
        """
        Flag each candidate against the existing bookings for one staff member and day.

        Args:
            candidates: Candidate slots from the SlotGenerator
            bookings: Bookings for the same staff member and date

        Returns:
            New TimeSlot objects with ``is_available`` set
        """
        busy_ranges = [
            booking.time_range(self.timezone)
            for booking in bookings
            if booking.is_active
        ]

        return [
            TimeSlot(
                time_range=slot.time_range,
                is_available=not any(slot.time_range.overlaps(busy) for busy in busy_ranges),
            )
            for slot in candidates
        ]

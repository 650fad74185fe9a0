"""
In-memory implementations of the store protocols.

Used by tests and by the JSON data-file adapter. Mutating methods contain no
``await`` points, so each insert or status change is atomic on the event loop.
"""

from __future__ import annotations

import dataclasses
import itertools
from datetime import date
from typing import Dict, Iterable, List, Optional, Tuple

import pendulum

from ..domain.availability_filter import find_conflicts
from ..domain.exceptions import BookingNotFoundError, SlotConflictError
from ..domain.models import (
    Booking,
    BookingStatus,
    Service,
    StaffWorkingHours,
    WorkingHoursOverride,
)


class InMemoryBookingStore:
    """
    Booking store keeping rows in a dict keyed by id.

    ``insert_booking`` is a conditional insert: it re-checks the overlap
    invariant against the rows present at insert time.
    """

    def __init__(self, timezone: str = "UTC", bookings: Iterable[Booking] = ()):
        self.timezone = timezone
        self.reset(bookings)

    def reset(self, bookings: Iterable[Booking]) -> None:
        """
        Replace every row.

        Raises:
            SlotConflictError: If two of the given active bookings overlap
        """
        self._bookings: Dict[int, Booking] = {}
        for booking in bookings:
            if booking.id is None:
                raise ValueError("Seed bookings need an id")
            self._assert_no_conflict(booking)
            self._bookings[booking.id] = booking
        self._ids = itertools.count(max(self._bookings, default=0) + 1)

    def _active_for(self, staff_id: int, day: date) -> List[Booking]:
        rows = [
            booking for booking in self._bookings.values()
            if booking.staff_id == staff_id and booking.date == day and booking.is_active
        ]
        return sorted(rows, key=lambda b: b.start_time)

    def _assert_no_conflict(self, booking: Booking) -> None:
        if booking.staff_id is None or not booking.is_active:
            return
        others = [b for b in self._active_for(booking.staff_id, booking.date) if b.id != booking.id]
        conflicts = find_conflicts(booking.time_range(self.timezone), others, self.timezone)
        if conflicts:
            raise SlotConflictError(
                f"Booking overlaps {[b.id for b in conflicts]} for staff {booking.staff_id}",
                conflicting_ids=[b.id for b in conflicts],
            )

    async def get_active_bookings(self, staff_id: int, day: date) -> List[Booking]:
        return self._active_for(staff_id, day)

    async def list_bookings(
        self,
        day: Optional[date] = None,
        staff_id: Optional[int] = None,
    ) -> List[Booking]:
        rows = [
            booking for booking in self._bookings.values()
            if (day is None or booking.date == day)
            and (staff_id is None or booking.staff_id == staff_id)
        ]
        return sorted(rows, key=lambda b: (b.date, b.start_time, b.id))

    async def get_booking(self, booking_id: int) -> Optional[Booking]:
        return self._bookings.get(booking_id)

    def add(self, booking: Booking) -> Booking:
        """Conditional insert; the stored row gets the next free id."""
        self._assert_no_conflict(booking)
        stored = dataclasses.replace(
            booking,
            id=next(self._ids),
            created_at=booking.created_at or pendulum.now("UTC"),
        )
        self._bookings[stored.id] = stored
        return stored

    def replace(self, booking: Booking) -> Booking:
        """Overwrite an existing row, re-checking overlaps against every other row."""
        if booking.id not in self._bookings:
            raise BookingNotFoundError(f"Booking {booking.id} not found")
        self._assert_no_conflict(booking)
        self._bookings[booking.id] = booking
        return booking

    def set_status(self, booking_id: int, status: BookingStatus) -> Booking:
        booking = self._bookings.get(booking_id)
        if booking is None:
            raise BookingNotFoundError(f"Booking {booking_id} not found")
        updated = dataclasses.replace(booking, status=status)
        if not booking.is_active:
            self._assert_no_conflict(updated)
        self._bookings[booking_id] = updated
        return updated

    async def insert_booking(self, booking: Booking) -> Booking:
        return self.add(booking)

    async def update_booking(self, booking: Booking) -> Booking:
        return self.replace(booking)

    async def update_booking_status(self, booking_id: int, status: BookingStatus) -> Booking:
        return self.set_status(booking_id, status)

    def all(self) -> List[Booking]:
        """Snapshot of every row, ordered by id."""
        return [self._bookings[key] for key in sorted(self._bookings)]


class InMemoryScheduleStore:
    """Weekly templates and per-day overrides keyed by staff id."""

    def __init__(
        self,
        weekly_hours: Optional[Dict[int, List[StaffWorkingHours]]] = None,
        overrides: Iterable[WorkingHoursOverride] = (),
        staff_ids: Iterable[int] = (),
    ):
        self._weekly: Dict[int, List[StaffWorkingHours]] = dict(weekly_hours or {})
        self._overrides: Dict[Tuple[int, str], WorkingHoursOverride] = {}
        self._staff_ids = set(staff_ids) | set(self._weekly)
        for override in overrides:
            self.add_override(override)

    def set_weekly_hours(self, staff_id: int, hours: List[StaffWorkingHours]) -> None:
        self._weekly[staff_id] = list(hours)
        self._staff_ids.add(staff_id)

    def add_override(self, override: WorkingHoursOverride) -> None:
        self._overrides[(override.staff_id, override.date.isoformat())] = override
        self._staff_ids.add(override.staff_id)

    def add_staff(self, staff_id: int) -> None:
        """Register a staff member with no schedule configured."""
        self._staff_ids.add(staff_id)

    async def get_weekly_hours(self, staff_id: int) -> Optional[List[StaffWorkingHours]]:
        hours = self._weekly.get(staff_id)
        return list(hours) if hours is not None else None

    async def get_override(self, staff_id: int, day: date) -> Optional[WorkingHoursOverride]:
        return self._overrides.get((staff_id, day.isoformat()))

    async def list_staff_ids(self) -> List[int]:
        return sorted(self._staff_ids)


class InMemoryServiceCatalog:
    def __init__(self, services: Iterable[Service] = ()):
        self._services: Dict[int, Service] = {service.id: service for service in services}

    def add(self, service: Service) -> None:
        self._services[service.id] = service

    async def get_service(self, service_id: int) -> Optional[Service]:
        return self._services.get(service_id)

    def all(self) -> List[Service]:
        return [self._services[key] for key in sorted(self._services)]

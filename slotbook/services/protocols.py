"""
Protocols describing the collaborators the services depend on.

Stores are owned outside the engine. Any persistence technology works as
long as ``insert_booking`` refuses a row that conflicts with an active
booking committed since the caller's check.
"""

from __future__ import annotations

from datetime import date
from typing import List, Optional, Protocol

from ..domain.models import (
    Booking,
    BookingStatus,
    NotificationIntent,
    Service,
    StaffWorkingHours,
    WorkingHoursOverride,
)


class BookingStoreProtocol(Protocol):
    """Booking persistence needed by the scheduler."""

    async def get_active_bookings(self, staff_id: int, day: date) -> List[Booking]:
        """Return pending, confirmed and completed bookings for one staff member and day."""

    async def list_bookings(
        self,
        day: Optional[date] = None,
        staff_id: Optional[int] = None,
    ) -> List[Booking]:
        """Return all bookings matching the filters, cancelled ones included."""

    async def get_booking(self, booking_id: int) -> Optional[Booking]:
        """Return one booking or None."""

    async def insert_booking(self, booking: Booking) -> Booking:
        """Insert a booking, raising SlotConflictError if it overlaps an active one."""

    async def update_booking(self, booking: Booking) -> Booking:
        """Replace a stored booking, raising SlotConflictError if the new row overlaps another."""

    async def update_booking_status(self, booking_id: int, status: BookingStatus) -> Booking:
        """Persist a status change and return the updated booking."""


class ScheduleStoreProtocol(Protocol):
    """Staff schedule records owned by staff management."""

    async def get_weekly_hours(self, staff_id: int) -> Optional[List[StaffWorkingHours]]:
        """Return the weekly template, or None when nothing is configured."""

    async def get_override(self, staff_id: int, day: date) -> Optional[WorkingHoursOverride]:
        """Return the per-day exception for ``day``, if any."""

    async def list_staff_ids(self) -> List[int]:
        """Return every known staff id."""


class ServiceCatalogProtocol(Protocol):
    async def get_service(self, service_id: int) -> Optional[Service]:
        """Return a service definition or None."""


class NotifierProtocol(Protocol):
    """Fire-and-forget delivery of notification intents."""

    def send(self, intent: NotificationIntent) -> None:
        """Queue the intent for delivery."""

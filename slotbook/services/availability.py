"""
Availability queries over the staff schedule and booking stores.

The service fetches working-hours records and bookings through the store
protocols and delegates the calculation to the domain-level resolver,
generator and filter. Reads take no locks.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import List, Optional

from ..domain.availability_filter import AvailabilityFilter
from ..domain.models import Booking, StaffSchedule, TimeRange, TimeSlot
from ..domain.slot_generator import SlotGenerator
from ..domain.working_hours import WorkingHoursResolver
from .protocols import BookingStoreProtocol, ScheduleStoreProtocol

logger = logging.getLogger(__name__)


class AvailabilityService:
    """Orchestrates WorkingHoursResolver -> SlotGenerator -> AvailabilityFilter."""

    def __init__(
        self,
        *,
        schedule_store: ScheduleStoreProtocol,
        booking_store: BookingStoreProtocol,
        resolver: WorkingHoursResolver,
        generator: SlotGenerator,
        availability_filter: AvailabilityFilter,
    ) -> None:
        self._schedule_store = schedule_store
        self._booking_store = booking_store
        self._resolver = resolver
        self._generator = generator
        self._filter = availability_filter

    async def resolve_interval(self, staff_id: Optional[int], day: date) -> TimeRange | None:
        """
        Resolve the working interval for a staff member, or the business
        default when no staff member is given.
        """
        if staff_id is None:
            return self._resolver.resolve(day)

        weekly_hours = await self._schedule_store.get_weekly_hours(staff_id)
        override = await self._schedule_store.get_override(staff_id, day)
        return self._resolver.resolve(day, weekly_hours=weekly_hours, override=override)

    async def fetch_bookings(self, staff_id: Optional[int], day: date) -> List[Booking]:
        """Active bookings relevant for conflict checks; none without a staff member."""
        if staff_id is None:
            return []
        return await self._booking_store.get_active_bookings(staff_id, day)

    async def get_slots(
        self,
        *,
        day: date,
        duration_minutes: int,
        staff_id: Optional[int] = None,
    ) -> List[TimeSlot]:
        """
        Compute every candidate slot for the day with its availability flag.

        A day without working hours yields an empty list, never an error.
        """
        interval = await self.resolve_interval(staff_id, day)
        if interval is None:
            logger.debug("Staff %s is not working on %s", staff_id, day)
            return []

        return self.calculate_slots(
            interval=interval,
            duration_minutes=duration_minutes,
            bookings=await self.fetch_bookings(staff_id, day),
        )

    def calculate_slots(
        self,
        *,
        interval: TimeRange,
        duration_minutes: int,
        bookings: List[Booking],
    ) -> List[TimeSlot]:
        candidates = self._generator.generate(interval, duration_minutes)
        return self._filter.filter(candidates, bookings)

    async def get_staff_schedules(
        self,
        *,
        day: date,
        duration_minutes: int,
        staff_id: Optional[int] = None,
    ) -> List[StaffSchedule]:
        """Working interval plus slots for one staff member, or for all of them."""
        if staff_id is not None:
            staff_ids = [staff_id]
        else:
            staff_ids = await self._schedule_store.list_staff_ids()

        schedules: List[StaffSchedule] = []
        for current in staff_ids:
            interval = await self.resolve_interval(current, day)
            slots: List[TimeSlot] = []
            if interval is not None:
                slots = self.calculate_slots(
                    interval=interval,
                    duration_minutes=duration_minutes,
                    bookings=await self.fetch_bookings(current, day),
                )
            schedules.append(
                StaffSchedule(staff_id=current, date=day, working_interval=interval, slots=slots)
            )

        return schedules

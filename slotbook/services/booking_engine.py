"""
Transport-agnostic API of the scheduling engine.

The engine owns no long-lived state: it wires the domain components to
externally owned stores and exposes the caller-facing operations.
"""

from __future__ import annotations

import dataclasses
from datetime import date, time
from typing import List, Optional

from ..config import AppConfig
from ..domain.availability_filter import AvailabilityFilter, find_conflicts
from ..domain.exceptions import BookingNotFoundError, ServiceNotFoundError
from ..domain.models import (
    Booking,
    BookingRequest,
    BookingStatus,
    NotificationIntent,
    NotificationKind,
    RecurrenceRule,
    RecurringBookingResult,
    ScheduleOutcome,
    Service,
    StaffSchedule,
    TimeRange,
    TimeSlot,
    at_time,
)
from ..domain.slot_generator import SlotGenerator
from ..domain.working_hours import WorkingHoursResolver
from .availability import AvailabilityService
from .booking_scheduler import BookingScheduler
from .locking import KeyedLock
from .protocols import (
    BookingStoreProtocol,
    NotifierProtocol,
    ScheduleStoreProtocol,
    ServiceCatalogProtocol,
)
from .recurrence_expander import RecurrenceExpander


class BookingEngine:
    """
    Facade over availability queries, single bookings and recurring bookings.

    Dependency inversion toward store protocols makes it easy to plug in a
    database-backed store or the in-memory adapters used in tests.
    """

    def __init__(
        self,
        *,
        availability: AvailabilityService,
        scheduler: BookingScheduler,
        expander: RecurrenceExpander,
        booking_store: BookingStoreProtocol,
        service_catalog: ServiceCatalogProtocol,
        default_duration_minutes: int = 60,
        slot_step_minutes: int = 30,
        timezone: str = "UTC",
    ) -> None:
        self._availability = availability
        self._scheduler = scheduler
        self._expander = expander
        self._booking_store = booking_store
        self._service_catalog = service_catalog
        self.default_duration_minutes = default_duration_minutes
        self.slot_step_minutes = slot_step_minutes
        self.timezone = timezone

    @classmethod
    def from_config(
        cls,
        config: AppConfig,
        *,
        booking_store: BookingStoreProtocol,
        schedule_store: ScheduleStoreProtocol,
        service_catalog: ServiceCatalogProtocol,
        notifier: NotifierProtocol,
    ) -> "BookingEngine":
        """Wire every component from the application configuration."""
        tz = config.timezone
        availability = AvailabilityService(
            schedule_store=schedule_store,
            booking_store=booking_store,
            resolver=WorkingHoursResolver(config.default_working_hours(), timezone=tz),
            generator=SlotGenerator(step_minutes=config.scheduling.slot_step_minutes),
            availability_filter=AvailabilityFilter(timezone=tz),
        )
        scheduler = BookingScheduler(
            availability=availability,
            booking_store=booking_store,
            notifier=notifier,
            locks=KeyedLock(timeout_seconds=config.scheduling.lock_timeout_seconds),
            timezone=tz,
        )
        return cls(
            availability=availability,
            scheduler=scheduler,
            expander=RecurrenceExpander(scheduler, max_occurrences=config.scheduling.max_occurrences),
            booking_store=booking_store,
            service_catalog=service_catalog,
            default_duration_minutes=config.scheduling.default_duration_minutes,
            slot_step_minutes=config.scheduling.slot_step_minutes,
            timezone=tz,
        )

    async def _get_service(self, service_id: int) -> Service:
        service = await self._service_catalog.get_service(service_id)
        if service is None:
            raise ServiceNotFoundError(f"Service {service_id} not found")
        return service

    def _duration_for(self, service: Service) -> int:
        return service.duration_minutes or self.default_duration_minutes

    async def availability(
        self,
        day: date,
        service_id: int,
        staff_id: Optional[int] = None,
    ) -> List[TimeSlot]:
        """All candidate slots for the service on ``day``, flagged free or taken."""
        service = await self._get_service(service_id)
        return await self._availability.get_slots(
            day=day,
            duration_minutes=self._duration_for(service),
            staff_id=staff_id,
        )

    async def staff_schedule(
        self,
        day: date,
        staff_id: Optional[int] = None,
        service_id: Optional[int] = None,
    ) -> List[StaffSchedule]:
        """
        Working hours plus computed slots per staff member.

        Slots last the service duration when a service is given, otherwise
        one slot step.
        """
        if service_id is not None:
            duration = self._duration_for(await self._get_service(service_id))
        else:
            duration = self.slot_step_minutes
        return await self._availability.get_staff_schedules(
            day=day,
            duration_minutes=duration,
            staff_id=staff_id,
        )

    async def book(
        self,
        *,
        service_id: int,
        day: date,
        start_time: time,
        staff_id: Optional[int] = None,
        customer_id: Optional[int] = None,
        notes: str = "",
    ) -> ScheduleOutcome:
        """Create a single booking, or report why it was rejected."""
        service = await self._get_service(service_id)
        request = BookingRequest(
            service_id=service_id,
            date=day,
            start_time=start_time,
            duration_minutes=self._duration_for(service),
            staff_id=staff_id,
            customer_id=customer_id,
            price=service.price,
            notes=notes,
        )
        return await self._scheduler.schedule(request)

    async def book_recurring(self, rule: RecurrenceRule) -> RecurringBookingResult:
        """Create a recurring series; duration and price default to the service's."""
        service = await self._get_service(rule.service_id)
        rule = dataclasses.replace(
            rule,
            duration_minutes=rule.duration_minutes or self._duration_for(service),
            price=rule.price if rule.price is not None else service.price,
        )
        return await self._expander.schedule_series(rule)

    async def check_conflicts(
        self,
        *,
        day: date,
        start_time: time,
        duration_minutes: int,
        staff_id: Optional[int] = None,
    ) -> List[Booking]:
        """
        Active bookings overlapping the proposed interval.

        Without a staff member every booking on that date is considered.
        """
        start = at_time(day, start_time, self.timezone)
        candidate = TimeRange(start=start, end=start.add(minutes=duration_minutes))
        if staff_id is not None:
            bookings = await self._booking_store.get_active_bookings(staff_id, day)
        else:
            bookings = await self._booking_store.list_bookings(day=day)
        return find_conflicts(candidate, bookings, self.timezone)

    async def update_status(self, booking_id: int, status: BookingStatus) -> Booking:
        return await self._scheduler.update_status(booking_id, BookingStatus(status))

    async def reschedule(
        self,
        booking_id: int,
        *,
        day: Optional[date] = None,
        start_time: Optional[time] = None,
        staff_id: Optional[int] = None,
        duration_minutes: Optional[int] = None,
    ) -> ScheduleOutcome:
        """Move or resize an existing booking, or report why the move was rejected."""
        return await self._scheduler.reschedule(
            booking_id,
            day=day,
            start_time=start_time,
            staff_id=staff_id,
            duration_minutes=duration_minutes,
        )

    async def send_notification(self, booking_id: int, kind: NotificationKind) -> NotificationIntent:
        """Emit a notification intent for an existing booking."""
        booking = await self._booking_store.get_booking(booking_id)
        if booking is None:
            raise BookingNotFoundError(f"Booking {booking_id} not found")
        return self._scheduler.emit(NotificationKind(kind), booking)

    async def list_bookings(
        self,
        day: Optional[date] = None,
        staff_id: Optional[int] = None,
    ) -> List[Booking]:
        return await self._booking_store.list_bookings(day=day, staff_id=staff_id)

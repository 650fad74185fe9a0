"""Shared test fixtures and helpers."""

from dataclasses import dataclass
from datetime import time
from typing import Iterable, List, Optional

import pendulum
import pytest

from slotbook.adapters.memory_store import (
    InMemoryBookingStore,
    InMemoryScheduleStore,
    InMemoryServiceCatalog,
)
from slotbook.adapters.notifier import OutboxNotifier
from slotbook.domain.availability_filter import AvailabilityFilter
from slotbook.domain.models import (
    Booking,
    BookingRequest,
    BookingStatus,
    Service,
    StaffWorkingHours,
)
from slotbook.domain.slot_generator import SlotGenerator
from slotbook.domain.working_hours import WorkingHoursResolver
from slotbook.services.availability import AvailabilityService
from slotbook.services.booking_engine import BookingEngine
from slotbook.services.booking_scheduler import BookingScheduler
from slotbook.services.locking import KeyedLock
from slotbook.services.recurrence_expander import RecurrenceExpander

TZ = "UTC"

# 2024-01-01 is a Monday.
MONDAY = pendulum.date(2024, 1, 1)
SATURDAY = pendulum.date(2024, 1, 6)


def weekday_hours(
    staff_id: Optional[int] = 1,
    start: time = time(9, 0),
    end: time = time(17, 0),
) -> List[StaffWorkingHours]:
    """Monday to Friday working template, weekend off."""
    return [
        StaffWorkingHours(
            weekday=day,
            is_working=day < 5,
            start_time=start if day < 5 else None,
            end_time=end if day < 5 else None,
            staff_id=staff_id,
        )
        for day in range(7)
    ]


def make_booking(
    booking_id: int,
    *,
    staff_id: Optional[int] = 1,
    day=MONDAY,
    start: str = "10:00",
    duration: int = 30,
    status: BookingStatus = BookingStatus.CONFIRMED,
) -> Booking:
    return Booking(
        id=booking_id,
        service_id=1,
        date=day,
        start_time=time.fromisoformat(start),
        duration_minutes=duration,
        staff_id=staff_id,
        status=status,
    )


def make_request(
    *,
    staff_id: Optional[int] = 1,
    day=MONDAY,
    start: str = "10:00",
    duration: int = 30,
) -> BookingRequest:
    return BookingRequest(
        service_id=1,
        date=day,
        start_time=time.fromisoformat(start),
        duration_minutes=duration,
        staff_id=staff_id,
    )


@dataclass
class Harness:
    """Fully wired engine over in-memory stores."""
    engine: BookingEngine
    scheduler: BookingScheduler
    expander: RecurrenceExpander
    availability: AvailabilityService
    bookings: InMemoryBookingStore
    schedules: InMemoryScheduleStore
    services: InMemoryServiceCatalog
    notifier: OutboxNotifier
    locks: KeyedLock


def build_harness(
    *,
    bookings: Iterable[Booking] = (),
    staff_hours: Optional[dict] = None,
    default_hours: Optional[List[StaffWorkingHours]] = None,
    services: Iterable[Service] = (Service(id=1, name="Haircut", duration_minutes=30, price=25.0),),
    booking_store: Optional[InMemoryBookingStore] = None,
    notifier=None,
    lock_timeout: float = 5.0,
    step_minutes: int = 30,
    max_occurrences: int = 104,
) -> Harness:
    booking_store = booking_store or InMemoryBookingStore(timezone=TZ, bookings=bookings)
    schedules = InMemoryScheduleStore(
        weekly_hours={1: weekday_hours(1)} if staff_hours is None else staff_hours
    )
    catalog = InMemoryServiceCatalog(services)
    notifier = notifier or OutboxNotifier()
    locks = KeyedLock(timeout_seconds=lock_timeout)

    availability = AvailabilityService(
        schedule_store=schedules,
        booking_store=booking_store,
        resolver=WorkingHoursResolver(
            weekday_hours(None) if default_hours is None else default_hours,
            timezone=TZ,
        ),
        generator=SlotGenerator(step_minutes=step_minutes),
        availability_filter=AvailabilityFilter(timezone=TZ),
    )
    scheduler = BookingScheduler(
        availability=availability,
        booking_store=booking_store,
        notifier=notifier,
        locks=locks,
        timezone=TZ,
    )
    expander = RecurrenceExpander(scheduler, max_occurrences=max_occurrences)
    engine = BookingEngine(
        availability=availability,
        scheduler=scheduler,
        expander=expander,
        booking_store=booking_store,
        service_catalog=catalog,
        slot_step_minutes=step_minutes,
        timezone=TZ,
    )
    return Harness(
        engine=engine,
        scheduler=scheduler,
        expander=expander,
        availability=availability,
        bookings=booking_store,
        schedules=schedules,
        services=catalog,
        notifier=notifier,
        locks=locks,
    )


@pytest.fixture
def harness() -> Harness:
    return build_harness()

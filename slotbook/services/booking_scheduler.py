"""
Validation and commit of single bookings.

Every call re-derives availability from the stores while holding the
per-(staff, date) lock, so a slot a client saw as free earlier is never
trusted. The store's conditional insert is the second line of defence when
several engine processes share one store, as with the JSON data file.
"""

from __future__ import annotations

import dataclasses
import logging
from contextlib import asynccontextmanager
from datetime import date, time
from typing import AsyncIterator, Hashable, Optional

import pendulum

from ..domain.availability_filter import find_conflicts
from ..domain.exceptions import (
    BookingNotFoundError,
    OutsideWorkingHoursError,
    SchedulerBusyError,
    SlotConflictError,
)
from ..domain.models import (
    Booking,
    BookingRequest,
    BookingStatus,
    NotificationIntent,
    NotificationKind,
    PaymentStatus,
    RejectionReason,
    ScheduleOutcome,
)
from .availability import AvailabilityService
from .locking import KeyedLock
from .protocols import BookingStoreProtocol, NotifierProtocol

logger = logging.getLogger(__name__)


class BookingScheduler:
    """
    Commits bookings while enforcing the no-overlap invariant.

    Algorithm (under the lock for the booking's staff member and date):
    1. Re-resolve working hours; reject if the interval is not inside them
    2. Re-fetch active bookings; reject if any intersects the candidate
    3. Insert with status pending and payment status pending
    Then, with the lock released, emit a confirmation intent.
    """

    def __init__(
        self,
        *,
        availability: AvailabilityService,
        booking_store: BookingStoreProtocol,
        notifier: NotifierProtocol,
        locks: KeyedLock,
        timezone: str = "UTC",
    ) -> None:
        self._availability = availability
        self._booking_store = booking_store
        self._notifier = notifier
        self._locks = locks
        self.timezone = timezone

    @staticmethod
    def lock_key(staff_id: Optional[int], day: date) -> Hashable:
        return (staff_id, day.isoformat())

    async def schedule(self, request: BookingRequest) -> ScheduleOutcome:
        """
        Validate and commit one booking.

        Returns:
            ScheduleOutcome carrying the created booking, or the rejection reason
        """
        try:
            async with self._locks.hold(self.lock_key(request.staff_id, request.date)):
                booking = await self._validate_and_insert(request)
        except SchedulerBusyError:
            return ScheduleOutcome.reject(request.date, RejectionReason.BUSY)
        except OutsideWorkingHoursError as exc:
            logger.info("Rejected booking on %s: %s", request.date, exc)
            return ScheduleOutcome.reject(request.date, RejectionReason.OUTSIDE_WORKING_HOURS)
        except SlotConflictError as exc:
            logger.info("Rejected booking on %s: %s", request.date, exc)
            return ScheduleOutcome.reject(request.date, RejectionReason.SLOT_CONFLICT)

        logger.info(
            "Booking %s created for staff %s on %s at %s",
            booking.id,
            booking.staff_id,
            booking.date,
            booking.start_time.strftime("%H:%M"),
        )
        self.emit(NotificationKind.CONFIRMATION, booking)
        return ScheduleOutcome.accept(booking)

    async def _validate_and_insert(self, request: BookingRequest) -> Booking:
        candidate = request.time_range(self.timezone)

        interval = await self._availability.resolve_interval(request.staff_id, request.date)
        if interval is None or not interval.contains(candidate):
            raise OutsideWorkingHoursError(
                f"{candidate} is outside working hours for staff {request.staff_id}"
            )

        existing = await self._availability.fetch_bookings(request.staff_id, request.date)
        conflicts = find_conflicts(candidate, existing, self.timezone)
        if conflicts:
            raise SlotConflictError(
                f"{candidate} overlaps booking(s) {[b.id for b in conflicts]}",
                conflicting_ids=[b.id for b in conflicts],
            )

        booking = Booking(
            id=None,
            service_id=request.service_id,
            date=request.date,
            start_time=request.start_time,
            duration_minutes=request.duration_minutes,
            staff_id=request.staff_id,
            customer_id=request.customer_id,
            status=BookingStatus.PENDING,
            payment_status=PaymentStatus.PENDING,
            price=request.price,
            notes=request.notes,
            recurrence_group_id=request.recurrence_group_id,
            created_at=pendulum.now("UTC"),
        )
        return await self._booking_store.insert_booking(booking)

    async def _require_booking(self, booking_id: int) -> Booking:
        booking = await self._booking_store.get_booking(booking_id)
        if booking is None:
            raise BookingNotFoundError(f"Booking {booking_id} not found")
        return booking

    @asynccontextmanager
    async def _hold_booking(self, booking_id: int) -> AsyncIterator[Booking]:
        """
        Lock the calendar a booking currently sits in and yield a fresh copy.

        The booking is read again under the lock; if it moved to another
        calendar in the meantime, the lock for its new calendar is taken instead.
        """
        booking = await self._require_booking(booking_id)
        while True:
            key = self.lock_key(booking.staff_id, booking.date)
            async with self._locks.hold(key):
                current = await self._require_booking(booking_id)
                if self.lock_key(current.staff_id, current.date) == key:
                    yield current
                    return
            booking = current

    async def _assert_no_other_conflicts(self, booking: Booking) -> None:
        existing = await self._availability.fetch_bookings(booking.staff_id, booking.date)
        conflicts = find_conflicts(
            booking.time_range(self.timezone),
            [b for b in existing if b.id != booking.id],
            self.timezone,
        )
        if conflicts:
            raise SlotConflictError(
                f"Booking {booking.id} overlaps booking(s) {[b.id for b in conflicts]}",
                conflicting_ids=[b.id for b in conflicts],
            )

    async def update_status(self, booking_id: int, status: BookingStatus) -> Booking:
        """
        Change a booking's status.

        Moving a cancelled booking back into an active status is re-validated
        under the calendar lock.

        Raises:
            BookingNotFoundError: If the booking does not exist
            SlotConflictError: If reactivation would overlap an active booking
            SchedulerBusyError: If the calendar lock is not acquired in time
        """
        async with self._hold_booking(booking_id) as booking:
            if status.is_active and not booking.is_active:
                await self._assert_no_other_conflicts(booking)
            updated = await self._booking_store.update_booking_status(booking_id, status)

        logger.info("Booking %s moved from %s to %s", booking_id, booking.status.value, status.value)

        if status is BookingStatus.CANCELLED and booking.is_active:
            self.emit(NotificationKind.CANCELLATION, updated)
        return updated

    async def reschedule(
        self,
        booking_id: int,
        *,
        day: Optional[date] = None,
        start_time: Optional[time] = None,
        staff_id: Optional[int] = None,
        duration_minutes: Optional[int] = None,
    ) -> ScheduleOutcome:
        """
        Move a booking to another date, time or staff member, or change its length.

        Fields left as None keep their current value. An active booking is
        validated like a new one, ignoring its own current interval. Both the
        source and the target calendar are locked while the row is rewritten.

        Raises:
            BookingNotFoundError: If the booking does not exist
        """
        booking = await self._require_booking(booking_id)
        while True:
            moved = self._moved(booking, day, start_time, staff_id, duration_minutes)
            source = self.lock_key(booking.staff_id, booking.date)
            target = self.lock_key(moved.staff_id, moved.date)
            try:
                async with self._locks.hold_all([source, target]):
                    current = await self._require_booking(booking_id)
                    if self.lock_key(current.staff_id, current.date) != source:
                        booking = current
                        continue
                    moved = self._moved(current, day, start_time, staff_id, duration_minutes)
                    if moved.is_active:
                        await self._assert_within_hours(moved)
                        await self._assert_no_other_conflicts(moved)
                    updated = await self._booking_store.update_booking(moved)
            except SchedulerBusyError:
                return ScheduleOutcome.reject(moved.date, RejectionReason.BUSY)
            except OutsideWorkingHoursError as exc:
                logger.info("Rejected move of booking %s: %s", booking_id, exc)
                return ScheduleOutcome.reject(moved.date, RejectionReason.OUTSIDE_WORKING_HOURS)
            except SlotConflictError as exc:
                logger.info("Rejected move of booking %s: %s", booking_id, exc)
                return ScheduleOutcome.reject(moved.date, RejectionReason.SLOT_CONFLICT)
            break

        logger.info(
            "Booking %s moved to staff %s on %s at %s",
            booking_id,
            updated.staff_id,
            updated.date,
            updated.start_time.strftime("%H:%M"),
        )
        if updated.is_active:
            self.emit(NotificationKind.CONFIRMATION, updated)
        return ScheduleOutcome.accept(updated)

    @staticmethod
    def _moved(
        booking: Booking,
        day: Optional[date],
        start_time: Optional[time],
        staff_id: Optional[int],
        duration_minutes: Optional[int],
    ) -> Booking:
        return dataclasses.replace(
            booking,
            date=booking.date if day is None else day,
            start_time=booking.start_time if start_time is None else start_time,
            staff_id=booking.staff_id if staff_id is None else staff_id,
            duration_minutes=(
                booking.duration_minutes if duration_minutes is None else duration_minutes
            ),
        )

    async def _assert_within_hours(self, booking: Booking) -> None:
        candidate = booking.time_range(self.timezone)
        interval = await self._availability.resolve_interval(booking.staff_id, booking.date)
        if interval is None or not interval.contains(candidate):
            raise OutsideWorkingHoursError(
                f"{candidate} is outside working hours for staff {booking.staff_id}"
            )

    def emit(self, kind: NotificationKind, booking: Booking) -> NotificationIntent:
        """Hand a notification intent to the notifier. Failures never undo the booking."""
        intent = NotificationIntent(kind=kind, booking_id=booking.id)
        try:
            self._notifier.send(intent)
        except Exception:
            logger.exception("Failed to emit %s notification for booking %s", kind.value, booking.id)
        return intent

"""
Domain models for working hours, bookings, slots and recurrence rules.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, time
from enum import Enum
from typing import List, Optional

import pendulum
from pendulum import DateTime

from .exceptions import InvalidRuleError


class BookingStatus(str, Enum):
    """Lifecycle state of a booking."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @property
    def is_active(self) -> bool:
        """Active bookings take part in conflict checks."""
        return self is not BookingStatus.CANCELLED


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    REFUNDED = "refunded"


class RecurrencePattern(str, Enum):
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"


class RejectionReason(str, Enum):
    """Why a single scheduling attempt did not produce a booking."""
    OUTSIDE_WORKING_HOURS = "outside_working_hours"
    SLOT_CONFLICT = "slot_conflict"
    BUSY = "busy"


class NotificationKind(str, Enum):
    CONFIRMATION = "confirmation"
    REMINDER = "reminder"
    CANCELLATION = "cancellation"


def at_time(day: date, clock: time, timezone: str) -> DateTime:
    """Combine a calendar day and a wall-clock time in the business timezone."""
    return pendulum.datetime(
        day.year,
        day.month,
        day.day,
        clock.hour,
        clock.minute,
        tz=timezone,
    )


def parse_date(value: str) -> pendulum.Date:
    """Parse a YYYY-MM-DD string into a calendar date."""
    return pendulum.from_format(value, "YYYY-MM-DD").date()


def parse_time(value: str) -> time:
    """Parse a HH:MM (or HH:MM:SS) string into a wall-clock time."""
    try:
        return time.fromisoformat(value)
    except ValueError:
        raise ValueError(f"Invalid time {value!r}, expected HH:MM") from None


@dataclass(frozen=True)
class TimeRange:
    """
    Represents an immutable half-open time range [start, end).

    Invariant: start must be before end.
    """
    start: DateTime
    end: DateTime

    def __post_init__(self):
        if self.start >= self.end:
            raise ValueError(f"Start time {self.start} must be before end time {self.end}")

    def duration_minutes(self) -> int:
        """Return the duration in minutes."""
        return int((self.end - self.start).total_seconds() / 60)

    def overlaps(self, other: "TimeRange") -> bool:
        """Check if this range overlaps with another. Touching endpoints do not overlap."""
        return self.start < other.end and other.start < self.end

    def contains(self, other: "TimeRange") -> bool:
        """Check if another range lies entirely within this one."""
        return self.start <= other.start and other.end <= self.end

    def __str__(self) -> str:
        return f"{self.start.format('DD.MM.YYYY HH:mm')} - {self.end.format('HH:mm')}"


def _validate_hours(is_working: bool, start_time: Optional[time], end_time: Optional[time]) -> None:
    if not is_working:
        return
    if start_time is None or end_time is None:
        raise ValueError("Working entries need both start_time and end_time")
    if start_time >= end_time:
        raise ValueError(f"start_time {start_time} must be before end_time {end_time}")


@dataclass(frozen=True)
class StaffWorkingHours:
    """
    Weekly template entry: one per staff member per weekday (0=Monday, 6=Sunday).

    ``staff_id`` is None for entries of the business-wide default template.
    Start and end are ignored when ``is_working`` is false.
    """
    weekday: int
    is_working: bool
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    staff_id: Optional[int] = None

    def __post_init__(self):
        if self.weekday not in range(7):
            raise ValueError(f"weekday must be between 0 and 6, got {self.weekday}")
        _validate_hours(self.is_working, self.start_time, self.end_time)


@dataclass(frozen=True)
class WorkingHoursOverride:
    """Per-day exception that replaces the weekly entry for one date."""
    staff_id: int
    date: date
    is_working: bool
    start_time: Optional[time] = None
    end_time: Optional[time] = None

    def __post_init__(self):
        _validate_hours(self.is_working, self.start_time, self.end_time)


@dataclass(frozen=True)
class Service:
    id: int
    name: str
    duration_minutes: Optional[int] = None
    price: Optional[float] = None


@dataclass(frozen=True)
class Booking:
    """
    A persisted booking row.

    Invariant: for a fixed staff member and date, active bookings never overlap.
    """
    id: Optional[int]
    service_id: int
    date: date
    start_time: time
    duration_minutes: int
    staff_id: Optional[int] = None
    customer_id: Optional[int] = None
    status: BookingStatus = BookingStatus.PENDING
    payment_status: PaymentStatus = PaymentStatus.PENDING
    price: Optional[float] = None
    notes: str = ""
    recurrence_group_id: Optional[str] = None
    created_at: Optional[datetime] = None

    def __post_init__(self):
        if self.duration_minutes <= 0:
            raise ValueError(f"duration_minutes must be positive, got {self.duration_minutes}")

    @property
    def is_active(self) -> bool:
        return self.status.is_active

    def time_range(self, timezone: str) -> TimeRange:
        """Return the booked interval in the business timezone."""
        start = at_time(self.date, self.start_time, timezone)
        return TimeRange(start=start, end=start.add(minutes=self.duration_minutes))


@dataclass(frozen=True)
class BookingRequest:
    """A candidate booking handed to the scheduler."""
    service_id: int
    date: date
    start_time: time
    duration_minutes: int
    staff_id: Optional[int] = None
    customer_id: Optional[int] = None
    price: Optional[float] = None
    notes: str = ""
    recurrence_group_id: Optional[str] = None

    def time_range(self, timezone: str) -> TimeRange:
        start = at_time(self.date, self.start_time, timezone)
        return TimeRange(start=start, end=start.add(minutes=self.duration_minutes))


@dataclass
class TimeSlot:
    """
    A candidate slot, computed per availability request and never stored.
    """
    time_range: TimeRange
    is_available: bool = True

    @property
    def start_time(self) -> time:
        return self.time_range.start.time()

    @property
    def end_time(self) -> time:
        return self.time_range.end.time()

    def format_display(self) -> str:
        """Format: HH:MM - HH:MM (free|taken)"""
        state = "free" if self.is_available else "taken"
        return (
            f"{self.time_range.start.format('HH:mm')} - "
            f"{self.time_range.end.format('HH:mm')} ({state})"
        )


@dataclass
class StaffSchedule:
    """Working interval plus computed slots for one staff member on one day."""
    staff_id: Optional[int]
    date: date
    working_interval: Optional[TimeRange]
    slots: List[TimeSlot] = field(default_factory=list)

    @property
    def is_working(self) -> bool:
        return self.working_interval is not None


@dataclass(frozen=True)
class RecurrenceRule:
    """
    Recurring booking request.

    Invariant: end_date >= start_date and a positive duration when given.
    A missing duration is filled in from the service before expansion.
    """
    pattern: RecurrencePattern
    start_date: date
    end_date: date
    start_time: time
    service_id: int
    staff_id: Optional[int] = None
    customer_id: Optional[int] = None
    duration_minutes: Optional[int] = None
    price: Optional[float] = None
    notes: str = ""

    def __post_init__(self):
        try:
            object.__setattr__(self, "pattern", RecurrencePattern(self.pattern))
        except ValueError:
            raise InvalidRuleError(f"Unknown recurrence pattern: {self.pattern!r}") from None
        if self.end_date < self.start_date:
            raise InvalidRuleError(
                f"End date {self.end_date} precedes start date {self.start_date}"
            )
        if self.duration_minutes is not None and self.duration_minutes <= 0:
            raise InvalidRuleError(
                f"Duration must be positive, got {self.duration_minutes}"
            )


@dataclass(frozen=True)
class NotificationIntent:
    """What an external notifier should deliver. The engine never sends anything itself."""
    kind: NotificationKind
    booking_id: int


@dataclass(frozen=True)
class ScheduleOutcome:
    """Created(booking) when ``booking`` is set, otherwise Rejected(reason)."""
    date: date
    booking: Optional[Booking] = None
    reason: Optional[RejectionReason] = None

    @property
    def created(self) -> bool:
        return self.booking is not None

    @classmethod
    def accept(cls, booking: Booking) -> "ScheduleOutcome":
        return cls(date=booking.date, booking=booking)

    @classmethod
    def reject(cls, day: date, reason: RejectionReason) -> "ScheduleOutcome":
        return cls(date=day, reason=reason)


@dataclass(frozen=True)
class SkippedOccurrence:
    date: date
    reason: RejectionReason


@dataclass
class RecurringBookingResult:
    """Per-occurrence outcomes of one recurring request, in occurrence order."""
    group_id: str
    outcomes: List[ScheduleOutcome] = field(default_factory=list)

    @property
    def created(self) -> List[Booking]:
        return [outcome.booking for outcome in self.outcomes if outcome.booking is not None]

    @property
    def skipped(self) -> List[SkippedOccurrence]:
        return [
            SkippedOccurrence(date=outcome.date, reason=outcome.reason)
            for outcome in self.outcomes
            if outcome.booking is None
        ]

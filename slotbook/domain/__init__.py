"""
Domain layer - Pure scheduling logic without external dependencies.
"""

from .availability_filter import AvailabilityFilter, find_conflicts
from .models import (
    Booking,
    BookingRequest,
    BookingStatus,
    RecurrencePattern,
    RecurrenceRule,
    RejectionReason,
    StaffWorkingHours,
    TimeRange,
    TimeSlot,
    WorkingHoursOverride,
)
from .recurrence import occurrence_dates
from .slot_generator import SlotGenerator
from .working_hours import WorkingHoursResolver

__all__ = [
    "AvailabilityFilter",
    "Booking",
    "BookingRequest",
    "BookingStatus",
    "RecurrencePattern",
    "RecurrenceRule",
    "RejectionReason",
    "SlotGenerator",
    "StaffWorkingHours",
    "TimeRange",
    "TimeSlot",
    "WorkingHoursOverride",
    "WorkingHoursResolver",
    "find_conflicts",
    "occurrence_dates",
]

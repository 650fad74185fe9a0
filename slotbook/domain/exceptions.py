"""
Domain-specific exception hierarchy for the booking engine.
"""

from typing import Sequence


class SchedulingError(Exception):
    """Base class for all engine-level errors."""


class OutsideWorkingHoursError(SchedulingError):
    """Raised when a requested interval falls outside the resolved working interval."""


class SlotConflictError(SchedulingError):
    """Raised when a requested interval overlaps an active booking."""

    def __init__(self, message: str, conflicting_ids: Sequence[int] = ()):
        super().__init__(message)
        self.conflicting_ids = list(conflicting_ids)


class SchedulerBusyError(SchedulingError):
    """Raised when the per-calendar lock cannot be acquired in time. Retryable."""


class InvalidRuleError(SchedulingError, ValueError):
    """Raised when a recurrence rule is rejected before expansion."""


class ServiceNotFoundError(SchedulingError):
    """Raised when a request references an unknown service."""


class BookingNotFoundError(SchedulingError):
    """Raised when a booking id does not exist in the store."""

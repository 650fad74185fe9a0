"""
Service layer helpers that orchestrate stores and domain logic.
"""

from .availability import AvailabilityService
from .booking_engine import BookingEngine
from .booking_scheduler import BookingScheduler
from .locking import KeyedLock
from .protocols import (
    BookingStoreProtocol,
    NotifierProtocol,
    ScheduleStoreProtocol,
    ServiceCatalogProtocol,
)
from .recurrence_expander import RecurrenceExpander

__all__ = [
    "AvailabilityService",
    "BookingEngine",
    "BookingScheduler",
    "BookingStoreProtocol",
    "KeyedLock",
    "NotifierProtocol",
    "RecurrenceExpander",
    "ScheduleStoreProtocol",
    "ServiceCatalogProtocol",
]

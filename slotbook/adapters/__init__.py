"""
Adapters layer - Store and notifier implementations.
"""

from .json_store import JsonDataStore
from .memory_store import InMemoryBookingStore, InMemoryScheduleStore, InMemoryServiceCatalog
from .notifier import LoggingNotifier, OutboxNotifier

__all__ = [
    "InMemoryBookingStore",
    "InMemoryScheduleStore",
    "InMemoryServiceCatalog",
    "JsonDataStore",
    "LoggingNotifier",
    "OutboxNotifier",
]

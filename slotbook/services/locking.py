"""
Per-key serialization for booking writes.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import AsyncExitStack, asynccontextmanager
from typing import AsyncIterator, Dict, Hashable, Iterable

from ..domain.exceptions import SchedulerBusyError

logger = logging.getLogger(__name__)


class KeyedLock:
    """
    One asyncio lock per key, acquired with a bounded wait.

    The scheduler keys locks by (staff_id, date) so writes for one calendar
    day are serialized while reads and other calendars proceed in parallel.
    A key's lock only lives while someone holds or waits for it.
    """

    def __init__(self, timeout_seconds: float = 5.0):
        if timeout_seconds <= 0:
            raise ValueError(f"timeout_seconds must be positive, got {timeout_seconds}")
        self.timeout_seconds = timeout_seconds
        self._locks: Dict[Hashable, asyncio.Lock] = {}
        self._users: Dict[Hashable, int] = {}

    def __len__(self) -> int:
        return len(self._locks)

    def _checkout(self, key: Hashable) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        self._users[key] = self._users.get(key, 0) + 1
        return lock

    def _checkin(self, key: Hashable) -> None:
        remaining = self._users[key] - 1
        if remaining:
            self._users[key] = remaining
        else:
            del self._users[key]
            del self._locks[key]

    def locked(self, key: Hashable) -> bool:
        lock = self._locks.get(key)
        return lock is not None and lock.locked()

    @asynccontextmanager
    async def hold(self, key: Hashable) -> AsyncIterator[None]:
        """
        Hold the lock for ``key`` for the duration of the block.

        Raises:
            SchedulerBusyError: If the lock is not acquired within the timeout
        """
        lock = self._checkout(key)
        try:
            try:
                async with asyncio.timeout(self.timeout_seconds):
                    await lock.acquire()
            except TimeoutError:
                logger.warning("Timed out after %.2fs waiting for lock %s", self.timeout_seconds, key)
                raise SchedulerBusyError(
                    f"Calendar {key} is busy, retry the request"
                ) from None

            try:
                yield
            finally:
                lock.release()
        finally:
            self._checkin(key)

    @asynccontextmanager
    async def hold_all(self, keys: Iterable[Hashable]) -> AsyncIterator[None]:
        """
        Hold several keys at once.

        Keys are taken in one global order so two callers locking the same
        pair of calendars cannot deadlock.
        """
        async with AsyncExitStack() as stack:
            for key in sorted(set(keys), key=repr):
                await stack.enter_async_context(self.hold(key))
            yield

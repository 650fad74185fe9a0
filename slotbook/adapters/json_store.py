"""
JSON data-file adapter.

Loads services, staff schedules and bookings from a single JSON file into
the in-memory stores and merges bookings back on ``save``.
"""

from __future__ import annotations

import datetime as dt
import json
import logging
import os
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional

from filelock import FileLock, Timeout
from pydantic import BaseModel, Field

from ..domain.exceptions import SchedulerBusyError
from ..domain.models import (
    Booking,
    BookingStatus,
    PaymentStatus,
    Service,
    StaffWorkingHours,
    WorkingHoursOverride,
)
from .memory_store import InMemoryBookingStore, InMemoryScheduleStore, InMemoryServiceCatalog

logger = logging.getLogger(__name__)


class ServiceRecord(BaseModel):
    id: int
    name: str
    duration_minutes: Optional[int] = None
    price: Optional[float] = None


class WorkingHoursRecord(BaseModel):
    weekday: int
    is_working: bool = True
    start_time: Optional[dt.time] = None
    end_time: Optional[dt.time] = None


class OverrideRecord(BaseModel):
    date: dt.date
    is_working: bool = False
    start_time: Optional[dt.time] = None
    end_time: Optional[dt.time] = None


class StaffRecord(BaseModel):
    """Staff member with an explicit weekly template and per-day overrides."""
    id: int
    name: str = ""
    working_hours: List[WorkingHoursRecord] = Field(default_factory=list)
    overrides: List[OverrideRecord] = Field(default_factory=list)


class BookingRecord(BaseModel):
    id: int
    service_id: int
    date: dt.date
    start_time: dt.time
    duration_minutes: int
    staff_id: Optional[int] = None
    customer_id: Optional[int] = None
    status: BookingStatus = BookingStatus.PENDING
    payment_status: PaymentStatus = PaymentStatus.PENDING
    price: Optional[float] = None
    notes: str = ""
    recurrence_group_id: Optional[str] = None
    created_at: Optional[dt.datetime] = None

    def to_booking(self) -> Booking:
        return Booking(**self.model_dump())

    @classmethod
    def from_booking(cls, booking: Booking) -> "BookingRecord":
        return cls(
            id=booking.id,
            service_id=booking.service_id,
            date=booking.date,
            start_time=booking.start_time,
            duration_minutes=booking.duration_minutes,
            staff_id=booking.staff_id,
            customer_id=booking.customer_id,
            status=booking.status,
            payment_status=booking.payment_status,
            price=booking.price,
            notes=booking.notes,
            recurrence_group_id=booking.recurrence_group_id,
            created_at=booking.created_at,
        )


class DataFile(BaseModel):
    services: List[ServiceRecord] = Field(default_factory=list)
    staff: List[StaffRecord] = Field(default_factory=list)
    bookings: List[BookingRecord] = Field(default_factory=list)


class JsonDataStore:
    """
    Store backed by a JSON file.

    Exposes ``bookings``, ``schedules`` and ``services`` implementing the
    store protocols. Only bookings change at runtime.

    Several processes may share one file. Every read and write of the file
    happens under an exclusive lock file next to it, and ``save`` merges this
    store's changes into whatever is on disk at that moment. Use ``open`` to
    keep the lock for a whole load, book and save cycle.
    """

    def __init__(
        self,
        path: Path,
        timezone: str = "UTC",
        lock_timeout: float = 10.0,
        file_lock: Optional[FileLock] = None,
    ):
        self.path = path
        self.timezone = timezone
        self._file_lock = file_lock or self._make_lock(path, lock_timeout)

        with self._locked():
            self._data = self._load_data_file()

        self.services = InMemoryServiceCatalog(
            Service(**record.model_dump()) for record in self._data.services
        )
        self.schedules = InMemoryScheduleStore()
        for staff in self._data.staff:
            self._register_staff(staff)
        self.bookings = InMemoryBookingStore(
            timezone=timezone,
            bookings=[record.to_booking() for record in self._data.bookings],
        )
        self._snapshot = {booking.id: booking for booking in self.bookings.all()}

    @staticmethod
    def _make_lock(path: Path, timeout: float) -> FileLock:
        return FileLock(str(path.with_name(path.name + ".lock")), timeout=timeout)

    @classmethod
    @contextmanager
    def open(
        cls,
        path: Path,
        timezone: str = "UTC",
        lock_timeout: float = 10.0,
    ) -> Iterator["JsonDataStore"]:
        """
        Load the data file and hold its lock until the block exits.

        Raises:
            SchedulerBusyError: If another process keeps the file locked
        """
        file_lock = cls._make_lock(path, lock_timeout)
        with cls._acquire(file_lock, path):
            yield cls(path, timezone=timezone, file_lock=file_lock)

    @staticmethod
    @contextmanager
    def _acquire(file_lock: FileLock, path: Path) -> Iterator[None]:
        try:
            file_lock.acquire()
        except Timeout:
            raise SchedulerBusyError(
                f"Data file {path} is locked by another process, retry the request"
            ) from None
        try:
            yield
        finally:
            file_lock.release()

    def _locked(self):
        return self._acquire(self._file_lock, self.path)

    def _load_data_file(self) -> DataFile:
        """
        Raises:
            FileNotFoundError: If the data file doesn't exist
            ValueError: If the file is not valid JSON or fails validation
        """
        if not self.path.exists():
            raise FileNotFoundError(f"Data file not found: {self.path}")

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                raw = json.load(f)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Invalid JSON in {self.path}: {exc}") from exc

        return DataFile.model_validate(raw)

    def _register_staff(self, staff: StaffRecord) -> None:
        self.schedules.add_staff(staff.id)
        if staff.working_hours:
            self.schedules.set_weekly_hours(
                staff.id,
                [
                    StaffWorkingHours(staff_id=staff.id, **entry.model_dump())
                    for entry in staff.working_hours
                ],
            )
        for override in staff.overrides:
            self.schedules.add_override(
                WorkingHoursOverride(staff_id=staff.id, **override.model_dump())
            )

    def staff_names(self) -> dict[int, str]:
        return {staff.id: staff.name for staff in self._data.staff}

    def service_names(self) -> dict[int, str]:
        return {service.id: service.name for service in self._data.services}

    def save(self) -> None:
        """
        Merge this store's booking changes into the data file.

        The file is re-read under the lock so rows another process saved in
        the meantime are kept. Bookings created here are re-checked against
        them and numbered after the highest stored id; changed rows overwrite
        their stored version. Nothing is written if any row conflicts.

        Raises:
            SlotConflictError: If a booking made here overlaps one saved elsewhere
            SchedulerBusyError: If the file lock is not acquired in time
        """
        with self._locked():
            on_disk = self._load_data_file()
            merged = InMemoryBookingStore(
                timezone=self.timezone,
                bookings=[record.to_booking() for record in on_disk.bookings],
            )
            for booking in self.bookings.all():
                stored = self._snapshot.get(booking.id)
                if stored is None:
                    merged.add(booking)
                elif booking != stored:
                    merged.replace(booking)

            on_disk.bookings = [BookingRecord.from_booking(b) for b in merged.all()]
            self._write(on_disk)

        self._data = on_disk
        self.bookings.reset(merged.all())
        self._snapshot = {booking.id: booking for booking in self.bookings.all()}
        logger.debug("Saved %d bookings to %s", len(on_disk.bookings), self.path)

    def _write(self, data: DataFile) -> None:
        # Readers never see a half-written file.
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=self.path.name, suffix=".tmp")
        tmp_path = Path(tmp_name)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data.model_dump(mode="json"), f, indent=2)
                f.write("\n")
            os.replace(tmp_path, self.path)
        finally:
            tmp_path.unlink(missing_ok=True)

"""
Booking repository mirrored to a JSON file.
"""

from __future__ import annotations

import json
import logging
import os
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List

from filelock import FileLock, Timeout
from pendulum import DateTime

from ..domain.exceptions import StorageUnavailableError, ValidationError
from ..domain.models import Booking, BookingStatus, TimeRange
from .memory_repository import InMemoryBookingRepository

logger = logging.getLogger(__name__)


class JsonBookingRepository(InMemoryBookingRepository):
    """
    Keeps the arena in memory and writes it through to ``path`` on every
    change.

    The file holds a JSON list of booking records as produced by
    ``Booking.to_dict``. A missing file is an empty calendar.

    Several processes may share one file (each CLI run opens its own
    repository). Every operation holds ``<path>.lock`` and reloads the file
    before touching the arena, so the overlap check in
    ``insert_if_no_conflict`` always sees what other processes committed.
    """

    def __init__(self, path: Path, lock_timeout: float = 10.0):
        self.path = Path(path)
        self._file_lock = FileLock(f"{self.path}.lock", timeout=lock_timeout)
        super().__init__()
        with self._synced():
            pass

    @contextmanager
    def _synced(self) -> Iterator[None]:
        """Hold the file lock and refresh the arena from disk."""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StorageUnavailableError(f"Cannot create directory for {self.path}: {exc}") from exc

        try:
            with self._lock, self._file_lock:
                self._bookings = {booking.id: booking for booking in self._load()}
                yield
        except Timeout as exc:
            raise StorageUnavailableError(f"Timed out waiting for lock on {self.path}") from exc

    def get(self, booking_id: str) -> Booking | None:
        with self._synced():
            return super().get(booking_id)

    def find_active_by_resource_and_range(self, resource_id: str, window: TimeRange) -> List[Booking]:
        with self._synced():
            return super().find_active_by_resource_and_range(resource_id, window)

    def insert_if_no_conflict(self, booking: Booking) -> bool:
        with self._synced():
            return super().insert_if_no_conflict(booking)

    def update_status(
        self,
        booking_id: str,
        status: BookingStatus,
        updated_at: DateTime,
        cancelled_by: str | None = None,
    ) -> Booking | None:
        with self._synced():
            return super().update_status(booking_id, status, updated_at, cancelled_by=cancelled_by)

    def update_interval(self, booking_id: str, interval: TimeRange, updated_at: DateTime) -> Booking | None:
        with self._synced():
            return super().update_interval(booking_id, interval, updated_at)

    def list_bookings(self, window: TimeRange | None = None) -> List[Booking]:
        with self._synced():
            return super().list_bookings(window)

    def _load(self) -> List[Booking]:
        if not self.path.exists():
            return []

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                records = json.load(f)
        except OSError as exc:
            raise StorageUnavailableError(f"Cannot read bookings from {self.path}: {exc}") from exc
        except json.JSONDecodeError as exc:
            raise StorageUnavailableError(f"Invalid JSON in {self.path}: {exc}") from exc

        if not isinstance(records, list):
            raise StorageUnavailableError(f"{self.path} must contain a list of bookings")

        bookings: List[Booking] = []
        for record in records:
            try:
                bookings.append(Booking.from_dict(record))
            except ValidationError as exc:
                raise StorageUnavailableError(f"Corrupt booking record in {self.path}: {exc}") from exc

        logger.debug("Loaded %d bookings from %s", len(bookings), self.path)
        return bookings

    def _persist(self) -> None:
        records = [booking.to_dict() for booking in self._bookings.values()]
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")

        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(records, f, indent=2)
            os.replace(tmp_path, self.path)
        except OSError as exc:
            raise StorageUnavailableError(f"Cannot write bookings to {self.path}: {exc}") from exc

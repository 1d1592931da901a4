"""
In-memory booking repository.
"""

from __future__ import annotations

import threading
from dataclasses import replace
from typing import Dict, List

from pendulum import DateTime

from ..domain.conflicts import find_conflicts, has_conflict
from ..domain.exceptions import ConflictError, ConflictKind, StorageUnavailableError
from ..domain.models import Booking, BookingStatus, TimeRange


class InMemoryBookingRepository:
    """
    Arena of bookings keyed by id.

    ``insert_if_no_conflict`` checks overlap and inserts under one internal
    lock, acting as the storage-level exclusion constraint behind the
    ledger's own check.
    """

    def __init__(self, bookings: List[Booking] | None = None):
        self._bookings: Dict[str, Booking] = {}
        self._lock = threading.RLock()
        for booking in bookings or []:
            self._bookings[booking.id] = booking

    def get(self, booking_id: str) -> Booking | None:
        with self._lock:
            return self._bookings.get(booking_id)

    def find_active_by_resource_and_range(self, resource_id: str, window: TimeRange) -> List[Booking]:
        with self._lock:
            return [
                booking
                for booking in self._bookings.values()
                if booking.resource_id == resource_id
                and booking.is_active
                and booking.interval.overlaps(window)
            ]

    def insert_if_no_conflict(self, booking: Booking) -> bool:
        with self._lock:
            if booking.id in self._bookings:
                return False
            if has_conflict(booking.resource_id, booking.interval, self._bookings.values()):
                return False
            self._store(booking, previous=None)
            return True

    def update_status(
        self,
        booking_id: str,
        status: BookingStatus,
        updated_at: DateTime,
        cancelled_by: str | None = None,
    ) -> Booking | None:
        with self._lock:
            booking = self._bookings.get(booking_id)
            if booking is None:
                return None
            changes = {"cancelled_by": cancelled_by} if cancelled_by is not None else {}
            updated = booking.with_status(status, updated_at, **changes)
            self._store(updated, previous=booking)
            return updated

    def update_interval(self, booking_id: str, interval: TimeRange, updated_at: DateTime) -> Booking | None:
        with self._lock:
            booking = self._bookings.get(booking_id)
            if booking is None:
                return None
            conflicts = find_conflicts(booking.resource_id, interval, self._bookings.values(), exclude_id=booking_id)
            if conflicts:
                raise ConflictError(
                    ConflictKind.DOUBLE_BOOKED,
                    f"Resource {booking.resource_id} is already booked during {interval}",
                    tuple(b.id for b in conflicts),
                )
            updated = replace(booking, interval=interval, updated_at=updated_at)
            self._store(updated, previous=booking)
            return updated

    def list_bookings(self, window: TimeRange | None = None) -> List[Booking]:
        with self._lock:
            return [
                booking
                for booking in self._bookings.values()
                if window is None or booking.interval.overlaps(window)
            ]

    def _store(self, booking: Booking, previous: Booking | None) -> None:
        """Put ``booking`` in the arena, undoing the change if mirroring fails."""
        self._bookings[booking.id] = booking
        try:
            self._persist()
        except StorageUnavailableError:
            if previous is None:
                del self._bookings[booking.id]
            else:
                self._bookings[booking.id] = previous
            raise

    def _persist(self) -> None:
        """Hook for subclasses that mirror the arena somewhere durable."""

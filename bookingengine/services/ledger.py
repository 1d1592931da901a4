"""
The booking ledger: the single write path for resource calendars.

Reads done elsewhere (availability reports, UI) are advisory. Every write
re-runs conflict detection here, under a lock held per resource, so two
callers that both saw a free slot cannot both win it.
"""

from __future__ import annotations

import logging
import threading
import uuid
import weakref
from datetime import date
from typing import Callable, List, Protocol

import pendulum
from pendulum import DateTime

from ..domain.conflicts import find_conflicts, find_duplicate
from ..domain.exceptions import (
    ConflictError,
    ConflictKind,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from ..domain.models import Booking, BookingStatus, TimeRange
from ..domain.status import ensure_transition

logger = logging.getLogger(__name__)


class BookingRepository(Protocol):
    """Persistence behaviour the ledger writes through to."""

    def get(self, booking_id: str) -> Booking | None:
        """Return the booking or None."""

    def find_active_by_resource_and_range(self, resource_id: str, window: TimeRange) -> List[Booking]:
        """Return active bookings of the resource overlapping ``window``."""

    def insert_if_no_conflict(self, booking: Booking) -> bool:
        """Store ``booking`` unless an active booking of its resource overlaps it."""

    def update_status(
        self,
        booking_id: str,
        status: BookingStatus,
        updated_at: DateTime,
        cancelled_by: str | None = None,
    ) -> Booking | None:
        """Persist a status change and return the updated booking."""

    def update_interval(self, booking_id: str, interval: TimeRange, updated_at: DateTime) -> Booking | None:
        """Persist a new interval and return the updated booking.

        Raises ConflictError (DOUBLE_BOOKED) if another active booking of the
        resource overlaps ``interval``.
        """

    def list_bookings(self, window: TimeRange | None = None) -> List[Booking]:
        """Return all bookings, optionally only those overlapping ``window``."""


def _utc_now() -> DateTime:
    return pendulum.now("UTC")


def _new_booking_id() -> str:
    return uuid.uuid4().hex


class BookingLedger:
    """
    Authoritative collection of bookings, keyed by resource.

    ``reserve``, ``cancel``, ``update_status`` and ``reschedule`` each run
    their read-check-write sequence inside the resource's lock. Different
    resources never wait on each other. Locks are created on demand and
    dropped once no caller holds them.
    """

    def __init__(
        self,
        repository: BookingRepository,
        clock: Callable[[], DateTime] = _utc_now,
        id_factory: Callable[[], str] = _new_booking_id,
        timezone: str = "UTC",
    ) -> None:
        self._repository = repository
        self._clock = clock
        self._id_factory = id_factory
        self._timezone = timezone
        self._locks: weakref.WeakValueDictionary = weakref.WeakValueDictionary()
        self._locks_guard = threading.Lock()

    def _resource_lock(self, resource_id: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(resource_id)
            if lock is None:
                lock = self._locks[resource_id] = threading.Lock()
            return lock

    def reserve(
        self,
        resource_id: str,
        subject_id: str,
        service_id: str,
        interval: TimeRange,
    ) -> Booking:
        """
        Atomically check the resource's calendar and book ``interval``.

        Args:
            resource_id: The employee whose time is booked
            subject_id: The client making the request
            service_id: The service being booked
            interval: The requested ``[start, end)`` window

        Returns:
            The new booking, in status PENDING

        Raises:
            ValidationError: If an id is empty
            ConflictError: DUPLICATE_REQUEST if the subject already holds this
                exact window, DOUBLE_BOOKED if anything else overlaps it
            StorageUnavailableError: If the repository fails transiently
        """
        for name, value in (("resource_id", resource_id), ("subject_id", subject_id), ("service_id", service_id)):
            if not value:
                raise ValidationError(f"{name} is required")

        with self._resource_lock(resource_id):
            active = self._repository.find_active_by_resource_and_range(resource_id, interval)

            duplicate = find_duplicate(subject_id, interval, active)
            if duplicate is not None:
                logger.info(
                    "Duplicate reservation request",
                    extra={"resource_id": resource_id, "subject_id": subject_id, "booking_id": duplicate.id},
                )
                raise ConflictError(
                    ConflictKind.DUPLICATE_REQUEST,
                    f"Subject {subject_id} already holds {interval}",
                    (duplicate.id,),
                )

            conflicts = find_conflicts(resource_id, interval, active)
            if conflicts:
                raise self._double_booked(resource_id, interval, conflicts)

            now = self._clock()
            booking = Booking(
                id=self._id_factory(),
                resource_id=resource_id,
                subject_id=subject_id,
                service_id=service_id,
                interval=interval,
                status=BookingStatus.PENDING,
                created_at=now,
                updated_at=now,
            )

            if not self._repository.insert_if_no_conflict(booking):
                raise self._double_booked(resource_id, interval, [])

        logger.info(
            "Booking reserved",
            extra={
                "booking_id": booking.id,
                "resource_id": resource_id,
                "subject_id": subject_id,
                "start": interval.start.to_iso8601_string(),
                "end": interval.end.to_iso8601_string(),
            },
        )
        return booking

    def cancel(self, booking_id: str, acting_subject_id: str) -> Booking:
        """
        Cancel a booking. Cancelling a cancelled booking returns it unchanged.

        Raises:
            NotFoundError: If the booking does not exist
            InvalidTransitionError: If the booking is already COMPLETED
        """
        booking = self.get(booking_id)

        with self._resource_lock(booking.resource_id):
            current = self.get(booking_id)
            if current.status == BookingStatus.CANCELLED:
                return current

            ensure_transition(current.status, BookingStatus.CANCELLED)
            cancelled = self._repository.update_status(
                booking_id,
                BookingStatus.CANCELLED,
                self._clock(),
                cancelled_by=acting_subject_id,
            )

        if cancelled is None:
            raise NotFoundError(f"Booking not found: {booking_id}")

        logger.info(
            "Booking cancelled",
            extra={"booking_id": booking_id, "cancelled_by": acting_subject_id},
        )
        return cancelled

    def update_status(self, booking_id: str, new_status: BookingStatus) -> Booking:
        """
        Move a booking to ``new_status`` following the transition table.

        Raises:
            NotFoundError: If the booking does not exist
            InvalidTransitionError: If the transition is not allowed
        """
        try:
            new_status = BookingStatus(new_status)
        except ValueError:
            raise ValidationError(f"Unknown booking status: {new_status}") from None

        booking = self.get(booking_id)

        with self._resource_lock(booking.resource_id):
            current = self.get(booking_id)
            ensure_transition(current.status, new_status)
            updated = self._repository.update_status(booking_id, new_status, self._clock())

        if updated is None:
            raise NotFoundError(f"Booking not found: {booking_id}")

        logger.info(
            "Booking status changed",
            extra={"booking_id": booking_id, "from": current.status.value, "to": new_status.value},
        )
        return updated

    def reschedule(self, booking_id: str, new_interval: TimeRange) -> Booking:
        """
        Move an active booking to ``new_interval`` on the same resource.

        The booking's own current window never blocks the move.

        Raises:
            NotFoundError: If the booking does not exist
            InvalidTransitionError: If the booking is no longer active
            ConflictError: DOUBLE_BOOKED if another booking overlaps
        """
        booking = self.get(booking_id)

        with self._resource_lock(booking.resource_id):
            current = self.get(booking_id)
            if not current.is_active:
                raise InvalidTransitionError(
                    f"Cannot reschedule a booking in status {current.status.value}"
                )

            active = self._repository.find_active_by_resource_and_range(current.resource_id, new_interval)
            conflicts = find_conflicts(current.resource_id, new_interval, active, exclude_id=booking_id)
            if conflicts:
                raise self._double_booked(current.resource_id, new_interval, conflicts)

            moved = self._repository.update_interval(booking_id, new_interval, self._clock())

        if moved is None:
            raise NotFoundError(f"Booking not found: {booking_id}")

        logger.info(
            "Booking rescheduled",
            extra={
                "booking_id": booking_id,
                "start": new_interval.start.to_iso8601_string(),
                "end": new_interval.end.to_iso8601_string(),
            },
        )
        return moved

    def get(self, booking_id: str) -> Booking:
        booking = self._repository.get(booking_id)
        if booking is None:
            raise NotFoundError(f"Booking not found: {booking_id}")
        return booking

    def list_active(self, resource_id: str, day_range: TimeRange) -> List[Booking]:
        """Active bookings of ``resource_id`` overlapping ``day_range``, by start."""
        bookings = self._repository.find_active_by_resource_and_range(resource_id, day_range)
        return sorted(bookings, key=lambda b: b.interval.start)

    def list_bookings(self, day: date | None = None, limit: int | None = None) -> List[Booking]:
        """
        All bookings ordered by start, optionally for one day and capped.
        """
        if limit is not None and limit < 0:
            raise ValidationError(f"limit must not be negative, got {limit}")

        window = TimeRange.for_day(day, self._timezone) if day is not None else None
        bookings = sorted(self._repository.list_bookings(window), key=lambda b: b.interval.start)
        return bookings if limit is None else bookings[:limit]

    @staticmethod
    def _double_booked(resource_id: str, interval: TimeRange, conflicts: List[Booking]) -> ConflictError:
        conflicting_ids = tuple(b.id for b in conflicts)
        logger.warning(
            "Reservation conflict",
            extra={
                "resource_id": resource_id,
                "start": interval.start.to_iso8601_string(),
                "end": interval.end.to_iso8601_string(),
                "conflicting_ids": conflicting_ids,
            },
        )
        return ConflictError(
            ConflictKind.DOUBLE_BOOKED,
            f"Resource {resource_id} is already booked during {interval}",
            conflicting_ids,
        )

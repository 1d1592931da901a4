"""Conflict detection between candidate intervals and existing bookings."""

from __future__ import annotations

from typing import Iterable, List

from .models import Booking, TimeRange


def find_conflicts(
    resource_id: str,
    candidate: TimeRange,
    bookings: Iterable[Booking],
    exclude_id: str | None = None,
) -> List[Booking]:
    """Return active bookings of ``resource_id`` that overlap ``candidate``.

    Bookings for other resources and inactive bookings are ignored, as is the
    booking named by ``exclude_id`` (a booking never conflicts with itself
    when it is moved).
    """
    return [
        booking
        for booking in bookings
        if booking.resource_id == resource_id
        and booking.is_active
        and booking.id != exclude_id
        and booking.interval.overlaps(candidate)
    ]


def has_conflict(resource_id: str, candidate: TimeRange, bookings: Iterable[Booking]) -> bool:
    return any(
        booking.resource_id == resource_id
        and booking.is_active
        and booking.interval.overlaps(candidate)
        for booking in bookings
    )


def is_held_by_subject(
    subject_id: str,
    service_id: str,
    candidate: TimeRange,
    bookings: Iterable[Booking],
) -> bool:
    """True when the subject already holds an active booking of this service over ``candidate``."""
    return any(
        booking.subject_id == subject_id
        and booking.service_id == service_id
        and booking.is_active
        and booking.interval.overlaps(candidate)
        for booking in bookings
    )


def find_duplicate(
    subject_id: str,
    candidate: TimeRange,
    bookings: Iterable[Booking],
) -> Booking | None:
    """Return the subject's active booking for exactly ``candidate``, if any."""
    for booking in bookings:
        if booking.subject_id == subject_id and booking.is_active and booking.interval == candidate:
            return booking
    return None

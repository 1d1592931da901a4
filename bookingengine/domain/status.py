"""
Booking status rules: the stored transition table and the time-derived
display status.
"""

from __future__ import annotations

from typing import Dict, FrozenSet

from pendulum import DateTime

from .exceptions import InvalidTransitionError
from .models import Booking, BookingStatus

ALLOWED_TRANSITIONS: Dict[BookingStatus, FrozenSet[BookingStatus]] = {
    BookingStatus.PENDING: frozenset(
        {BookingStatus.CONFIRMED, BookingStatus.CANCELLED, BookingStatus.COMPLETED}
    ),
    BookingStatus.CONFIRMED: frozenset({BookingStatus.CANCELLED, BookingStatus.COMPLETED}),
    BookingStatus.CANCELLED: frozenset(),
    BookingStatus.COMPLETED: frozenset(),
}


def can_transition(current: BookingStatus, new: BookingStatus) -> bool:
    return new in ALLOWED_TRANSITIONS[current]


def ensure_transition(current: BookingStatus, new: BookingStatus) -> None:
    """Raise InvalidTransitionError unless ``current -> new`` is allowed."""
    if not can_transition(current, new):
        raise InvalidTransitionError(
            f"Cannot change booking status from {current.value} to {new.value}"
        )


def derive_display_status(booking: Booking, now: DateTime) -> BookingStatus:
    """
    Status shown to users, computed from the wall clock on every read.

    This is a view only and is never written back to the ledger.
    """
    if booking.status == BookingStatus.CANCELLED:
        return BookingStatus.CANCELLED

    if booking.interval.end <= now:
        return BookingStatus.COMPLETED

    if booking.interval.contains(now):
        return BookingStatus.CONFIRMED

    return BookingStatus.PENDING

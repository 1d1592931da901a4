"""
Domain-specific exception hierarchy for the booking engine.

Every error is a typed, recoverable result for the caller. ``http_status``
gives an HTTP-facing caller the status code to map the error to.
"""

from __future__ import annotations

from enum import Enum


class BookingEngineError(Exception):
    """Base class for all engine-level errors."""

    http_status: int = 500
    retryable: bool = False


class ConflictKind(str, Enum):
    """Why a reservation was refused."""

    DOUBLE_BOOKED = "DOUBLE_BOOKED"
    DUPLICATE_REQUEST = "DUPLICATE_REQUEST"


class ConflictError(BookingEngineError):
    """Raised when a requested window cannot be booked for the resource."""

    http_status = 409

    def __init__(self, kind: ConflictKind, message: str, conflicting_ids: tuple[str, ...] = ()) -> None:
        super().__init__(message)
        self.kind = kind
        self.conflicting_ids = conflicting_ids


class NotFoundError(BookingEngineError):
    """Raised when a booking id does not exist."""

    http_status = 404


class InvalidTransitionError(BookingEngineError):
    """Raised when a status change is not allowed from the current status."""

    http_status = 422


class UnknownServiceError(BookingEngineError):
    """Raised when a service id does not resolve to a known duration."""

    http_status = 422


class ValidationError(BookingEngineError, ValueError):
    """Raised for malformed input such as ``end <= start``."""

    http_status = 422


class StorageUnavailableError(BookingEngineError):
    """Raised when the storage layer fails transiently. Safe to retry."""

    http_status = 503
    retryable = True

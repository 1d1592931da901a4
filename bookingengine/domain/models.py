"""
Domain models for intervals, bookings and operating hours.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date
from enum import Enum
from typing import List

import pendulum
from pendulum import DateTime

from .exceptions import ValidationError


@dataclass(frozen=True)
class TimeRange:
    """
    Represents an immutable half-open time range ``[start, end)``.

    Invariant: start must be before end.
    """
    start: DateTime
    end: DateTime

    def __post_init__(self):
        if self.start >= self.end:
            raise ValidationError(f"Start time {self.start} must be before end time {self.end}")

    @classmethod
    def for_day(cls, day: date, timezone: str) -> "TimeRange":
        """Return the range covering a whole calendar day in ``timezone``."""
        start = pendulum.datetime(day.year, day.month, day.day, tz=timezone)
        return cls(start=start, end=start.add(days=1))

    def duration_minutes(self) -> int:
        """Return the duration in minutes."""
        return int((self.end - self.start).total_seconds() / 60)

    def overlaps(self, other: "TimeRange") -> bool:
        """Check if this range overlaps with another. Touching ranges do not."""
        return self.start < other.end and other.start < self.end

    def contains(self, instant: DateTime) -> bool:
        """Check if ``instant`` falls inside the range (end excluded)."""
        return self.start <= instant < self.end

    def __str__(self) -> str:
        return f"{self.start.format('DD.MM.YYYY HH:mm')} - {self.end.format('HH:mm')}"


def overlaps(a: TimeRange, b: TimeRange) -> bool:
    return a.overlaps(b)


def contains(interval: TimeRange, instant: DateTime) -> bool:
    return interval.contains(instant)


class BookingStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"

    @property
    def is_active(self) -> bool:
        """Active bookings take part in conflict checks."""
        return self in (BookingStatus.PENDING, BookingStatus.CONFIRMED)


@dataclass(frozen=True)
class Service:
    """A bookable service. Only its duration matters to the engine."""
    id: str
    duration_minutes: int
    name: str = ""
    price: float | None = None

    def __post_init__(self):
        if self.duration_minutes <= 0:
            raise ValidationError(
                f"Service {self.id} must have a positive duration, got {self.duration_minutes}"
            )


@dataclass(frozen=True)
class Booking:
    """
    A reservation of a resource's time by a subject for a service.

    Bookings are values: status changes produce a new instance via
    :meth:`with_status`.
    """
    id: str
    resource_id: str
    subject_id: str
    service_id: str
    interval: TimeRange
    status: BookingStatus
    created_at: DateTime
    updated_at: DateTime
    cancelled_by: str | None = None

    @property
    def is_active(self) -> bool:
        return self.status.is_active

    def with_status(self, status: BookingStatus, at: DateTime, **changes) -> "Booking":
        return replace(self, status=status, updated_at=at, **changes)

    def to_dict(self) -> dict:
        """Serialize with ISO-8601 timestamps."""
        return {
            "id": self.id,
            "resourceId": self.resource_id,
            "subjectId": self.subject_id,
            "serviceId": self.service_id,
            "start": self.interval.start.to_iso8601_string(),
            "end": self.interval.end.to_iso8601_string(),
            "status": self.status.value,
            "createdAt": self.created_at.to_iso8601_string(),
            "updatedAt": self.updated_at.to_iso8601_string(),
            "cancelledBy": self.cancelled_by,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Booking":
        try:
            return cls(
                id=data["id"],
                resource_id=data["resourceId"],
                subject_id=data["subjectId"],
                service_id=data["serviceId"],
                interval=TimeRange(
                    start=pendulum.parse(data["start"]),
                    end=pendulum.parse(data["end"]),
                ),
                status=BookingStatus(data["status"]),
                created_at=pendulum.parse(data["createdAt"]),
                updated_at=pendulum.parse(data["updatedAt"]),
                cancelled_by=data.get("cancelledBy"),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise ValidationError(f"Malformed booking record: {exc}") from exc


@dataclass
class OperatingWindow:
    """
    Configuration for the hours a resource can be booked.

    Slots are ``step_minutes`` wide regardless of the service duration.
    """
    open_hour: int = 9
    close_hour: int = 17
    step_minutes: int = 60
    exclude_weekdays: List[int] = field(default_factory=list)  # 0=Monday, 6=Sunday
    timezone: str = "Europe/Berlin"

    def __post_init__(self):
        if self.step_minutes <= 0:
            raise ValidationError(f"step_minutes must be positive, got {self.step_minutes}")

    def is_working_day(self, day: date) -> bool:
        """Check if a given day is open for bookings."""
        return day.weekday() not in self.exclude_weekdays

    def bounds_for_day(self, day: date) -> tuple[DateTime, DateTime]:
        """
        Return the opening and closing instants for ``day``.

        The pair is returned even when closing is not after opening; callers
        treat that as an empty window.
        """
        midnight = pendulum.datetime(day.year, day.month, day.day, tz=self.timezone)
        return self._at_hour(midnight, self.open_hour), self._at_hour(midnight, self.close_hour)

    @staticmethod
    def _at_hour(midnight: DateTime, hour: int) -> DateTime:
        if hour >= 24:
            return midnight.add(days=1)
        return midnight.set(hour=hour, minute=0, second=0, microsecond=0)

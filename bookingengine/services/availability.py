"""
Application service for reporting a resource's availability on one day.

The reporter composes the domain-level ``SlotGenerator`` and conflict
predicates with a snapshot read from the ledger. Its output is advisory: the
ledger re-checks every reservation when it is made.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import List, Protocol, Tuple

import pendulum
from pendulum import DateTime

from ..domain.catalog import ServiceCatalog
from ..domain.conflicts import has_conflict, is_held_by_subject
from ..domain.exceptions import ValidationError
from ..domain.models import Booking, BookingStatus, TimeRange
from ..domain.slot_generator import SlotGenerator
from ..domain.status import derive_display_status


class ActiveBookingSource(Protocol):
    """The read side of the ledger needed by the reporter."""

    def list_active(self, resource_id: str, day_range: TimeRange) -> List[Booking]:
        """Return active bookings of the resource overlapping ``day_range``."""


@dataclass
class AvailabilityReport:
    """Slots of one day partitioned for a given subject."""
    resource_id: str
    service_id: str
    subject_id: str
    day: date
    available_slots: List[TimeRange] = field(default_factory=list)
    reserved_slots: List[TimeRange] = field(default_factory=list)
    own_slots: List[TimeRange] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Serialize slot starts as ISO-8601 strings."""
        return {
            "resourceId": self.resource_id,
            "serviceId": self.service_id,
            "subjectId": self.subject_id,
            "date": self.day.isoformat(),
            "availableSlots": [slot.start.to_iso8601_string() for slot in self.available_slots],
            "reservedSlots": [slot.start.to_iso8601_string() for slot in self.reserved_slots],
            "ownSlots": [slot.start.to_iso8601_string() for slot in self.own_slots],
        }


class AvailabilityReporter:
    """
    Orchestrates slot generation and conflict detection for a day.

    Algorithm:
    1. Check the required ids and resolve the service
    2. Generate the day's candidate slots
    3. Fetch the resource's active bookings for the day
    4. A slot overlapping any active booking is reserved; if the subject
       holds it for this service it is also listed as one of their own
    5. Every other slot is available
    """

    def __init__(
        self,
        ledger: ActiveBookingSource,
        catalog: ServiceCatalog,
        slot_generator: SlotGenerator,
    ) -> None:
        self._ledger = ledger
        self._catalog = catalog
        self._slot_generator = slot_generator

    @property
    def timezone(self) -> str:
        return self._slot_generator.window.timezone

    def get_availability(
        self,
        *,
        resource_id: str,
        service_id: str,
        subject_id: str,
        day: date,
    ) -> AvailabilityReport:
        """
        Build the availability report for ``resource_id`` on ``day``.

        Raises:
            UnknownServiceError: If ``service_id`` is not in the catalog
            ValidationError: If an id or ``day`` is missing, or ``day`` is
                outside the operating window
        """
        for name, value in (("resource_id", resource_id), ("service_id", service_id), ("subject_id", subject_id)):
            if not value:
                raise ValidationError(f"{name} is required")
        if day is None:
            raise ValidationError("day is required")

        self._catalog.get(service_id)

        slots = self._slot_generator.generate(day)
        bookings = self._ledger.list_active(resource_id, TimeRange.for_day(day, self.timezone))

        report = AvailabilityReport(
            resource_id=resource_id,
            service_id=service_id,
            subject_id=subject_id,
            day=day,
        )

        for slot in slots:
            if has_conflict(resource_id, slot, bookings):
                report.reserved_slots.append(slot)
                if is_held_by_subject(subject_id, service_id, slot, bookings):
                    report.own_slots.append(slot)
            else:
                report.available_slots.append(slot)

        return report

    def describe_bookings(
        self,
        bookings: List[Booking],
        now: DateTime | None = None,
    ) -> List[Tuple[Booking, BookingStatus]]:
        """Pair each booking with the status to display at ``now``."""
        now = now or pendulum.now(self.timezone)
        return [(booking, derive_display_status(booking, now)) for booking in bookings]

"""
Shared fixtures for engine tests.
"""

import itertools

import pytest

from bookingengine.adapters.memory_repository import InMemoryBookingRepository
from bookingengine.domain.catalog import ServiceCatalog
from bookingengine.domain.models import OperatingWindow, Service
from bookingengine.domain.slot_generator import SlotGenerator
from bookingengine.services.availability import AvailabilityReporter
from bookingengine.services.ledger import BookingLedger

from .support import FIXED_NOW, TZ


@pytest.fixture
def repository() -> InMemoryBookingRepository:
    return InMemoryBookingRepository()


@pytest.fixture
def ledger(repository) -> BookingLedger:
    counter = itertools.count(1)
    return BookingLedger(
        repository=repository,
        clock=lambda: FIXED_NOW,
        id_factory=lambda: f"b-{next(counter)}",
        timezone=TZ,
    )


@pytest.fixture
def catalog() -> ServiceCatalog:
    return ServiceCatalog(
        [
            Service(id="haircut", name="Haircut", duration_minutes=30, price=25.0),
            Service(id="colour", name="Colour", duration_minutes=120, price=80.0),
        ]
    )


@pytest.fixture
def reporter(ledger, catalog) -> AvailabilityReporter:
    return AvailabilityReporter(
        ledger=ledger,
        catalog=catalog,
        slot_generator=SlotGenerator(OperatingWindow(exclude_weekdays=[6], timezone=TZ)),
    )

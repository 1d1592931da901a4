"""
Service layer that guards the booking write path and builds availability.
"""

from .availability import ActiveBookingSource, AvailabilityReport, AvailabilityReporter
from .ledger import BookingLedger, BookingRepository

__all__ = [
    "ActiveBookingSource",
    "AvailabilityReport",
    "AvailabilityReporter",
    "BookingLedger",
    "BookingRepository",
]

"""
Domain layer - Pure scheduling logic without external dependencies.
"""

from .catalog import ServiceCatalog
from .conflicts import find_conflicts, has_conflict, is_held_by_subject
from .models import Booking, BookingStatus, OperatingWindow, Service, TimeRange, contains, overlaps
from .slot_generator import SlotGenerator, SlotSequence
from .status import derive_display_status

__all__ = [
    "Booking",
    "BookingStatus",
    "OperatingWindow",
    "Service",
    "ServiceCatalog",
    "SlotGenerator",
    "SlotSequence",
    "TimeRange",
    "contains",
    "derive_display_status",
    "find_conflicts",
    "has_conflict",
    "is_held_by_subject",
    "overlaps",
]

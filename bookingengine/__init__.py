"""
Booking scheduling engine: intervals, slots, conflict detection and an
atomic booking ledger.
"""

__version__ = "0.1.0"

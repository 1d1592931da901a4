"""
Adapters layer - Storage backends the ledger writes through to.
"""

from .json_repository import JsonBookingRepository
from .memory_repository import InMemoryBookingRepository

__all__ = ["InMemoryBookingRepository", "JsonBookingRepository"]

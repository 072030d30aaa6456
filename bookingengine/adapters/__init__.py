"""
Adapters layer - Booking persistence.
"""

from .booking_store import DateLockRegistry, InMemoryBookingStore, JsonFileBookingStore

__all__ = ["DateLockRegistry", "InMemoryBookingStore", "JsonFileBookingStore"]

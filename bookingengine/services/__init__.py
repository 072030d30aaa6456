"""
Service layer helpers that orchestrate adapters and domain logic.
"""

from .booking_ledger import BookingLedger, BookingStoreProtocol, StatusTransition
from .booking_service import BookingService
from .events import BookingCreated, BookingStatusChanged, EventBus

__all__ = [
    "BookingCreated",
    "BookingLedger",
    "BookingService",
    "BookingStatusChanged",
    "BookingStoreProtocol",
    "EventBus",
    "StatusTransition",
]

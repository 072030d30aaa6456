"""
Domain layer - Pure business logic without external dependencies.
"""

from .availability import AvailabilityCalendar, WallClockRange, WeeklyAvailability
from .catalog import AppointmentTypeCatalog
from .conflicts import ConflictChecker
from .models import (
    AppointmentType,
    Booking,
    BookingStatus,
    Buffers,
    CustomerInfo,
    DaySlots,
    TimeRange,
    TimeSlot,
)
from .slot_generator import SlotGenerator
from .window_policy import BookingWindowPolicy

__all__ = [
    "AppointmentType",
    "AppointmentTypeCatalog",
    "AvailabilityCalendar",
    "Booking",
    "BookingStatus",
    "BookingWindowPolicy",
    "Buffers",
    "ConflictChecker",
    "CustomerInfo",
    "DaySlots",
    "SlotGenerator",
    "TimeRange",
    "TimeSlot",
    "WallClockRange",
    "WeeklyAvailability",
]

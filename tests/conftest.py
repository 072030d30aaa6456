"""
Shared fixtures for the booking engine tests.
"""

from typing import Tuple

import pendulum
import pytest

from bookingengine.domain.availability import AvailabilityCalendar, WallClockRange, WeeklyAvailability
from bookingengine.domain.catalog import AppointmentTypeCatalog
from bookingengine.domain.models import (
    AppointmentType,
    Booking,
    BookingStatus,
    Buffers,
    CustomerInfo,
)
from bookingengine.domain.window_policy import BookingWindowPolicy

TZ = "Europe/Berlin"
MONDAY = pendulum.date(2024, 11, 25)
# Well before MONDAY, so the booking window never hides a slot by accident
EARLY_NOW = pendulum.datetime(2024, 11, 20, 0, 0, tz="UTC")


def local(text: str) -> pendulum.DateTime:
    """Parse a provider-local wall-clock time such as ``2024-11-25 09:30``."""
    return pendulum.parse(text, tz=TZ)


def make_booking(
    start: str,
    end: str,
    buffers: Tuple[int, int] = (0, 0),
    status: BookingStatus = BookingStatus.CONFIRMED,
    booking_id: str = "existing",
) -> Booking:
    return Booking(
        id=booking_id,
        appointment_type_id="pickup",
        appointment_type_name="Pickup Appointment",
        start=local(start),
        end=local(end),
        buffers=Buffers(before_minutes=buffers[0], after_minutes=buffers[1]),
        status=status,
        customer=CustomerInfo(name="Existing Customer", email="existing@example.com"),
        booked_at=EARLY_NOW,
        updated_at=EARLY_NOW,
    )


@pytest.fixture
def catalog() -> AppointmentTypeCatalog:
    return AppointmentTypeCatalog([
        AppointmentType(id="consultation", name="General Consultation", duration_minutes=30, order=2),
        AppointmentType(
            id="pickup",
            name="Pickup Appointment",
            duration_minutes=30,
            buffers=Buffers(before_minutes=0, after_minutes=15),
            order=1,
        ),
        AppointmentType(
            id="puppy-visit",
            name="Puppy Visit",
            duration_minutes=60,
            buffers=Buffers(before_minutes=10, after_minutes=15),
            order=0,
        ),
        AppointmentType(id="kennel-tour", name="Kennel Tour", duration_minutes=45, enabled=False),
    ])


@pytest.fixture
def calendar() -> AvailabilityCalendar:
    weekly = WeeklyAvailability.from_mapping({
        0: [WallClockRange.parse("09:00", "12:00")],
        1: [WallClockRange.parse("09:00", "12:00"), WallClockRange.parse("13:00", "17:00")],
    })
    return AvailabilityCalendar(weekly, TZ)


@pytest.fixture
def window_policy() -> BookingWindowPolicy:
    return BookingWindowPolicy(
        min_advance_minutes=0,
        max_advance_days=30,
        slot_interval_minutes=30,
        timezone=TZ,
    )

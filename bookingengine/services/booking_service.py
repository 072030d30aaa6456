"""
Application service exposing the booking engine's operations.

The service wires the domain components from an immutable
``SchedulingSettings`` value, gates every request on the booking page being
enabled, translates provider-local dates and times to instants, and publishes
booking events after each committed write. The actual availability
calculation lives in the domain-level ``SlotGenerator`` and the atomic
admission logic in ``BookingLedger``.
"""

from __future__ import annotations

import logging
from datetime import date as date_type
from datetime import datetime
from typing import Callable, List, Optional, Union

import pendulum
from pendulum import Date, DateTime

from ..config import SchedulingSettings
from ..domain.exceptions import SettingsUnavailable, ValidationError
from ..domain.models import AppointmentType, Booking, BookingStatus, DaySlots, TimeSlot
from ..domain.slot_generator import SlotGenerator
from .booking_ledger import BookingLedger, BookingStoreProtocol, StatusTransition, require_customer
from .events import BookingCreated, BookingStatusChanged, EventBus

logger = logging.getLogger(__name__)

Clock = Callable[[], DateTime]
DateLike = Union[str, date_type]
InstantLike = Union[str, datetime]


def _utc_now() -> DateTime:
    return pendulum.now("UTC")


class BookingService:
    """
    Orchestrates slot listing, booking creation and status changes.

    The clock is injectable so tests can pin ``now``.
    """

    def __init__(
        self,
        settings: SchedulingSettings,
        store: BookingStoreProtocol,
        event_bus: Optional[EventBus] = None,
        clock: Clock = _utc_now,
    ) -> None:
        self.settings = settings
        self.event_bus = event_bus or EventBus()
        self._clock = clock

        self.catalog = settings.build_catalog()
        self.calendar = settings.build_calendar()
        self.window_policy = settings.build_window_policy()
        self.slot_generator = SlotGenerator(
            catalog=self.catalog,
            calendar=self.calendar,
            window_policy=self.window_policy,
        )
        self.ledger = BookingLedger(
            store=store,
            catalog=self.catalog,
            window_policy=self.window_policy,
            conflict_checker=self.slot_generator.conflict_checker,
        )

    @property
    def timezone(self) -> str:
        return self.settings.timezone

    def list_appointment_types(self) -> List[AppointmentType]:
        return self.catalog.list_enabled()

    def list_available_slots(self, date: DateLike, appointment_type_id: str) -> List[TimeSlot]:
        """
        Bookable slots for one provider-local date.

        Slot starts are in the provider's time zone.
        """
        self._ensure_bookable()
        day = self._parse_date(date)
        return self._slots_for_day(day, appointment_type_id, self._clock())

    def list_available_slots_between(
        self,
        start_date: DateLike,
        end_date: DateLike,
        appointment_type_id: str,
    ) -> List[DaySlots]:
        """
        Bookable slots for each date in ``[start_date, end_date]``.

        Dates without any slot are omitted. All days are evaluated against
        the same ``now``.
        """
        self._ensure_bookable()
        first = self._parse_date(start_date)
        last = self._parse_date(end_date)
        if last < first:
            raise ValidationError(f"End date {last.isoformat()} is before start date {first.isoformat()}")

        now = self._clock()
        result: List[DaySlots] = []
        current = first
        while current <= last:
            slots = self._slots_for_day(current, appointment_type_id, now)
            if slots:
                result.append(DaySlots(date=current, slots=slots))
            current = current.add(days=1)

        return result

    def create_booking(
        self,
        appointment_type_id: str,
        start_time: InstantLike,
        name: str,
        email: str,
        phone: str = "",
        notes: Optional[str] = None,
    ) -> Booking:
        """
        Book one slot for a customer.

        ``start_time`` is either an aware DateTime or an ISO string; strings
        without an offset are read as provider-local wall-clock time.

        Raises:
            SettingsUnavailable: If booking is disabled or unconfigured
            ValidationError: For unknown/disabled types, malformed input or a
                start outside the provider's open hours
            WindowPolicyViolation: If the start is too soon or too far ahead
            SlotNoLongerAvailable: If the slot was taken in the meantime
        """
        self._ensure_bookable()
        customer = require_customer(name, email, phone)
        appointment_type = self.catalog.require_bookable(appointment_type_id)
        start = self._parse_instant(start_time)

        if not self.slot_generator.fits_open_hours(start, appointment_type):
            raise ValidationError(
                f"{start.in_timezone(self.timezone).format('YYYY-MM-DD HH:mm')} is outside "
                f"the provider's open hours for '{appointment_type.id}'"
            )

        booking = self.ledger.create_booking(
            appointment_type_id=appointment_type.id,
            start=start,
            customer=customer,
            now=self._clock(),
            notes=(notes or "").strip(),
        )
        self.event_bus.publish(BookingCreated(booking_id=booking.id))
        return booking

    def confirm(self, booking_id: str) -> Booking:
        """Confirm a booking; confirming twice is a no-op."""
        return self._publish_transition(self.ledger.confirm(booking_id, self._clock()))

    def cancel(self, booking_id: str, reason: Optional[str] = None) -> Booking:
        """Cancel a booking; cancelling twice is a no-op."""
        return self._publish_transition(
            self.ledger.cancel(booking_id, self._clock(), (reason or "").strip())
        )

    def get_booking(self, booking_id: str) -> Booking:
        return self.ledger.get(booking_id)

    def list_bookings(self, status: Optional[BookingStatus] = None) -> List[Booking]:
        return self.ledger.list_bookings(status)

    def _slots_for_day(self, day: Date, appointment_type_id: str, now: DateTime) -> List[TimeSlot]:
        appointment_type = self.catalog.require_bookable(appointment_type_id)
        window = self.slot_generator.snapshot_window(day, appointment_type)
        if window is None:
            return []

        snapshot = self.ledger.active_bookings_between(window.start, window.end)
        logger.debug(
            "Listing %s slots for %s against %d active bookings",
            appointment_type.id,
            day.isoformat(),
            len(snapshot),
        )
        return self.slot_generator.list_available_slots(day, appointment_type.id, now, snapshot)

    def _publish_transition(self, transition: StatusTransition) -> Booking:
        if transition.changed:
            self.event_bus.publish(
                BookingStatusChanged(
                    booking_id=transition.booking.id,
                    old_status=transition.previous_status,
                    new_status=transition.booking.status,
                )
            )
        return transition.booking

    def _ensure_bookable(self) -> None:
        if not self.settings.booking_page_enabled:
            raise SettingsUnavailable("Online booking is disabled for this provider")
        if not self.calendar.has_any_availability():
            raise SettingsUnavailable("No weekly availability is configured")

    def _parse_date(self, value: DateLike) -> Date:
        if isinstance(value, date_type):
            return pendulum.date(value.year, value.month, value.day)
        try:
            return pendulum.from_format(value.strip(), "YYYY-MM-DD").date()
        except (AttributeError, ValueError) as exc:
            raise ValidationError(f"Invalid date {value!r}, expected YYYY-MM-DD") from exc

    def _parse_instant(self, value: InstantLike) -> DateTime:
        if isinstance(value, DateTime):
            return value
        if isinstance(value, datetime):
            return pendulum.instance(value, tz=self.timezone)
        try:
            parsed = pendulum.parse(value.strip(), tz=self.timezone)
        except (AttributeError, ValueError) as exc:
            raise ValidationError(f"Invalid start time {value!r}") from exc
        if not isinstance(parsed, DateTime):
            raise ValidationError(f"Start time {value!r} must include a time of day")
        return parsed

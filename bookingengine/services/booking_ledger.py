"""
The booking ledger: durable bookings plus atomic admission of new ones.

``create_booking`` is the only contention-sensitive operation in the engine.
It re-validates the request under the store's per-date locks so that two
overlapping requests can never both commit. Status transitions check and
write the stored record in one store update, so a cancelled booking can
never be confirmed by a request that read it earlier.
"""

from __future__ import annotations

import logging
import uuid
from contextlib import AbstractContextManager
from dataclasses import dataclass
from typing import Callable, List, Optional, Protocol, Tuple

from pendulum import DateTime

from ..domain.catalog import AppointmentTypeCatalog
from ..domain.conflicts import ConflictChecker
from ..domain.exceptions import (
    BookingNotFound,
    InvalidStatusTransition,
    SlotNoLongerAvailable,
    ValidationError,
)
from ..domain.models import Booking, BookingStatus, CustomerInfo, TimeRange
from ..domain.window_policy import BookingWindowPolicy

logger = logging.getLogger(__name__)


class BookingStoreProtocol(Protocol):
    """Protocol describing the persistence behaviour needed by the ledger."""

    def locked(self, time_range: TimeRange) -> AbstractContextManager:
        """Exclusive section for writers touching the same dates."""

    def get(self, booking_id: str) -> Optional[Booking]:
        """Return a booking by id."""

    def list_all(self) -> List[Booking]:
        """Return every booking, including cancelled ones."""

    def active_overlapping(self, start: DateTime, end: DateTime) -> List[Booking]:
        """Return active bookings whose occupied range overlaps the window."""

    def add(self, booking: Booking) -> None:
        """Insert a new booking."""

    def update(
        self,
        booking_id: str,
        change: Callable[[Booking], Booking],
    ) -> Tuple[Booking, Booking]:
        """Atomically replace a booking with ``change(current)``; returns ``(before, after)``."""


@dataclass(frozen=True)
class StatusTransition:
    """Outcome of a confirm/cancel call."""
    booking: Booking
    previous_status: BookingStatus

    @property
    def changed(self) -> bool:
        return self.booking.status is not self.previous_status


class BookingLedger:
    """
    Owns booking records and the re-check-then-insert transaction.
    """

    def __init__(
        self,
        store: BookingStoreProtocol,
        catalog: AppointmentTypeCatalog,
        window_policy: BookingWindowPolicy,
        conflict_checker: Optional[ConflictChecker] = None,
    ) -> None:
        self._store = store
        self._catalog = catalog
        self._window_policy = window_policy
        self._conflict_checker = conflict_checker or ConflictChecker()

    def create_booking(
        self,
        appointment_type_id: str,
        start: DateTime,
        customer: CustomerInfo,
        now: DateTime,
        notes: str = "",
    ) -> Booking:
        """
        Atomically validate and insert a new pending booking.

        Args:
            appointment_type_id: Type to book
            start: Requested start instant
            customer: Contact details of the person booking
            now: Current instant; the window is re-checked against it
            notes: Free-text notes from the customer

        Returns:
            The stored Booking, status ``pending``

        Raises:
            ValidationError: If the type is unknown or disabled
            WindowPolicyViolation: If the start is too soon or too far ahead
            SlotNoLongerAvailable: If an active booking now overlaps the slot
        """
        appointment_type = self._catalog.require_bookable(appointment_type_id)
        start = start.in_timezone("UTC")
        end = start.add(minutes=appointment_type.duration_minutes)
        occupied = TimeRange(start=start, end=end).inflate(
            appointment_type.buffers.before_minutes,
            appointment_type.buffers.after_minutes,
        )

        with self._store.locked(occupied):
            self._window_policy.validate_start(start, now)

            live_bookings = self._store.active_overlapping(occupied.start, occupied.end)
            conflicts = self._conflict_checker.find_conflicts(
                start,
                end,
                appointment_type.buffers,
                live_bookings,
            )
            if conflicts:
                logger.info(
                    "Rejected %s at %s: overlaps %s",
                    appointment_type.id,
                    start.to_iso8601_string(),
                    ", ".join(booking.id for booking in conflicts),
                )
                raise SlotNoLongerAvailable(
                    f"The slot at {start.to_iso8601_string()} is no longer available"
                )

            booking = Booking(
                id=uuid.uuid4().hex,
                appointment_type_id=appointment_type.id,
                appointment_type_name=appointment_type.name,
                start=start,
                end=end,
                buffers=appointment_type.buffers,
                status=BookingStatus.PENDING,
                customer=customer,
                notes=notes,
                booked_at=now,
                updated_at=now,
            )
            self._store.add(booking)

        logger.info(
            "Created booking %s for %s at %s",
            booking.id,
            appointment_type.id,
            start.to_iso8601_string(),
        )
        return booking

    def confirm(self, booking_id: str, now: DateTime) -> StatusTransition:
        """
        Move a pending booking to confirmed; a confirmed booking is left as is.

        Raises:
            BookingNotFound: If the id is unknown
            InvalidStatusTransition: If the booking was cancelled
        """
        def apply(booking: Booking) -> Booking:
            if booking.status is BookingStatus.CONFIRMED:
                return booking
            if booking.status is BookingStatus.CANCELLED:
                raise InvalidStatusTransition(
                    f"Booking {booking_id} is cancelled and cannot be confirmed"
                )
            return booking.with_status(BookingStatus.CONFIRMED, now)

        return self._transition(booking_id, apply)

    def cancel(self, booking_id: str, now: DateTime, reason: str = "") -> StatusTransition:
        """
        Cancel a pending or confirmed booking; a cancelled booking is left as is.

        Raises:
            BookingNotFound: If the id is unknown
        """
        def apply(booking: Booking) -> Booking:
            if booking.status is BookingStatus.CANCELLED:
                return booking
            return booking.with_status(BookingStatus.CANCELLED, now, reason)

        return self._transition(booking_id, apply)

    def get(self, booking_id: str) -> Booking:
        booking = self._store.get(booking_id)
        if booking is None:
            raise BookingNotFound(f"Unknown booking: '{booking_id}'")
        return booking

    def list_bookings(self, status: Optional[BookingStatus] = None) -> List[Booking]:
        """All bookings, newest start first, optionally filtered by status."""
        bookings = [
            booking for booking in self._store.list_all()
            if status is None or booking.status is status
        ]
        return sorted(bookings, key=lambda booking: booking.start, reverse=True)

    def active_bookings_between(self, start: DateTime, end: DateTime) -> List[Booking]:
        """Point-in-time snapshot of bookings occupying time in ``[start, end)``."""
        return sorted(
            self._store.active_overlapping(start, end),
            key=lambda booking: booking.start,
        )

    def _transition(self, booking_id: str, apply: Callable[[Booking], Booking]) -> StatusTransition:
        # The status check runs inside the store's update so it sees the
        # record that is actually overwritten.
        try:
            before, after = self._store.update(booking_id, apply)
        except KeyError:
            raise BookingNotFound(f"Unknown booking: '{booking_id}'") from None

        transition = StatusTransition(booking=after, previous_status=before.status)
        if transition.changed:
            logger.info(
                "Booking %s: %s -> %s",
                booking_id,
                before.status.value,
                after.status.value,
            )
        return transition


def require_customer(name: str, email: str, phone: str = "") -> CustomerInfo:
    """
    Build validated customer details.

    Raises:
        ValidationError: If name or email is missing or the email is malformed
    """
    name = (name or "").strip()
    email = (email or "").strip().lower()

    if not name:
        raise ValidationError("Customer name is required")
    if "@" not in email or email.startswith("@") or email.endswith("@"):
        raise ValidationError(f"Invalid customer email: '{email}'")

    return CustomerInfo(name=name, email=email, phone=(phone or "").strip())

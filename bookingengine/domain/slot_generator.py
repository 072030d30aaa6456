"""
Core business logic for enumerating bookable slot starts.

Pure domain logic without any external dependencies (no database, no I/O):
the caller passes in a snapshot of the provider's bookings.
"""

from typing import Iterable, List, Optional

from pendulum import Date, DateTime

from .availability import AvailabilityCalendar
from .catalog import AppointmentTypeCatalog
from .conflicts import ConflictChecker
from .models import AppointmentType, Booking, TimeRange, TimeSlot
from .window_policy import BookingWindowPolicy


class SlotGenerator:
    """
    Calculates available slots for one date and appointment type.

    Algorithm:
    1. Resolve the appointment type (must exist and be enabled)
    2. Resolve the date's open hours to absolute ranges
    3. Walk each range on a fixed grid of ``slot_interval_minutes`` starting
       at the range start, keeping starts whose appointment fits in the range
    4. Drop starts outside the booking window and starts that conflict with
       an existing booking
    5. Return the remaining starts in chronological order

    The cursor always advances by the grid interval; it never snaps to the
    first free instant after a conflict.
    """

    def __init__(
        self,
        catalog: AppointmentTypeCatalog,
        calendar: AvailabilityCalendar,
        window_policy: BookingWindowPolicy,
        conflict_checker: Optional[ConflictChecker] = None,
    ):
        self.catalog = catalog
        self.calendar = calendar
        self.window_policy = window_policy
        self.conflict_checker = conflict_checker or ConflictChecker()

    def list_available_slots(
        self,
        date: Date,
        appointment_type_id: str,
        now: DateTime,
        existing_bookings: Iterable[Booking],
    ) -> List[TimeSlot]:
        """
        Find all bookable slots on ``date``.

        Args:
            date: Calendar date on the provider's calendar
            appointment_type_id: Type to be booked
            now: Reference instant for the booking window
            existing_bookings: Snapshot of the provider's bookings

        Returns:
            TimeSlot objects with starts in the provider's time zone

        Raises:
            ValidationError: If the appointment type is unknown or disabled
        """
        appointment_type = self.catalog.require_bookable(appointment_type_id)
        ranges = self.calendar.ranges_for_date(date)

        if not ranges:
            return []

        bookings = [booking for booking in existing_bookings if booking.is_active]
        slots: List[TimeSlot] = []

        for open_range in ranges:
            for slot_range in self._grid_candidates(open_range, appointment_type):
                if not self.window_policy.is_allowed(slot_range.start, now):
                    continue

                if self.conflict_checker.has_conflict(
                    slot_range.start,
                    slot_range.end,
                    appointment_type.buffers,
                    bookings,
                ):
                    continue

                slots.append(
                    TimeSlot(
                        time_range=TimeRange(
                            start=slot_range.start.in_timezone(self.calendar.timezone),
                            end=slot_range.end.in_timezone(self.calendar.timezone),
                        ),
                        appointment_type_id=appointment_type.id,
                    )
                )

        return sorted(slots, key=lambda slot: slot.start)

    def snapshot_window(self, date: Date, appointment_type: AppointmentType) -> Optional[TimeRange]:
        """
        Instant window whose bookings can affect slots on ``date``.

        Covers the day's open hours widened by the type's buffers. Returns
        None when the date has no open hours.
        """
        ranges = self.calendar.ranges_for_date(date)
        if not ranges:
            return None

        return TimeRange(
            start=min(r.start for r in ranges),
            end=max(r.end for r in ranges),
        ).inflate(
            appointment_type.buffers.before_minutes,
            appointment_type.buffers.after_minutes,
        )

    def fits_open_hours(self, start: DateTime, appointment_type: AppointmentType) -> bool:
        """Check whether an appointment starting at ``start`` lies within open hours."""
        end = start.add(minutes=appointment_type.duration_minutes)
        local_date = start.in_timezone(self.calendar.timezone).date()

        return any(
            open_range.start <= start and end <= open_range.end
            for open_range in self.calendar.ranges_for_date(local_date)
        )

    def _grid_candidates(
        self,
        open_range: TimeRange,
        appointment_type: AppointmentType,
    ) -> List[TimeRange]:
        """
        Grid-aligned appointment ranges that fit inside ``open_range``.

        Example:
        Open: 09:00 - 10:30, duration 30, interval 30
        Result: [09:00-09:30, 09:30-10:00, 10:00-10:30]
        """
        candidates: List[TimeRange] = []
        cursor = open_range.start

        while cursor.add(minutes=appointment_type.duration_minutes) <= open_range.end:
            candidates.append(
                TimeRange(
                    start=cursor,
                    end=cursor.add(minutes=appointment_type.duration_minutes),
                )
            )
            cursor = cursor.add(minutes=self.window_policy.slot_interval_minutes)

        return candidates

"""
Buffer-aware overlap detection between a candidate slot and existing bookings.
"""

from typing import Iterable, List

from pendulum import DateTime

from .models import Booking, Buffers, TimeRange


class ConflictChecker:
    """
    Pure interval test, no I/O.

    Both sides are inflated by their own buffers: the candidate by the buffers
    of the type being booked, each booking by the buffers stored on it when it
    was created. Intervals are half-open, so back-to-back occupied ranges do
    not conflict. Cancelled bookings never conflict.
    """

    def find_conflicts(
        self,
        candidate_start: DateTime,
        candidate_end: DateTime,
        candidate_buffers: Buffers,
        existing_bookings: Iterable[Booking],
    ) -> List[Booking]:
        """Return the active bookings whose occupied range overlaps the candidate's."""
        candidate = TimeRange(start=candidate_start, end=candidate_end).inflate(
            candidate_buffers.before_minutes,
            candidate_buffers.after_minutes,
        )

        return [
            booking for booking in existing_bookings
            if booking.is_active and candidate.overlaps(booking.occupied_range())
        ]

    def has_conflict(
        self,
        candidate_start: DateTime,
        candidate_end: DateTime,
        candidate_buffers: Buffers,
        existing_bookings: Iterable[Booking],
    ) -> bool:
        return bool(
            self.find_conflicts(
                candidate_start,
                candidate_end,
                candidate_buffers,
                existing_bookings,
            )
        )

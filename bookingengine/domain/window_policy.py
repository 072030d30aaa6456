"""
How soon and how far ahead a booking may be placed.
"""

from dataclasses import dataclass

from pendulum import DateTime

from .exceptions import WindowPolicyViolation


@dataclass(frozen=True)
class BookingWindowPolicy:
    """
    Booking window constraints for one provider.

    ``slot_interval_minutes`` is the fixed grid on which candidate slot starts
    are generated, independent of any appointment's duration.
    """
    min_advance_minutes: int
    max_advance_days: int
    slot_interval_minutes: int
    timezone: str = "UTC"

    def __post_init__(self):
        if self.min_advance_minutes < 0:
            raise ValueError("min_advance_minutes must not be negative")
        if self.max_advance_days < 0:
            raise ValueError("max_advance_days must not be negative")
        if self.slot_interval_minutes <= 0:
            raise ValueError("slot_interval_minutes must be greater than zero")

    def earliest_start(self, now: DateTime) -> DateTime:
        return now.add(minutes=self.min_advance_minutes)

    def latest_date(self, now: DateTime):
        """Last calendar date (provider zone) on which a booking may start."""
        return now.in_timezone(self.timezone).date().add(days=self.max_advance_days)

    def validate_start(self, candidate_start: DateTime, now: DateTime) -> None:
        """
        Check a candidate start against the window.

        A start exactly at ``now + min_advance`` is allowed.

        Raises:
            WindowPolicyViolation: If the start is too soon or too far ahead
        """
        earliest = self.earliest_start(now)
        if candidate_start < earliest:
            raise WindowPolicyViolation(
                f"Start {candidate_start.to_iso8601_string()} is too soon; "
                f"bookings must start at or after {earliest.to_iso8601_string()}"
            )

        candidate_date = candidate_start.in_timezone(self.timezone).date()
        latest = self.latest_date(now)
        if candidate_date > latest:
            raise WindowPolicyViolation(
                f"Start date {candidate_date.isoformat()} is too far in advance; "
                f"bookings are open until {latest.isoformat()}"
            )

    def is_allowed(self, candidate_start: DateTime, now: DateTime) -> bool:
        try:
            self.validate_start(candidate_start, now)
        except WindowPolicyViolation:
            return False
        return True

"""
Domain models for time ranges, appointment types and bookings.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Optional

import pendulum
from pendulum import Date, DateTime


@dataclass(frozen=True)
class TimeRange:
    """
    Represents an immutable half-open time range ``[start, end)``.

    Invariant: start must be before end.
    """
    start: DateTime
    end: DateTime

    def __post_init__(self):
        if self.start >= self.end:
            raise ValueError(f"Start time {self.start} must be before end time {self.end}")

    def duration_minutes(self) -> int:
        """Return the duration in minutes."""
        return int((self.end - self.start).total_seconds() / 60)

    def overlaps(self, other: "TimeRange") -> bool:
        """Check if this range overlaps with another."""
        return self.start < other.end and other.start < self.end

    def inflate(self, before_minutes: int, after_minutes: int) -> "TimeRange":
        """Return the range widened by the given padding on each side."""
        return TimeRange(
            start=self.start.subtract(minutes=before_minutes),
            end=self.end.add(minutes=after_minutes),
        )

    def covered_dates(self) -> List[Date]:
        """
        UTC calendar dates touched by this range.

        The end is exclusive, so a range ending exactly at midnight does not
        touch the following date.
        """
        first = self.start.in_timezone("UTC").date()
        last = self.end.subtract(microseconds=1).in_timezone("UTC").date()

        dates: List[Date] = []
        current = first
        while current <= last:
            dates.append(current)
            current = current.add(days=1)
        return dates

    def __str__(self) -> str:
        return f"{self.start.format('YYYY-MM-DD HH:mm')} - {self.end.format('HH:mm')}"


@dataclass(frozen=True)
class Buffers:
    """Padding in minutes during which the provider is unavailable."""
    before_minutes: int = 0
    after_minutes: int = 0

    def __post_init__(self):
        if self.before_minutes < 0 or self.after_minutes < 0:
            raise ValueError("Buffers must not be negative")


@dataclass(frozen=True)
class AppointmentType:
    """A bookable service definition."""
    id: str
    name: str
    duration_minutes: int
    buffers: Buffers = field(default_factory=Buffers)
    description: str = ""
    color: str = ""
    enabled: bool = True
    order: int = 0

    def __post_init__(self):
        if self.duration_minutes <= 0:
            raise ValueError(
                f"Appointment type {self.id!r} must have a positive duration, "
                f"got {self.duration_minutes}"
            )


class BookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"

    @property
    def is_active(self) -> bool:
        """Active bookings occupy time on the provider's calendar."""
        return self is not BookingStatus.CANCELLED


@dataclass(frozen=True)
class CustomerInfo:
    """Contact details captured with a booking."""
    name: str
    email: str
    phone: str = ""


@dataclass(frozen=True)
class Booking:
    """
    A booking recorded in the ledger.

    Duration and buffers are copied from the appointment type when the booking
    is created, so later edits to the type never move an existing booking's
    occupied interval.
    """
    id: str
    appointment_type_id: str
    appointment_type_name: str
    start: DateTime
    end: DateTime
    buffers: Buffers
    status: BookingStatus
    customer: CustomerInfo
    booked_at: DateTime
    updated_at: DateTime
    notes: str = ""
    confirmed_at: Optional[DateTime] = None
    cancelled_at: Optional[DateTime] = None
    cancellation_reason: str = ""

    @property
    def is_active(self) -> bool:
        return self.status.is_active

    @property
    def time_range(self) -> TimeRange:
        return TimeRange(start=self.start, end=self.end)

    def occupied_range(self) -> TimeRange:
        """The appointment widened by its own stored buffers."""
        return self.time_range.inflate(
            self.buffers.before_minutes,
            self.buffers.after_minutes,
        )

    def duration_minutes(self) -> int:
        return self.time_range.duration_minutes()

    def with_status(
        self,
        status: BookingStatus,
        now: DateTime,
        reason: str = "",
    ) -> "Booking":
        """Return a copy moved to ``status`` and stamped at ``now``."""
        changes: Dict[str, Any] = {"status": status, "updated_at": now}
        if status is BookingStatus.CONFIRMED:
            changes["confirmed_at"] = now
        elif status is BookingStatus.CANCELLED:
            changes["cancelled_at"] = now
            changes["cancellation_reason"] = reason
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to a JSON-compatible mapping."""
        return {
            "id": self.id,
            "appointmentTypeId": self.appointment_type_id,
            "appointmentTypeName": self.appointment_type_name,
            "startTime": self.start.in_timezone("UTC").to_iso8601_string(),
            "endTime": self.end.in_timezone("UTC").to_iso8601_string(),
            "bufferBefore": self.buffers.before_minutes,
            "bufferAfter": self.buffers.after_minutes,
            "status": self.status.value,
            "customerName": self.customer.name,
            "customerEmail": self.customer.email,
            "customerPhone": self.customer.phone,
            "notes": self.notes,
            "bookedAt": self.booked_at.to_iso8601_string(),
            "updatedAt": self.updated_at.to_iso8601_string(),
            "confirmedAt": _optional_iso(self.confirmed_at),
            "cancelledAt": _optional_iso(self.cancelled_at),
            "cancellationReason": self.cancellation_reason,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Booking":
        """Rebuild a booking from :meth:`to_dict` output."""
        return cls(
            id=data["id"],
            appointment_type_id=data["appointmentTypeId"],
            appointment_type_name=data.get("appointmentTypeName", ""),
            start=_parse_instant(data["startTime"]),
            end=_parse_instant(data["endTime"]),
            buffers=Buffers(
                before_minutes=data.get("bufferBefore") or 0,
                after_minutes=data.get("bufferAfter") or 0,
            ),
            status=BookingStatus(data["status"]),
            customer=CustomerInfo(
                name=data.get("customerName", ""),
                email=data.get("customerEmail", ""),
                phone=data.get("customerPhone", ""),
            ),
            notes=data.get("notes", ""),
            booked_at=_parse_instant(data["bookedAt"]),
            updated_at=_parse_instant(data.get("updatedAt") or data["bookedAt"]),
            confirmed_at=_parse_optional_instant(data.get("confirmedAt")),
            cancelled_at=_parse_optional_instant(data.get("cancelledAt")),
            cancellation_reason=data.get("cancellationReason", ""),
        )


@dataclass(frozen=True)
class TimeSlot:
    """
    Represents a bookable slot for one appointment type.
    """
    time_range: TimeRange
    appointment_type_id: str

    @property
    def start(self) -> DateTime:
        return self.time_range.start

    @property
    def end(self) -> DateTime:
        return self.time_range.end

    def wall_clock(self) -> str:
        """Start time as ``HH:mm`` in the slot's time zone."""
        return self.start.format("HH:mm")

    def format_display(self) -> str:
        """
        Format the slot for display.
        Format: Weekday, YYYY-MM-DD | HH:mm - HH:mm
        """
        start = self.time_range.start
        end = self.time_range.end
        duration = self.time_range.duration_minutes()
        return (
            f"{start.format('dddd, YYYY-MM-DD')} | "
            f"{start.format('HH:mm')} - {end.format('HH:mm')} ({duration} min)"
        )


@dataclass(frozen=True)
class DaySlots:
    """Available slots grouped by calendar date."""
    date: Date
    slots: List[TimeSlot]


def _optional_iso(value: Optional[DateTime]) -> Optional[str]:
    return value.to_iso8601_string() if value is not None else None


def _parse_instant(value: str) -> DateTime:
    parsed = pendulum.parse(value)
    if not isinstance(parsed, DateTime):
        raise ValueError(f"Expected a date-time, got {value!r}")
    return parsed


def _parse_optional_instant(value: Optional[str]) -> Optional[DateTime]:
    return _parse_instant(value) if value else None

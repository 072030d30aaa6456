"""
Recurring weekly availability and its resolution to concrete dates.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

import pendulum
from pendulum import Date, DateTime

from .models import TimeRange

MINUTES_PER_DAY = 24 * 60

DAYS_OF_WEEK = (
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
)


@dataclass(frozen=True)
class WallClockRange:
    """
    Open hours within one day, as minutes after local midnight.

    ``end_minute`` may be 1440 to mean "until midnight".
    """
    start_minute: int
    end_minute: int

    def __post_init__(self):
        if not 0 <= self.start_minute < self.end_minute <= MINUTES_PER_DAY:
            raise ValueError(
                f"Invalid wall-clock range {self.start_minute}-{self.end_minute}"
            )

    @classmethod
    def parse(cls, start: str, end: str) -> "WallClockRange":
        """Build a range from ``HH:MM`` strings."""
        return cls(start_minute=parse_minute_of_day(start), end_minute=parse_minute_of_day(end))

    def __str__(self) -> str:
        return f"{format_minute_of_day(self.start_minute)}-{format_minute_of_day(self.end_minute)}"


@dataclass(frozen=True)
class WeeklyAvailability:
    """
    Open hours per weekday (0=Monday, 6=Sunday).

    Invariant: each day's ranges are sorted and non-overlapping.
    """
    days: Mapping[int, Tuple[WallClockRange, ...]] = field(default_factory=dict)

    def __post_init__(self):
        for weekday, ranges in self.days.items():
            if weekday not in range(7):
                raise ValueError(f"Weekday must be between 0 and 6, got {weekday}")
            for previous, current in zip(ranges, ranges[1:]):
                if current.start_minute < previous.end_minute:
                    raise ValueError(
                        f"Ranges for {DAYS_OF_WEEK[weekday]} must be sorted and "
                        f"non-overlapping: {previous} and {current}"
                    )

    @classmethod
    def from_mapping(cls, ranges_by_day: Mapping[int, Sequence[WallClockRange]]) -> "WeeklyAvailability":
        return cls(days={day: tuple(ranges) for day, ranges in ranges_by_day.items()})

    def ranges_for_weekday(self, weekday: int) -> Tuple[WallClockRange, ...]:
        return tuple(self.days.get(weekday, ()))

    def is_empty(self) -> bool:
        return not any(self.days.values())


class AvailabilityCalendar:
    """
    Resolves the weekly pattern to absolute instants for a calendar date.
    """

    def __init__(self, weekly_availability: WeeklyAvailability, timezone: str):
        self.weekly_availability = weekly_availability
        self.timezone = timezone

    def has_any_availability(self) -> bool:
        return not self.weekly_availability.is_empty()

    def ranges_for_date(self, date: Date, timezone: Optional[str] = None) -> List[TimeRange]:
        """
        Get the open hours for ``date`` as UTC ranges.

        The weekday is that of ``date`` on the provider's calendar; each
        wall-clock range is anchored to that date in ``timezone`` so DST
        transitions yield the correct instants. A weekday without ranges
        returns an empty list.
        """
        tz = timezone or self.timezone
        ranges: List[TimeRange] = []

        for wall_clock in self.weekly_availability.ranges_for_weekday(date.weekday()):
            start = _local_instant(date, wall_clock.start_minute, tz)
            end = _local_instant(date, wall_clock.end_minute, tz)

            # A range swallowed by a DST gap has no bookable time
            if start >= end:
                continue

            ranges.append(
                TimeRange(start=start.in_timezone("UTC"), end=end.in_timezone("UTC"))
            )

        return ranges


def _local_instant(date: Date, minute_of_day: int, timezone: str) -> DateTime:
    if minute_of_day == MINUTES_PER_DAY:
        following = date.add(days=1)
        return pendulum.datetime(following.year, following.month, following.day, tz=timezone)

    hour, minute = divmod(minute_of_day, 60)
    return pendulum.datetime(date.year, date.month, date.day, hour, minute, tz=timezone)


def parse_minute_of_day(value: str) -> int:
    """
    Parse ``HH:MM`` (``24:00`` allowed) into minutes after midnight.

    Raises:
        ValueError: If the value is not a valid wall-clock time
    """
    try:
        hour_text, minute_text = value.strip().split(":")
        hour, minute = int(hour_text), int(minute_text)
    except (AttributeError, ValueError):
        raise ValueError(f"Time must be in HH:MM format, got {value!r}") from None

    if not 0 <= minute <= 59 or not 0 <= hour <= 24 or (hour == 24 and minute != 0):
        raise ValueError(f"Time out of range: {value!r}")

    return hour * 60 + minute


def format_minute_of_day(minute_of_day: int) -> str:
    hour, minute = divmod(minute_of_day, 60)
    return f"{hour:02d}:{minute:02d}"


def weekday_index(day_name: str) -> int:
    """Map ``monday``..``sunday`` to 0..6."""
    try:
        return DAYS_OF_WEEK.index(day_name.lower())
    except ValueError:
        raise ValueError(f"Unknown weekday: {day_name!r}") from None

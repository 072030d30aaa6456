"""
Configuration management using Pydantic.

``SchedulingSettings`` is the provider's settings payload as produced by the
settings UI. It is an immutable value passed into every engine call; keys are
accepted in the UI's camelCase (``minAdvanceBooking``) or in snake_case.
"""

from pathlib import Path
from typing import Dict, List, Literal

import pendulum
import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from .domain.availability import (
    DAYS_OF_WEEK,
    AvailabilityCalendar,
    WallClockRange,
    WeeklyAvailability,
    parse_minute_of_day,
    weekday_index,
)
from .domain.catalog import AppointmentTypeCatalog
from .domain.models import AppointmentType, Buffers
from .domain.window_policy import BookingWindowPolicy

DEFAULT_WEEKLY_AVAILABILITY: Dict[str, List[Dict[str, str]]] = {
    "monday": [{"start": "09:00", "end": "17:00"}],
    "tuesday": [{"start": "09:00", "end": "17:00"}],
    "wednesday": [{"start": "09:00", "end": "17:00"}],
    "thursday": [{"start": "09:00", "end": "17:00"}],
    "friday": [{"start": "09:00", "end": "17:00"}],
    "saturday": [],
    "sunday": [],
}

DEFAULT_APPOINTMENT_TYPES: List[Dict[str, object]] = [
    {
        "id": "puppy-visit",
        "name": "Puppy Visit",
        "description": "Visit to meet and interact with available puppies",
        "duration": 60,
        "buffer_before": 0,
        "buffer_after": 15,
        "color": "#3b82f6",
        "order": 0,
    },
    {
        "id": "pickup",
        "name": "Pickup Appointment",
        "description": "Scheduled pickup for your new puppy",
        "duration": 30,
        "buffer_before": 0,
        "buffer_after": 15,
        "color": "#10b981",
        "order": 1,
    },
    {
        "id": "consultation",
        "name": "General Consultation",
        "description": "General consultation about breeding or our kennel",
        "duration": 30,
        "buffer_before": 0,
        "buffer_after": 0,
        "color": "#8b5cf6",
        "order": 2,
    },
]


class _SettingsModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class TimeRangeConfig(_SettingsModel):
    """Open hours within one day, ``HH:MM`` strings."""
    start: str
    end: str

    @field_validator("start", "end")
    @classmethod
    def validate_time(cls, v: str) -> str:
        """Validate the value is a wall-clock time."""
        parse_minute_of_day(v)
        return v.strip()

    @model_validator(mode="after")
    def validate_order(self) -> "TimeRangeConfig":
        """Ensure the range opens before it closes."""
        if parse_minute_of_day(self.end) <= parse_minute_of_day(self.start):
            raise ValueError(f"Range end {self.end} must be later than start {self.start}")
        return self

    def to_wall_clock(self) -> WallClockRange:
        return WallClockRange.parse(self.start, self.end)


class AppointmentTypeConfig(_SettingsModel):
    """Appointment type configuration."""
    id: str
    name: str
    description: str = ""
    duration: int
    buffer_before: int = 0
    buffer_after: int = 0
    color: str = ""
    enabled: bool = True
    order: int = 0

    @field_validator("duration")
    @classmethod
    def validate_duration(cls, value: int) -> int:
        """Ensure appointment duration is positive."""
        if value <= 0:
            raise ValueError("duration must be greater than zero")
        return value

    @field_validator("buffer_before", "buffer_after", mode="before")
    @classmethod
    def normalize_buffer(cls, value):
        """Missing buffers mean no buffer."""
        return 0 if value is None else value

    @field_validator("buffer_before", "buffer_after")
    @classmethod
    def validate_buffer(cls, value: int) -> int:
        if value < 0:
            raise ValueError("buffers must not be negative")
        return value

    def to_domain(self) -> AppointmentType:
        return AppointmentType(
            id=self.id,
            name=self.name,
            duration_minutes=self.duration,
            buffers=Buffers(before_minutes=self.buffer_before, after_minutes=self.buffer_after),
            description=self.description,
            color=self.color,
            enabled=self.enabled,
            order=self.order,
        )


class SchedulingSettings(_SettingsModel):
    """Provider scheduling settings."""
    weekly_availability: Dict[str, List[TimeRangeConfig]] = Field(
        default_factory=lambda: {
            day: [TimeRangeConfig(**r) for r in ranges]
            for day, ranges in DEFAULT_WEEKLY_AVAILABILITY.items()
        }
    )
    timezone: str = "Europe/Berlin"
    appointment_types: List[AppointmentTypeConfig] = Field(
        default_factory=lambda: [AppointmentTypeConfig(**t) for t in DEFAULT_APPOINTMENT_TYPES]
    )
    min_advance_booking: int = 24  # hours
    max_advance_booking: int = 30  # days
    slot_interval: Literal[15, 30, 60] = 30
    booking_page_enabled: bool = False
    booking_page_title: str = ""
    booking_page_description: str = ""
    confirmation_message: str = (
        "Your appointment has been booked! "
        "We will send you a confirmation email shortly."
    )

    @field_validator("weekly_availability")
    @classmethod
    def validate_weekly_availability(
        cls, value: Dict[str, List[TimeRangeConfig]]
    ) -> Dict[str, List[TimeRangeConfig]]:
        """Ensure weekday keys are valid and each day's ranges are disjoint."""
        normalized: Dict[str, List[TimeRangeConfig]] = {}
        for day, ranges in value.items():
            day_key = day.lower()
            if day_key not in DAYS_OF_WEEK:
                raise ValueError(f"Unknown weekday in weekly_availability: {day!r}")

            ordered = sorted(ranges, key=lambda r: parse_minute_of_day(r.start))
            for previous, current in zip(ordered, ordered[1:]):
                if parse_minute_of_day(current.start) < parse_minute_of_day(previous.end):
                    raise ValueError(
                        f"Overlapping ranges on {day_key}: "
                        f"{previous.start}-{previous.end} and {current.start}-{current.end}"
                    )
            normalized[day_key] = ordered
        return normalized

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, value: str) -> str:
        """Ensure the zone is a known IANA identifier."""
        try:
            pendulum.timezone(value)
        except (ValueError, KeyError) as exc:
            raise ValueError(f"Unknown timezone: {value!r}") from exc
        return value

    @field_validator("appointment_types")
    @classmethod
    def validate_appointment_types(cls, value: List[AppointmentTypeConfig]) -> List[AppointmentTypeConfig]:
        """Ensure appointment type ids are unique."""
        seen: set[str] = set()
        for appointment_type in value:
            if appointment_type.id in seen:
                raise ValueError(f"Duplicate appointment type id detected: {appointment_type.id}")
            seen.add(appointment_type.id)
        return value

    @field_validator("min_advance_booking", "max_advance_booking")
    @classmethod
    def validate_advance(cls, value: int) -> int:
        if value < 0:
            raise ValueError("advance booking limits must not be negative")
        return value

    def build_weekly_availability(self) -> WeeklyAvailability:
        return WeeklyAvailability.from_mapping({
            weekday_index(day): [r.to_wall_clock() for r in ranges]
            for day, ranges in self.weekly_availability.items()
        })

    def build_calendar(self) -> AvailabilityCalendar:
        return AvailabilityCalendar(self.build_weekly_availability(), self.timezone)

    def build_catalog(self) -> AppointmentTypeCatalog:
        return AppointmentTypeCatalog(t.to_domain() for t in self.appointment_types)

    def build_window_policy(self) -> BookingWindowPolicy:
        return BookingWindowPolicy(
            min_advance_minutes=self.min_advance_booking * 60,
            max_advance_days=self.max_advance_booking,
            slot_interval_minutes=self.slot_interval,
            timezone=self.timezone,
        )

    @classmethod
    def load_from_yaml(cls, config_path: Path) -> "SchedulingSettings":
        """
        Load settings from YAML file.

        Args:
            config_path: Path to the YAML config file

        Returns:
            SchedulingSettings instance

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If config is invalid
        """
        if not config_path.exists():
            raise FileNotFoundError(
                f"Config file not found: {config_path}\n"
                f"Please create a config.yaml file. See config.example.yaml for reference."
            )

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ValueError(f"Invalid YAML in {config_path}: {exc}") from exc

        if not isinstance(data, dict):
            raise ValueError("Config file must contain a mapping at the root level.")

        return cls(**data)


def get_default_config_path() -> Path:
    """Get the default configuration file path."""
    # Look for config.yaml in current directory
    current_dir = Path.cwd()
    config_path = current_dir / "config.yaml"

    if not config_path.exists():
        # Try in the project root (parent of the package)
        project_root = Path(__file__).parent.parent
        config_path = project_root / "config.yaml"

    return config_path

"""
Lookup of bookable appointment types.
"""

from typing import Dict, Iterable, List

from .exceptions import AppointmentTypeNotFound, ValidationError
from .models import AppointmentType


class AppointmentTypeCatalog:
    """
    Read-only catalog of appointment types keyed by id.
    """

    def __init__(self, appointment_types: Iterable[AppointmentType]):
        self._types: Dict[str, AppointmentType] = {}
        for appointment_type in appointment_types:
            if appointment_type.id in self._types:
                raise ValueError(f"Duplicate appointment type id: {appointment_type.id}")
            self._types[appointment_type.id] = appointment_type

    def __len__(self) -> int:
        return len(self._types)

    def get_type(self, appointment_type_id: str) -> AppointmentType:
        """
        Return the appointment type with the given id.

        Raises:
            AppointmentTypeNotFound: If the id is unknown
        """
        try:
            return self._types[appointment_type_id]
        except KeyError:
            raise AppointmentTypeNotFound(
                f"Unknown appointment type: '{appointment_type_id}'"
            ) from None

    def require_bookable(self, appointment_type_id: str) -> AppointmentType:
        """
        Return the type if it may be used for slots and new bookings.

        Raises:
            ValidationError: If the type is unknown or disabled
        """
        appointment_type = self.get_type(appointment_type_id)
        if not appointment_type.enabled:
            raise ValidationError(
                f"Appointment type '{appointment_type_id}' is disabled"
            )
        return appointment_type

    def list_enabled(self) -> List[AppointmentType]:
        """Enabled types in display order."""
        return sorted(
            (t for t in self._types.values() if t.enabled),
            key=lambda t: (t.order, t.name),
        )

    def list_all(self) -> List[AppointmentType]:
        return sorted(self._types.values(), key=lambda t: (t.order, t.name))

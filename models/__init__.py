"""Pydantic models for data validation and serialization."""

from .appointment import (
    ACTIVE_STATUSES,
    Appointment,
    AppointmentCreate,
    AppointmentStatus,
    BookingRequest,
)
from .availability import AvailabilityMap, BookingCapacity
from .notification import NotificationCreate
from .people import Doctor, Patient
from .schedule import DoctorSchedule, Weekday
from .time_of_day import TimeOfDay

__all__ = [
    "ACTIVE_STATUSES",
    "Appointment",
    "AppointmentCreate",
    "AppointmentStatus",
    "AvailabilityMap",
    "BookingCapacity",
    "BookingRequest",
    "Doctor",
    "DoctorSchedule",
    "NotificationCreate",
    "Patient",
    "TimeOfDay",
    "Weekday",
]

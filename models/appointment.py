"""Appointment models for doctor bookings."""

from datetime import date, datetime
from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, Field, field_validator

from models.time_of_day import TimeOfDay, strip_seconds
from utils.constants import MAX_REASON_LENGTH, TIME_PATTERN
from utils.datetime_utils import parse_iso_date
from utils.exceptions import FormatError


class AppointmentStatus(str, Enum):
    """Appointment status."""

    SCHEDULED = "scheduled"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no-show"


# Statuses that hold a slot. Completed visits are historical and never block
# a forward-looking booking.
ACTIVE_STATUSES = frozenset({AppointmentStatus.SCHEDULED, AppointmentStatus.CONFIRMED})


class Appointment(BaseModel):
    """Appointment model as returned by the backend store."""

    id: Optional[str] = None
    patient_id: str = Field(..., description="Patient ID")
    doctor_id: str = Field(..., description="Doctor ID")
    department_id: Optional[str] = None
    appointment_date: date
    appointment_time: Optional[str] = None
    reason: Optional[str] = None
    status: AppointmentStatus = AppointmentStatus.SCHEDULED
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        json_schema_extra = {
            "example": {
                "patient_id": "patient-uuid",
                "doctor_id": "doctor-uuid",
                "department_id": "department-uuid",
                "appointment_date": "2026-01-05",
                "appointment_time": "08:10",
                "status": "scheduled",
            }
        }

    @field_validator("appointment_date", mode="before")
    @classmethod
    def _truncate_date(cls, value):
        if isinstance(value, str):
            return parse_iso_date(value)
        if isinstance(value, datetime):
            return value.date()
        return value

    @field_validator("appointment_time", mode="before")
    @classmethod
    def _strip_seconds(cls, value):
        return strip_seconds(value)

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    @property
    def time_of_day(self) -> Optional[TimeOfDay]:
        """Parsed appointment time, or None when missing or malformed."""
        if not self.appointment_time:
            return None
        try:
            return TimeOfDay.parse(self.appointment_time)
        except FormatError:
            return None


class AppointmentCreate(BaseModel):
    """Appointment payload committed to the backend store."""

    patient_id: str
    doctor_id: str
    department_id: str
    appointment_date: date
    appointment_time: str = Field(..., pattern=TIME_PATTERN)
    status: AppointmentStatus = AppointmentStatus.SCHEDULED
    reason: Optional[str] = Field(default=None, max_length=MAX_REASON_LENGTH)

    def to_record(self) -> dict:
        """Serialize for the store, dropping empty optional fields."""
        return self.model_dump(mode="json", exclude_none=True)


class BookingRequest(BaseModel):
    """
    Booking input as collected from a form.

    Every field is optional so the orchestrator can reject a missing field
    with a field-level reason instead of a generic parse error.
    """

    patient_id: Optional[str] = None
    doctor_id: Optional[str] = None
    department_id: Optional[str] = None
    appointment_date: Optional[Union[date, str]] = None
    appointment_time: Optional[str] = None
    reason: Optional[str] = None
    status: AppointmentStatus = AppointmentStatus.SCHEDULED
    schedule_id: Optional[str] = None

"""Doctor schedule models for recurring weekly availability."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from models.time_of_day import TimeOfDay, strip_seconds
from utils.constants import TIME_PATTERN


class Weekday(str, Enum):
    """Day of week as stored on a doctor schedule."""

    SUNDAY = "Sunday"
    MONDAY = "Monday"
    TUESDAY = "Tuesday"
    WEDNESDAY = "Wednesday"
    THURSDAY = "Thursday"
    FRIDAY = "Friday"
    SATURDAY = "Saturday"

    @property
    def python_weekday(self) -> int:
        """Index compatible with ``date.weekday()`` (Monday is 0)."""
        return _PYTHON_WEEKDAYS[self]

    @classmethod
    def from_date(cls, value) -> "Weekday":
        """Weekday of a ``date`` or ``datetime``."""
        return _WEEKDAYS_BY_INDEX[value.weekday()]


_PYTHON_WEEKDAYS = {
    Weekday.MONDAY: 0,
    Weekday.TUESDAY: 1,
    Weekday.WEDNESDAY: 2,
    Weekday.THURSDAY: 3,
    Weekday.FRIDAY: 4,
    Weekday.SATURDAY: 5,
    Weekday.SUNDAY: 6,
}
_WEEKDAYS_BY_INDEX = {index: day for day, index in _PYTHON_WEEKDAYS.items()}


class DoctorSchedule(BaseModel):
    """Recurring weekly availability window owned by a doctor."""

    id: Optional[str] = None
    doctor_id: str = Field(..., description="Doctor ID")
    day_of_week: Weekday
    start_time: str = Field(..., pattern=TIME_PATTERN)
    end_time: str = Field(..., pattern=TIME_PATTERN)
    max_patients: Optional[int] = Field(default=None, ge=0)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        json_schema_extra = {
            "example": {
                "doctor_id": "doctor-uuid",
                "day_of_week": "Monday",
                "start_time": "08:00",
                "end_time": "12:00",
                "max_patients": 10,
            }
        }

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def _strip_seconds(cls, value):
        return strip_seconds(value)

    @model_validator(mode="after")
    def _check_window(self):
        if self.start >= self.end:
            raise ValueError(
                f"start_time {self.start_time} must be before end_time {self.end_time}"
            )
        return self

    @property
    def start(self) -> TimeOfDay:
        return TimeOfDay.parse(self.start_time, field="start_time")

    @property
    def end(self) -> TimeOfDay:
        return TimeOfDay.parse(self.end_time, field="end_time")

    @property
    def has_capacity_limit(self) -> bool:
        """A missing or zero max_patients means unlimited."""
        return bool(self.max_patients)

    def window_contains(self, time: TimeOfDay) -> bool:
        """Check whether a time falls within [start_time, end_time], both inclusive."""
        return self.start <= time <= self.end

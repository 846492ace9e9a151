"""
Custom exception classes for booking and availability errors.
Provides specific error types instead of generic exceptions.

Slot contention is the common failure mode of the booking flow, so every
booking error carries the field, date and time it is about.
"""

from datetime import date
from typing import Optional


class SchedulingError(Exception):
    """Base exception for the scheduling engine."""

    pass


class BookingError(SchedulingError):
    """Base exception for a rejected booking attempt."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        date: Optional[date] = None,
        time: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.field = field
        self.date = date
        self.time = time


class FormatError(BookingError):
    """Raised when a time or date string does not match the wire format."""

    pass


class QuantizationError(BookingError):
    """Raised when a well-formed time is not on the 10-minute grid."""

    pass


class ValidationError(BookingError):
    """Raised when a required field is missing or rejected by the backend."""

    pass


class ConflictError(BookingError):
    """Raised when the requested slot is already held by another appointment."""

    pass


class CapacityError(BookingError):
    """Raised when a schedule's max_patients limit is exhausted."""

    def __init__(
        self,
        message: str,
        max_patients: int,
        booked: int,
        date: Optional[date] = None,
        time: Optional[str] = None,
    ):
        super().__init__(message, field="appointment_time", date=date, time=time)
        self.max_patients = max_patients
        self.booked = booked


class NotFoundError(BookingError):
    """Raised when a doctor, patient, department or schedule is missing."""

    pass


class StoreError(SchedulingError):
    """Raised when the backend store fails for a non-domain reason."""

    pass


class NotificationError(SchedulingError):
    """Raised when a doctor notification cannot be delivered."""

    pass

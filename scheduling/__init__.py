"""Slot scheduling and availability engine."""

from .availability import (
    active_appointments_for,
    compute_availability,
    compute_capacity,
    count_in_window,
    is_slot_available,
)
from .board import ScheduleAvailability, ScheduleBoard
from .booking import BookingAttempt, BookingOrchestrator, BookingState
from .session import AvailabilityTracker

__all__ = [
    "AvailabilityTracker",
    "BookingAttempt",
    "BookingOrchestrator",
    "BookingState",
    "ScheduleAvailability",
    "ScheduleBoard",
    "active_appointments_for",
    "compute_availability",
    "compute_capacity",
    "count_in_window",
    "is_slot_available",
]

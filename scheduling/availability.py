"""
Availability reconciliation for one doctor on one date.

Everything here is a pure function of freshly fetched appointments. Results
are advisory: the backend store re-checks the slot when the booking is
committed.
"""

from datetime import date
from typing import Iterable, List, Optional

from models.appointment import Appointment
from models.availability import AvailabilityMap, BookingCapacity
from models.schedule import DoctorSchedule
from models.time_of_day import TimeOfDay


def active_appointments_for(
    doctor_id: str,
    on_date: date,
    appointments: Iterable[Appointment],
    exclude_id: Optional[str] = None,
) -> List[Appointment]:
    """
    Appointments that hold a slot for this doctor on this date.

    Args:
        doctor_id: Doctor whose bookings count
        on_date: Calendar date
        appointments: Candidate appointments (may be unfiltered)
        exclude_id: Appointment being edited; it never conflicts with itself

    Returns:
        Active (scheduled/confirmed) appointments with a readable time
    """
    return [
        appointment
        for appointment in appointments
        if appointment.doctor_id == doctor_id
        and appointment.appointment_date == on_date
        and appointment.is_active
        and appointment.time_of_day is not None
        and not (exclude_id and appointment.id == exclude_id)
    ]


def compute_availability(
    doctor_id: str,
    on_date: date,
    appointments: Iterable[Appointment],
    slots: Optional[Iterable[str]] = None,
    exclude_id: Optional[str] = None,
) -> AvailabilityMap:
    """
    Mark slots free (True) or booked (False).

    With ``slots`` every listed slot gets an entry. Without, only booked
    times are present and every other time is unknown.
    """
    booked = {
        str(appointment.time_of_day)
        for appointment in active_appointments_for(
            doctor_id, on_date, appointments, exclude_id
        )
    }

    if slots is None:
        return {time: False for time in sorted(booked)}

    return {slot: slot not in booked for slot in slots}


def is_slot_available(
    doctor_id: str,
    on_date: date,
    time: str,
    appointments: Iterable[Appointment],
    exclude_id: Optional[str] = None,
) -> bool:
    """Check a single slot against the active appointments."""
    availability = compute_availability(
        doctor_id, on_date, appointments, slots=[time], exclude_id=exclude_id
    )
    return availability[time]


def count_in_window(
    schedule: DoctorSchedule,
    on_date: date,
    appointments: Iterable[Appointment],
    exclude_id: Optional[str] = None,
) -> int:
    """Active appointments within [start_time, end_time], both bounds inclusive."""
    return sum(
        1
        for appointment in active_appointments_for(
            schedule.doctor_id, on_date, appointments, exclude_id
        )
        if schedule.window_contains(appointment.time_of_day)
    )


def compute_capacity(
    schedule: DoctorSchedule,
    on_date: date,
    appointments: Iterable[Appointment],
    exclude_id: Optional[str] = None,
) -> BookingCapacity:
    """Booked count of a schedule window on its resolved date."""
    return BookingCapacity(
        schedule_id=schedule.id,
        max_patients=schedule.max_patients,
        booked=count_in_window(schedule, on_date, appointments, exclude_id),
    )


def first_free_slot(availability: AvailabilityMap) -> Optional[TimeOfDay]:
    """Earliest slot marked free, if any."""
    free = [TimeOfDay.parse(time) for time, is_free in availability.items() if is_free]
    return min(free) if free else None

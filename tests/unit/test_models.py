"""
Unit tests for scheduling models.
"""

from datetime import date, datetime

import pytest
from pydantic import ValidationError as PydanticValidationError

from models.appointment import Appointment, AppointmentCreate, AppointmentStatus
from models.availability import BookingCapacity
from models.notification import NotificationCreate
from models.people import Doctor, Patient
from models.schedule import DoctorSchedule, Weekday
from models.time_of_day import TimeOfDay, strip_seconds
from utils.exceptions import FormatError


def test_time_of_day_parse_and_render():
    """Test HH:MM parsing and zero-padded rendering."""
    time = TimeOfDay.parse("08:05")

    assert time == TimeOfDay(8, 5)
    assert time.total_minutes == 485
    assert str(time) == "08:05"


@pytest.mark.parametrize("value", ["8:00", "24:00", "08:60", "08:00:00", "08:00\n", "", None])
def test_time_of_day_parse_rejects(value):
    """Test only zero-padded 24-hour HH:MM is accepted."""
    with pytest.raises(FormatError):
        TimeOfDay.parse(value)


def test_time_of_day_ordering():
    """Test times order by minutes since midnight."""
    assert TimeOfDay(8, 50) < TimeOfDay(9, 0)
    assert TimeOfDay.from_minutes(540) == TimeOfDay(9, 0)


def test_time_of_day_range():
    """Test out-of-range components are rejected."""
    with pytest.raises(ValueError):
        TimeOfDay(24, 0)


def test_strip_seconds():
    """Test Postgres time values lose their seconds."""
    assert strip_seconds("08:10:00") == "08:10"
    assert strip_seconds("08:10") == "08:10"
    assert strip_seconds("08:10:00\n") == "08:10:00\n"
    assert strip_seconds(None) is None


def test_weekday_python_index():
    """Test mapping to date.weekday()."""
    assert Weekday.MONDAY.python_weekday == 0
    assert Weekday.SUNDAY.python_weekday == 6
    assert Weekday.from_date(date(2026, 1, 5)) is Weekday.MONDAY


def test_doctor_schedule_from_row():
    """Test a backend row with seconds in its times."""
    schedule = DoctorSchedule(
        id="schedule-1",
        doctor_id="doctor-1",
        day_of_week="Monday",
        start_time="08:00:00",
        end_time="12:00:00",
        max_patients=10,
    )

    assert schedule.start_time == "08:00"
    assert schedule.day_of_week is Weekday.MONDAY
    assert schedule.has_capacity_limit is True
    assert schedule.window_contains(TimeOfDay(12, 0))
    assert not schedule.window_contains(TimeOfDay(12, 10))


@pytest.mark.parametrize("max_patients", [None, 0])
def test_doctor_schedule_unlimited(max_patients):
    """Test a missing or zero limit means unlimited."""
    schedule = DoctorSchedule(
        doctor_id="doctor-1",
        day_of_week="Friday",
        start_time="08:00",
        end_time="09:00",
        max_patients=max_patients,
    )

    assert schedule.has_capacity_limit is False


def test_doctor_schedule_rejects_inverted_window():
    """Test start must precede end."""
    with pytest.raises(PydanticValidationError):
        DoctorSchedule(
            doctor_id="doctor-1", day_of_week="Monday", start_time="10:00", end_time="09:00"
        )


def test_appointment_truncates_datetime():
    """Test the appointment date keeps only the calendar day."""
    appointment = Appointment(
        patient_id="patient-1",
        doctor_id="doctor-1",
        appointment_date="2026-01-05T00:00:00.000Z",
        appointment_time="08:10:00",
    )

    assert appointment.appointment_date == date(2026, 1, 5)
    assert appointment.appointment_time == "08:10"
    assert appointment.time_of_day == TimeOfDay(8, 10)
    assert appointment.is_active


def test_appointment_tolerates_malformed_time():
    """Test a malformed stored time has no time of day."""
    appointment = Appointment(
        patient_id="patient-1",
        doctor_id="doctor-1",
        appointment_date=datetime(2026, 1, 5, 9, 0),
        appointment_time="9am",
        status="completed",
    )

    assert appointment.appointment_date == date(2026, 1, 5)
    assert appointment.time_of_day is None
    assert not appointment.is_active


def test_appointment_create_to_record():
    """Test the committed payload drops empty optional fields."""
    draft = AppointmentCreate(
        patient_id="patient-1",
        doctor_id="doctor-1",
        department_id="dept-1",
        appointment_date=date(2026, 1, 5),
        appointment_time="08:10",
    )

    assert draft.to_record() == {
        "patient_id": "patient-1",
        "doctor_id": "doctor-1",
        "department_id": "dept-1",
        "appointment_date": "2026-01-05",
        "appointment_time": "08:10",
        "status": "scheduled",
    }


def test_appointment_create_rejects_bad_time():
    """Test the payload enforces the wire format."""
    with pytest.raises(PydanticValidationError):
        AppointmentCreate(
            patient_id="patient-1",
            doctor_id="doctor-1",
            department_id="dept-1",
            appointment_date=date(2026, 1, 5),
            appointment_time="8:10",
        )


def test_no_show_status_value():
    """Test the hyphenated status round-trips."""
    assert AppointmentStatus("no-show") is AppointmentStatus.NO_SHOW


def test_booking_capacity():
    """Test derived capacity values."""
    capacity = BookingCapacity(max_patients=2, booked=1)

    assert capacity.remaining == 1
    assert not capacity.is_full
    assert str(capacity) == "1/2"

    full = capacity.model_copy(update={"booked": 2})
    assert full.is_full
    assert full.remaining == 0


def test_booking_capacity_unlimited():
    """Test an unlimited schedule is never full."""
    capacity = BookingCapacity(max_patients=None, booked=40)

    assert capacity.unlimited
    assert capacity.remaining is None
    assert not capacity.is_full


def test_people_names():
    """Test display names."""
    assert Doctor(id="d", first_name="Amina", last_name="Uwase").display_name == "Dr. Amina Uwase"
    assert Patient(id="p", first_name="Jean").full_name == "Jean"


def test_notification_defaults():
    """Test notification record defaults."""
    notification = NotificationCreate(user_id="user-1", message="Hello")

    assert notification.notification_type == "appointment"
    assert notification.is_read is False

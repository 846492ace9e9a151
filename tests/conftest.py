"""
Pytest configuration and shared fixtures.
"""

from datetime import date
from itertools import count
from typing import Dict, List, Optional
from unittest.mock import MagicMock

import pytest

from config import settings
from models.appointment import (
    ACTIVE_STATUSES,
    Appointment,
    AppointmentCreate,
    AppointmentStatus,
)
from models.notification import NotificationCreate
from models.people import Doctor, Patient
from models.schedule import DoctorSchedule
from utils.exceptions import ConflictError, NotFoundError

# Thursday; the next Monday is 2026-01-05
TODAY = date(2026, 1, 1)
MONDAY = date(2026, 1, 5)


@pytest.fixture(autouse=True)
def mock_settings(monkeypatch, tmp_path):
    """Deterministic settings for all tests."""
    monkeypatch.setattr(settings, "supabase_url", "https://test.supabase.co")
    monkeypatch.setattr(settings, "supabase_key", "test_key")
    monkeypatch.setattr(settings, "timezone", "Africa/Kigali")
    monkeypatch.setattr(settings, "day_start", "08:00")
    monkeypatch.setattr(settings, "day_end", "18:00")
    monkeypatch.setattr(settings, "notifications_enabled", True)
    monkeypatch.setattr(settings, "store_read_retries", 3)
    monkeypatch.setattr(settings, "reference_cache_minutes", 5)
    monkeypatch.setattr(settings, "log_dir", str(tmp_path / "logs"))
    monkeypatch.setattr(settings, "environment", "test")
    yield settings


@pytest.fixture
def mock_supabase_client():
    """Create a mock Supabase client."""
    mock_client = MagicMock()
    mock_table = MagicMock()
    mock_client.table.return_value = mock_table
    return mock_client, mock_table


class FakeStore:
    """
    In-memory stand-in for SupabaseStore.

    Enforces the same active-slot uniqueness the backend does, so a booking
    that slips past the client-side check still loses at commit.
    """

    def __init__(self):
        self.appointments: List[Appointment] = []
        self.schedules: Dict[str, DoctorSchedule] = {}
        self.doctors: Dict[str, Doctor] = {}
        self.patients: Dict[str, Patient] = {}
        self.notifications: List[NotificationCreate] = []
        self.calls: List[str] = []
        self.list_error: Optional[Exception] = None
        self.commit_error: Optional[Exception] = None
        self.notification_error: Optional[Exception] = None
        self.cache_clears = 0
        self._ids = count(1)

    def add_appointment(self, **fields) -> Appointment:
        fields.setdefault("id", f"appt-{next(self._ids)}")
        fields.setdefault("patient_id", "patient-1")
        appointment = Appointment(**fields)
        self.appointments.append(appointment)
        return appointment

    def add_schedule(self, schedule: DoctorSchedule) -> DoctorSchedule:
        self.schedules[schedule.id] = schedule
        return schedule

    async def list_appointments(
        self, doctor_id=None, date=None, status=None, patient_id=None
    ) -> List[Appointment]:
        self.calls.append("list_appointments")
        if self.list_error:
            raise self.list_error

        if status is None:
            statuses = None
        elif isinstance(status, AppointmentStatus):
            statuses = {status}
        else:
            statuses = set(status)

        return [
            a
            for a in self.appointments
            if (doctor_id is None or a.doctor_id == doctor_id)
            and (date is None or a.appointment_date == date)
            and (patient_id is None or a.patient_id == patient_id)
            and (statuses is None or a.status in statuses)
        ]

    def _check_slot(self, data: AppointmentCreate, exclude_id=None) -> None:
        if data.status not in ACTIVE_STATUSES:
            return
        for a in self.appointments:
            if (
                a.id != exclude_id
                and a.is_active
                and a.doctor_id == data.doctor_id
                and a.appointment_date == data.appointment_date
                and a.appointment_time == data.appointment_time
            ):
                raise ConflictError(
                    "Doctor already has an appointment at this time",
                    field="appointment_time",
                )

    async def create_appointment(self, data: AppointmentCreate) -> Appointment:
        self.calls.append("create_appointment")
        if self.commit_error:
            raise self.commit_error
        self._check_slot(data)
        appointment = Appointment(id=f"appt-{next(self._ids)}", **data.to_record())
        self.appointments.append(appointment)
        return appointment

    async def update_appointment(
        self, appointment_id: str, data: AppointmentCreate
    ) -> Appointment:
        self.calls.append("update_appointment")
        if self.commit_error:
            raise self.commit_error
        for index, existing in enumerate(self.appointments):
            if existing.id == appointment_id:
                self._check_slot(data, exclude_id=appointment_id)
                updated = Appointment(id=appointment_id, **data.to_record())
                self.appointments[index] = updated
                return updated
        raise NotFoundError(
            f"Appointment not found: {appointment_id}", field="appointment_id"
        )

    async def list_doctor_schedules(self) -> List[DoctorSchedule]:
        self.calls.append("list_doctor_schedules")
        return list(self.schedules.values())

    async def get_doctor_schedule(self, schedule_id: str) -> Optional[DoctorSchedule]:
        self.calls.append("get_doctor_schedule")
        return self.schedules.get(schedule_id)

    async def get_doctor(self, doctor_id: str) -> Optional[Doctor]:
        return self.doctors.get(doctor_id)

    async def get_patient(self, patient_id: str) -> Optional[Patient]:
        return self.patients.get(patient_id)

    async def create_notification(self, notification: NotificationCreate) -> dict:
        if self.notification_error:
            raise self.notification_error
        self.notifications.append(notification)
        return {"id": f"notification-{len(self.notifications)}", **notification.model_dump()}

    def clear_reference_cache(self) -> None:
        self.cache_clears += 1


@pytest.fixture
def fake_store():
    """In-memory store with one doctor and one patient."""
    store = FakeStore()
    store.doctors["doctor-1"] = Doctor(
        id="doctor-1",
        first_name="Amina",
        last_name="Uwase",
        department_id="dept-1",
        user_id="user-doctor-1",
    )
    store.patients["patient-1"] = Patient(
        id="patient-1", first_name="Jean", last_name="Mugisha", patient_id="PAT-000001"
    )
    return store


@pytest.fixture
def monday_schedule():
    """Monday 08:00-09:00, at most two patients."""
    return DoctorSchedule(
        id="schedule-1",
        doctor_id="doctor-1",
        day_of_week="Monday",
        start_time="08:00",
        end_time="09:00",
        max_patients=2,
    )

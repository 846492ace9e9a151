"""
Supabase-backed appointment store.
Handles all backend interactions for appointments, doctor schedules,
reference records and notifications.

The backend is the authority on slot ownership: a unique constraint over
(doctor_id, appointment_date, appointment_time) for active appointments
rejects concurrent double bookings. Everything the client computes about
availability is advisory.

Expected constraint (SQL):
--------------------------
CREATE UNIQUE INDEX appointments_active_slot
ON appointments (doctor_id, appointment_date, appointment_time)
WHERE status IN ('scheduled', 'confirmed');
"""

import asyncio
from datetime import date, datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from postgrest.exceptions import APIError
from pydantic import ValidationError as PydanticValidationError
from supabase import Client as SupabaseClientType
from supabase import create_client

from config import settings
from models.appointment import Appointment, AppointmentCreate, AppointmentStatus
from models.notification import NotificationCreate
from models.people import Doctor, Patient
from models.schedule import DoctorSchedule
from utils.constants import READ_RETRY_BACKOFF, READ_RETRY_DELAY
from utils.datetime_utils import to_iso_date, utc_now
from utils.exceptions import (
    ConflictError,
    NotFoundError,
    SchedulingError,
    StoreError,
    ValidationError,
)
from utils.logging_config import setup_logging

logger = setup_logging(name=__name__)

# Backend messages that mean "slot already taken"
CONFLICT_MARKERS = (
    "already has an appointment",
    "already booked",
    "time slot is taken",
    "appointment already exists",
)
VALIDATION_CODES = {"23502", "22P02", "22007", "23514"}
NOT_FOUND_FIELDS = {
    "doctor": "doctor_id",
    "patient": "patient_id",
    "department": "department_id",
    "schedule": "schedule_id",
}


def translate_api_error(error: APIError, operation: str) -> SchedulingError:
    """
    Map a PostgREST error onto the booking error taxonomy.

    The backend's message is kept verbatim.
    """
    message = error.message or str(error)
    lowered = message.lower()
    code = str(error.code or "")

    if code == "23505" or any(marker in lowered for marker in CONFLICT_MARKERS):
        return ConflictError(message, field="appointment_time")

    if code == "23503" or "not found" in lowered:
        field = next(
            (f for word, f in NOT_FOUND_FIELDS.items() if word in lowered), None
        )
        return NotFoundError(message, field=field)

    if code in VALIDATION_CODES or "validation" in lowered or "required" in lowered:
        return ValidationError(message)

    return StoreError(f"Failed to {operation}: {message}")


class SupabaseStore:
    """
    Backend appointment store on top of the Supabase client.

    The supabase client is synchronous; every query runs in a worker thread
    so independent reads can proceed concurrently. Reads are retried on
    transient failures, writes never are.

    Doctor and patient records are cached briefly; appointments and
    schedules are always read fresh.
    """

    def __init__(self):
        self.client: SupabaseClientType = create_client(
            settings.supabase_url, settings.supabase_key
        )

        # Format: {cache_key: (data, expiry_time)}
        self._cache: Dict[str, Tuple[Any, datetime]] = {}
        self._cache_ttl = timedelta(minutes=settings.reference_cache_minutes)

    # ========== Cache Helpers ==========

    def _get_from_cache(self, key: str) -> Optional[Any]:
        """Get value from cache if not expired."""
        if key not in self._cache:
            return None

        data, expiry = self._cache[key]
        if utc_now() > expiry:
            del self._cache[key]
            return None

        return data

    def _set_cache(self, key: str, value: Any) -> None:
        """Set value in cache with TTL."""
        self._cache[key] = (value, utc_now() + self._cache_ttl)

    def clear_reference_cache(self) -> None:
        """Drop cached doctor and patient records."""
        self._cache.clear()

    # ========== Query Execution ==========

    async def _execute(self, query, operation: str, read: bool = False):
        """
        Run a query builder in a worker thread.

        Args:
            query: PostgREST query builder
            operation: Description used in logs and errors
            read: Retry transient failures with exponential backoff

        Raises:
            ConflictError, NotFoundError, ValidationError: Backend rejections
            StoreError: Transport or unexpected failures
        """
        attempts = max(1, settings.store_read_retries) if read else 1
        delay = READ_RETRY_DELAY

        for attempt in range(attempts):
            try:
                return await asyncio.to_thread(query.execute)
            except APIError as e:
                logger.warning(f"Backend rejected {operation}: {e.message} ({e.code})")
                raise translate_api_error(e, operation) from e
            except Exception as e:
                if attempt < attempts - 1:
                    logger.warning(
                        f"Store error (attempt {attempt + 1}/{attempts}) during "
                        f"{operation}: {e}. Retrying in {delay}s..."
                    )
                    await asyncio.sleep(delay)
                    delay *= READ_RETRY_BACKOFF
                else:
                    logger.error(f"Failed to {operation}: {e}", exc_info=True)
                    raise StoreError(f"Failed to {operation}: {e}") from e

    # ========== Appointment Operations ==========

    async def list_appointments(
        self,
        doctor_id: Optional[str] = None,
        date: Optional[date] = None,
        status: Union[AppointmentStatus, Iterable[AppointmentStatus], None] = None,
        patient_id: Optional[str] = None,
    ) -> List[Appointment]:
        """
        List appointments matching every given filter.

        Args:
            doctor_id: Only this doctor's appointments
            date: Only appointments on this calendar date
            status: One status or a collection of statuses
            patient_id: Only this patient's appointments

        Returns:
            Appointments ordered by time; malformed rows are skipped
        """
        query = self.client.table("appointments").select("*")

        if doctor_id:
            query = query.eq("doctor_id", doctor_id)
        if patient_id:
            query = query.eq("patient_id", patient_id)
        if date:
            query = query.gte("appointment_date", to_iso_date(date)).lt(
                "appointment_date", to_iso_date(date + timedelta(days=1))
            )
        if status is not None:
            if isinstance(status, AppointmentStatus):
                query = query.eq("status", status.value)
            else:
                query = query.in_(
                    "status", sorted(AppointmentStatus(s).value for s in status)
                )

        query = query.order("appointment_time", desc=False)
        response = await self._execute(query, "list appointments", read=True)

        appointments = []
        for item in response.data or []:
            try:
                appointments.append(Appointment(**item))
            except PydanticValidationError as e:
                logger.warning(f"Skipping malformed appointment {item.get('id')}: {e}")
        return appointments

    async def create_appointment(self, appointment_data: AppointmentCreate) -> Appointment:
        """Create a new appointment. The backend may still reject the slot."""
        query = self.client.table("appointments").insert(appointment_data.to_record())
        response = await self._execute(query, "create appointment")

        if not response.data:
            raise StoreError("Failed to create appointment: no data returned")

        return Appointment(**response.data[0])

    async def update_appointment(
        self, appointment_id: str, appointment_data: AppointmentCreate
    ) -> Appointment:
        """Replace the bookable fields of an existing appointment."""
        record = appointment_data.to_record()
        record["updated_at"] = utc_now().isoformat()

        query = (
            self.client.table("appointments").update(record).eq("id", appointment_id)
        )
        response = await self._execute(query, "update appointment")

        if not response.data:
            raise NotFoundError(
                f"Appointment not found: {appointment_id}", field="appointment_id"
            )

        return Appointment(**response.data[0])

    # ========== Schedule Operations ==========

    async def list_doctor_schedules(self) -> List[DoctorSchedule]:
        """Get all recurring doctor schedules."""
        query = self.client.table("doctor_schedules").select("*").order("doctor_id")
        response = await self._execute(query, "list doctor schedules", read=True)

        schedules = []
        for item in response.data or []:
            try:
                schedules.append(DoctorSchedule(**item))
            except PydanticValidationError as e:
                logger.warning(f"Skipping malformed schedule {item.get('id')}: {e}")
        return schedules

    async def get_doctor_schedule(self, schedule_id: str) -> Optional[DoctorSchedule]:
        """Get a doctor schedule by ID."""
        query = self.client.table("doctor_schedules").select("*").eq("id", schedule_id)
        response = await self._execute(query, "get doctor schedule", read=True)

        if not response.data:
            return None

        try:
            return DoctorSchedule(**response.data[0])
        except PydanticValidationError as e:
            logger.error(f"Malformed schedule {schedule_id}: {e}")
            raise StoreError(
                f"Failed to get doctor schedule: schedule {schedule_id} is malformed"
            ) from e

    # ========== Reference Records ==========

    async def get_doctor(self, doctor_id: str) -> Optional[Doctor]:
        """Get doctor by ID (cached)."""
        cache_key = f"doctor:{doctor_id}"
        cached = self._get_from_cache(cache_key)
        if cached is not None:
            return cached

        query = self.client.table("doctors").select("*").eq("id", doctor_id)
        response = await self._execute(query, "get doctor", read=True)

        if response.data:
            doctor = Doctor(**response.data[0])
            self._set_cache(cache_key, doctor)
            return doctor
        return None

    async def get_patient(self, patient_id: str) -> Optional[Patient]:
        """Get patient by ID (cached)."""
        cache_key = f"patient:{patient_id}"
        cached = self._get_from_cache(cache_key)
        if cached is not None:
            return cached

        query = self.client.table("patients").select("*").eq("id", patient_id)
        response = await self._execute(query, "get patient", read=True)

        if response.data:
            patient = Patient(**response.data[0])
            self._set_cache(cache_key, patient)
            return patient
        return None

    # ========== Notifications ==========

    async def create_notification(self, notification: NotificationCreate) -> dict:
        """Create a notification record for a user."""
        query = self.client.table("notifications").insert(notification.model_dump())
        response = await self._execute(query, "create notification")

        if not response.data:
            raise StoreError("Failed to create notification: no data returned")

        return response.data[0]


# Global store instance
_store: Optional[SupabaseStore] = None


def get_store() -> SupabaseStore:
    """Get or create the store instance."""
    global _store
    if _store is None:
        _store = SupabaseStore()
    return _store

"""
Booking orchestration: validate, re-check availability, commit, notify.

A booking attempt moves through
``idle -> validating -> conflict_check -> committing -> done`` and may end
in ``rejected`` from any of the middle states. Validation never touches the
network. The availability re-check always runs on a fresh fetch and must
pass before the commit is issued; the backend store still has the final word.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Callable, List, Optional

from config import settings
from db import get_store
from models.appointment import (
    ACTIVE_STATUSES,
    Appointment,
    AppointmentCreate,
    BookingRequest,
)
from models.availability import BookingCapacity
from models.schedule import DoctorSchedule, Weekday
from notifications import DoctorNotifier, notify_in_background
from scheduling.availability import (
    compute_availability,
    compute_capacity,
    first_free_slot,
    is_slot_available,
)
from utils.constants import MAX_REASON_LENGTH
from utils.datetime_utils import (
    format_long_date,
    local_today,
    next_date_for_weekday,
    parse_iso_date,
)
from utils.exceptions import (
    BookingError,
    CapacityError,
    ConflictError,
    FormatError,
    NotFoundError,
    SchedulingError,
    StoreError,
    ValidationError,
)
from utils.logging_config import setup_logging
from utils.time_utils import generate_time_slots, quantize, require_quantized_time
from utils.validation import clean_identifier, sanitize_text

logger = setup_logging(name=__name__, log_file="booking.log")

REQUIRED_FIELDS = (
    ("patient_id", "Please select a patient"),
    ("doctor_id", "Please select a doctor"),
    ("department_id", "Please select a department"),
    ("appointment_date", "Please select an appointment date"),
    ("appointment_time", "Please select an appointment time"),
)


class BookingState(str, Enum):
    """States of a single booking attempt."""

    IDLE = "idle"
    VALIDATING = "validating"
    CONFLICT_CHECK = "conflict_check"
    COMMITTING = "committing"
    DONE = "done"
    REJECTED = "rejected"


_TRANSITIONS = {
    BookingState.IDLE: {BookingState.VALIDATING},
    BookingState.VALIDATING: {BookingState.CONFLICT_CHECK, BookingState.REJECTED},
    BookingState.CONFLICT_CHECK: {BookingState.COMMITTING, BookingState.REJECTED},
    BookingState.COMMITTING: {BookingState.DONE, BookingState.REJECTED},
    BookingState.DONE: set(),
    BookingState.REJECTED: set(),
}


@dataclass
class BookingAttempt:
    """One user-initiated booking attempt and everything it produced."""

    request: BookingRequest
    state: BookingState = BookingState.IDLE
    history: List[BookingState] = field(default_factory=lambda: [BookingState.IDLE])
    appointment: Optional[Appointment] = None
    capacity: Optional[BookingCapacity] = None
    error: Optional[SchedulingError] = None
    notification: Optional[asyncio.Task] = None

    def advance(self, state: BookingState) -> None:
        if state not in _TRANSITIONS[self.state]:
            raise ValueError(f"Illegal booking transition {self.state.value} -> {state.value}")
        self.state = state
        self.history.append(state)

    @property
    def accepted(self) -> bool:
        return self.state is BookingState.DONE

    @property
    def reason(self) -> Optional[str]:
        """User-facing rejection reason."""
        return str(self.error) if self.error else None


class BookingOrchestrator:
    """
    Runs booking and rescheduling attempts against the backend store.

    Args:
        store: Backend appointment store (defaults to the Supabase store)
        notifier: Doctor notifier (defaults to one on the same store)
        clock: Returns today's date; defaults to the configured timezone
    """

    def __init__(
        self,
        store=None,
        notifier: Optional[DoctorNotifier] = None,
        clock: Optional[Callable[[], date]] = None,
    ):
        self.store = store or get_store()
        self.notifier = notifier or DoctorNotifier(self.store)
        self.clock = clock or (lambda: local_today(settings.timezone))

    # ========== Public API ==========

    async def book(
        self, request: BookingRequest, schedule: Optional[DoctorSchedule] = None
    ) -> BookingAttempt:
        """
        Book a new appointment.

        Args:
            request: Form input
            schedule: Originating schedule for schedule-bound bookings; looked
                up by ``request.schedule_id`` when omitted

        Returns:
            The finished attempt, either accepted or rejected
        """
        attempt = BookingAttempt(request=request)
        try:
            draft = self._validate(attempt, allow_past=False)
            schedule = await self._resolve_schedule(request, schedule)
            self._match_schedule(draft, schedule)
            await self._check_availability(attempt, draft, schedule)

            attempt.advance(BookingState.COMMITTING)
            appointment = await self._commit(draft, schedule)
        except (BookingError, StoreError) as e:
            return self._reject(attempt, e)

        self._accept(attempt, appointment, schedule)
        attempt.notification = notify_in_background(
            lambda: self.notifier.notify_booking(appointment),
            name=f"notify-booking-{appointment.id}",
        )
        return attempt

    async def reschedule(
        self,
        appointment_id: str,
        request: BookingRequest,
        schedule: Optional[DoctorSchedule] = None,
    ) -> BookingAttempt:
        """
        Change an existing appointment.

        The appointment's own current slot never counts as a conflict, so it
        can keep its time. Past dates are allowed so historical appointments
        can still have their status updated. No notification is sent.
        """
        attempt = BookingAttempt(request=request)
        try:
            draft = self._validate(attempt, allow_past=True)
            schedule = await self._resolve_schedule(request, schedule)
            self._match_schedule(draft, schedule)
            await self._check_availability(
                attempt, draft, schedule, exclude_id=appointment_id
            )

            attempt.advance(BookingState.COMMITTING)
            appointment = await self._commit(
                draft, schedule, appointment_id=appointment_id
            )
        except (BookingError, StoreError) as e:
            return self._reject(attempt, e)

        self._accept(attempt, appointment, schedule)
        return attempt

    async def draft_from_schedule(
        self, schedule: DoctorSchedule, today: Optional[date] = None
    ) -> BookingRequest:
        """
        Prefill a booking from a weekly schedule.

        The date is the schedule's next occurrence after today and the time is
        the schedule start snapped to the slot grid. The department comes from
        the doctor record when it can be read.
        """
        today = today or self.clock()
        department_id = None
        try:
            doctor = await self.store.get_doctor(schedule.doctor_id)
            if doctor:
                department_id = doctor.department_id
        except SchedulingError as e:
            logger.warning(f"Could not load doctor {schedule.doctor_id} for draft: {e}")

        return BookingRequest(
            doctor_id=schedule.doctor_id,
            department_id=department_id,
            appointment_date=next_date_for_weekday(schedule.day_of_week, today),
            appointment_time=quantize(schedule.start_time),
            schedule_id=schedule.id,
        )

    # ========== Stages ==========

    def _validate(self, attempt: BookingAttempt, allow_past: bool) -> AppointmentCreate:
        attempt.advance(BookingState.VALIDATING)
        request = attempt.request

        values = {
            name: clean_identifier(getattr(request, name))
            for name in ("patient_id", "doctor_id", "department_id")
        }
        values["appointment_date"] = request.appointment_date
        values["appointment_time"] = request.appointment_time

        for name, message in REQUIRED_FIELDS:
            if not values[name]:
                raise ValidationError(message, field=name)

        appointment_date = values["appointment_date"]
        if isinstance(appointment_date, str):
            try:
                appointment_date = parse_iso_date(appointment_date)
            except ValueError as e:
                raise FormatError(
                    f"Please provide a valid appointment date (YYYY-MM-DD), "
                    f"got {request.appointment_date!r}",
                    field="appointment_date",
                ) from e

        if not allow_past and appointment_date < self.clock():
            raise ValidationError(
                f"Appointment date {format_long_date(appointment_date)} is in the past",
                field="appointment_date",
                date=appointment_date,
            )

        time = require_quantized_time(request.appointment_time)
        reason = sanitize_text(request.reason or "", max_length=MAX_REASON_LENGTH)

        return AppointmentCreate(
            patient_id=values["patient_id"],
            doctor_id=values["doctor_id"],
            department_id=values["department_id"],
            appointment_date=appointment_date,
            appointment_time=str(time),
            status=request.status,
            reason=reason or None,
        )

    async def _resolve_schedule(
        self, request: BookingRequest, schedule: Optional[DoctorSchedule]
    ) -> Optional[DoctorSchedule]:
        if schedule is not None or not request.schedule_id:
            return schedule

        found = await self.store.get_doctor_schedule(request.schedule_id)
        if found is None:
            raise NotFoundError(
                "The selected schedule could not be found. Please refresh and try again.",
                field="schedule_id",
            )
        return found

    def _match_schedule(
        self, draft: AppointmentCreate, schedule: Optional[DoctorSchedule]
    ) -> None:
        """A schedule-bound booking must be for that schedule's doctor and weekday."""
        if schedule is None:
            return

        if draft.doctor_id != schedule.doctor_id:
            raise ValidationError(
                "The selected doctor does not match the selected schedule. "
                "Please choose the schedule again.",
                field="doctor_id",
            )

        weekday = Weekday.from_date(draft.appointment_date)
        if weekday is not schedule.day_of_week:
            raise ValidationError(
                f"{format_long_date(draft.appointment_date)} is not a "
                f"{schedule.day_of_week.value}. This schedule only takes bookings "
                f"on {schedule.day_of_week.value}s.",
                field="appointment_date",
                date=draft.appointment_date,
            )

    async def _check_availability(
        self,
        attempt: BookingAttempt,
        draft: AppointmentCreate,
        schedule: Optional[DoctorSchedule],
        exclude_id: Optional[str] = None,
    ) -> None:
        attempt.advance(BookingState.CONFLICT_CHECK)

        if draft.status not in ACTIVE_STATUSES:
            # An inactive appointment does not hold a slot
            return

        try:
            appointments = await self.store.list_appointments(
                doctor_id=draft.doctor_id,
                date=draft.appointment_date,
                status=ACTIVE_STATUSES,
            )
        except StoreError as e:
            logger.warning(
                f"Could not check existing appointments for doctor {draft.doctor_id} "
                f"on {draft.appointment_date}, leaving the decision to the backend: {e}"
            )
            return

        if not is_slot_available(
            draft.doctor_id,
            draft.appointment_date,
            draft.appointment_time,
            appointments,
            exclude_id=exclude_id,
        ):
            raise self._conflict_error(draft, schedule, appointments, exclude_id)

        if schedule is not None and schedule.has_capacity_limit:
            capacity = compute_capacity(
                schedule, draft.appointment_date, appointments, exclude_id=exclude_id
            )
            attempt.capacity = capacity
            if capacity.is_full:
                raise CapacityError(
                    f"This schedule is fully booked on "
                    f"{format_long_date(draft.appointment_date)}. Maximum "
                    f"{capacity.max_patients} patient(s) allowed and {capacity.booked} "
                    f"already booked. Please choose another schedule.",
                    max_patients=capacity.max_patients,
                    booked=capacity.booked,
                    date=draft.appointment_date,
                    time=draft.appointment_time,
                )

    async def _commit(
        self,
        draft: AppointmentCreate,
        schedule: Optional[DoctorSchedule],
        appointment_id: Optional[str] = None,
    ) -> Appointment:
        try:
            if appointment_id:
                return await self.store.update_appointment(appointment_id, draft)
            return await self.store.create_appointment(draft)
        except ConflictError as e:
            # Lost a race the pre-check could not see
            raise self._conflict_error(draft, schedule, backend_message=e.message) from e
        except NotFoundError:
            self.store.clear_reference_cache()
            raise

    # ========== Outcomes ==========

    def _accept(
        self,
        attempt: BookingAttempt,
        appointment: Appointment,
        schedule: Optional[DoctorSchedule],
    ) -> None:
        attempt.appointment = appointment
        time = appointment.time_of_day
        if (
            attempt.capacity is not None
            and time is not None
            and schedule.window_contains(time)
        ):
            attempt.capacity = attempt.capacity.model_copy(
                update={"booked": attempt.capacity.booked + 1}
            )
        attempt.advance(BookingState.DONE)
        logger.info(
            f"Appointment {appointment.id} booked with doctor {appointment.doctor_id} "
            f"on {appointment.appointment_date} at {appointment.appointment_time}"
        )

    def _reject(self, attempt: BookingAttempt, error: SchedulingError) -> BookingAttempt:
        stage = attempt.state.value
        attempt.error = error
        attempt.advance(BookingState.REJECTED)
        logger.warning(
            f"Booking rejected during {stage} ({type(error).__name__}): {error}"
        )
        return attempt

    def _conflict_error(
        self,
        draft: AppointmentCreate,
        schedule: Optional[DoctorSchedule] = None,
        appointments: Optional[List[Appointment]] = None,
        exclude_id: Optional[str] = None,
        backend_message: Optional[str] = None,
    ) -> ConflictError:
        message = (
            f"This time has already been taken by another patient. The doctor "
            f"already has an appointment on {format_long_date(draft.appointment_date)} "
            f"at {draft.appointment_time}. Please choose another time."
        )
        if schedule is not None:
            message += f" Available times: {schedule.start_time} - {schedule.end_time}."
            if appointments is not None:
                availability = compute_availability(
                    draft.doctor_id,
                    draft.appointment_date,
                    appointments,
                    slots=generate_time_slots(schedule.start, schedule.end),
                    exclude_id=exclude_id,
                )
                next_free = first_free_slot(availability)
                if next_free is not None:
                    message += f" Earliest free time: {next_free}."
        if backend_message:
            message += f" ({backend_message})"

        return ConflictError(
            message,
            field="appointment_time",
            date=draft.appointment_date,
            time=draft.appointment_time,
        )

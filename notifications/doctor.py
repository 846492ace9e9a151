"""
Doctor notifications for new appointments.

Delivery is best-effort: a failed notification is logged and never turns a
committed booking into a failure.
"""

import asyncio
from typing import Awaitable, Callable, Optional, Set

from config import settings
from models.appointment import Appointment
from models.notification import NotificationCreate
from utils.datetime_utils import format_long_date
from utils.exceptions import NotificationError, SchedulingError
from utils.logging_config import setup_logging

logger = setup_logging(
    name=__name__, log_file="notifications.log"
)

# Strong references to in-flight notification tasks
_background_tasks: Set[asyncio.Task] = set()


def build_booking_message(
    appointment: Appointment, patient_name: Optional[str] = None
) -> str:
    """Compose the message a doctor receives for a new appointment."""
    when = format_long_date(appointment.appointment_date)
    message = (
        f"New appointment booked! {patient_name or 'A patient'} has scheduled an "
        f"appointment with you on {when} at {appointment.appointment_time or 'TBD'}."
    )
    if appointment.reason:
        message += f" Reason: {appointment.reason}"
    return message


class DoctorNotifier:
    """Sends in-app notifications to doctors through the backend store."""

    def __init__(self, store):
        self.store = store

    async def notify(self, doctor_user_id: str, message: str) -> bool:
        """
        Send a notification to a doctor's user account.

        Args:
            doctor_user_id: User ID linked to the doctor record
            message: Notification text

        Returns:
            True if sent successfully, False otherwise
        """
        if not settings.notifications_enabled:
            logger.debug(f"Notifications disabled, not notifying {doctor_user_id}")
            return False

        try:
            await self.store.create_notification(
                NotificationCreate(user_id=doctor_user_id, message=message)
            )
        except SchedulingError as e:
            logger.error(
                f"Failed to notify doctor user {doctor_user_id}: {e}", exc_info=True
            )
            return False

        logger.info(f"Notification sent to doctor user {doctor_user_id}")
        return True

    async def notify_booking(
        self, appointment: Appointment, patient_name: Optional[str] = None
    ) -> bool:
        """
        Tell the appointment's doctor about a new booking.

        Resolves the doctor's user account and, if not given, the patient's
        name.

        Raises:
            NotificationError: If the doctor has no user account to notify
        """
        doctor = await self.store.get_doctor(appointment.doctor_id)
        if not doctor or not doctor.user_id:
            raise NotificationError(
                f"Doctor {appointment.doctor_id} has no user account, cannot send notification"
            )

        if patient_name is None:
            patient = await self.store.get_patient(appointment.patient_id)
            if patient:
                patient_name = patient.full_name

        message = build_booking_message(appointment, patient_name)
        return await self.notify(doctor.user_id, message)


def _log_task_result(task: asyncio.Task) -> None:
    _background_tasks.discard(task)
    if task.cancelled():
        logger.warning(f"Notification task {task.get_name()} was cancelled")
        return
    error = task.exception()
    if error is not None:
        logger.warning(
            f"Notification task {task.get_name()} failed: {error}",
            exc_info=(type(error), error, error.__traceback__),
        )


def notify_in_background(
    send: Callable[[], Awaitable[bool]], name: str = "doctor-notification"
) -> asyncio.Task:
    """
    Run a notification as a detached task.

    The caller never awaits the task; its outcome is only logged.

    Args:
        send: Zero-argument coroutine function performing the delivery
        name: Task name for logs

    Returns:
        The spawned task (useful for tests and shutdown)
    """
    task = asyncio.create_task(send(), name=name)
    _background_tasks.add(task)
    task.add_done_callback(_log_task_result)
    return task


async def drain_notifications() -> None:
    """Wait for in-flight notifications, e.g. before shutdown."""
    if _background_tasks:
        await asyncio.gather(*list(_background_tasks), return_exceptions=True)

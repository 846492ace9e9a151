"""
Per-session availability for the doctor and date currently being booked.

The map is derived data: it is thrown away whenever the doctor or date
changes and rebuilt from a fresh fetch. Every fetch is tagged with a
monotonically increasing token; a response that arrives after a newer
selection, refresh or close is discarded.
"""

from datetime import date
from typing import List, Optional

from config import settings
from models.appointment import ACTIVE_STATUSES, Appointment
from models.availability import AvailabilityMap
from scheduling.availability import compute_availability
from utils.exceptions import StoreError
from utils.logging_config import setup_logging
from utils.time_utils import generate_time_slots

logger = setup_logging(name=__name__)


class AvailabilityTracker:
    """
    Availability cache for one booking form.

    Args:
        store: Backend appointment store
        slots: Slots to report on (default: the configured working day)
        exclude_id: Appointment being edited, never shown as booked
    """

    def __init__(
        self,
        store,
        slots: Optional[List[str]] = None,
        exclude_id: Optional[str] = None,
    ):
        self.store = store
        self.slots = (
            slots
            if slots is not None
            else generate_time_slots(settings.day_start, settings.day_end)
        )
        self.exclude_id = exclude_id
        self.doctor_id: Optional[str] = None
        self.date: Optional[date] = None
        self.availability: AvailabilityMap = {}
        self._token = 0
        self._closed = False

    @property
    def token(self) -> int:
        return self._token

    def select(self, doctor_id: Optional[str], on_date: Optional[date]) -> int:
        """Switch to another doctor/date; the current map is dropped."""
        self.doctor_id = doctor_id
        self.date = on_date
        return self.invalidate()

    def invalidate(self) -> int:
        """Drop the map and orphan any in-flight fetch."""
        self._token += 1
        self.availability = {}
        return self._token

    async def refresh(self) -> bool:
        """
        Rebuild the map from a fresh fetch.

        Returns:
            True if the result was applied, False if nothing is selected, the
            fetch failed, or the response went stale while in flight
        """
        if self._closed or not self.doctor_id or not self.date:
            self.availability = {}
            return False

        self._token += 1
        token = self._token
        doctor_id, on_date = self.doctor_id, self.date

        try:
            appointments = await self.store.list_appointments(
                doctor_id=doctor_id, date=on_date, status=ACTIVE_STATUSES
            )
        except StoreError as e:
            logger.error(f"Error fetching booked times for doctor {doctor_id}: {e}")
            return False

        if token != self._token or self._closed:
            logger.debug(f"Discarding stale availability for {doctor_id} on {on_date}")
            return False

        self.availability = compute_availability(
            doctor_id, on_date, appointments, slots=self.slots, exclude_id=self.exclude_id
        )
        return True

    def is_available(self, time: str) -> Optional[bool]:
        """True if free, False if booked, None if not checked."""
        return self.availability.get(time)

    def mark_booked(self, time: str) -> None:
        """Show a time as taken right after this session booked it."""
        self.availability[time] = False

    async def record_booking(self, appointment: Appointment) -> bool:
        """
        Reflect a successful booking, then re-derive from the backend.

        Bookings for another doctor or date only orphan in-flight fetches.
        """
        if (
            appointment.doctor_id == self.doctor_id
            and appointment.appointment_date == self.date
            and appointment.appointment_time
        ):
            self.mark_booked(appointment.appointment_time)
        return await self.refresh()

    def close(self) -> None:
        """The form was abandoned; nothing in flight may touch the map."""
        self._closed = True
        self.invalidate()

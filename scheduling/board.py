"""
Public doctor-schedule board.

Lists every weekly schedule with its next bookable date, its booked count
against max_patients and its slot availability. Counts for all schedules
are fetched concurrently.
"""

import asyncio
from dataclasses import dataclass
from datetime import date
from typing import Callable, List, Optional

from config import settings
from db import get_store
from models.appointment import ACTIVE_STATUSES
from models.availability import AvailabilityMap, BookingCapacity
from models.schedule import DoctorSchedule
from scheduling.availability import compute_availability, compute_capacity
from utils.datetime_utils import local_today, next_date_for_weekday
from utils.exceptions import StoreError
from utils.logging_config import setup_logging
from utils.time_utils import generate_time_slots

logger = setup_logging(name=__name__)


@dataclass
class ScheduleAvailability:
    """A schedule resolved to its next date, with what is left to book."""

    schedule: DoctorSchedule
    date: date
    capacity: BookingCapacity
    availability: AvailabilityMap

    @property
    def bookable(self) -> bool:
        """Unlimited schedules are always bookable."""
        return not self.capacity.is_full

    @property
    def free_slots(self) -> List[str]:
        return [time for time, is_free in self.availability.items() if is_free]


class ScheduleBoard:
    """Builds the schedule overview shown to patients booking without login."""

    def __init__(self, store=None, clock: Optional[Callable[[], date]] = None):
        self.store = store or get_store()
        self.clock = clock or (lambda: local_today(settings.timezone))

    async def load(self, today: Optional[date] = None) -> List[ScheduleAvailability]:
        """
        Resolve every schedule and count its bookings.

        A schedule whose bookings cannot be read is shown with zero bookings;
        the booking itself re-checks before committing.

        Raises:
            StoreError: If the schedules themselves cannot be read
        """
        today = today or self.clock()
        schedules = await self.store.list_doctor_schedules()

        results = await asyncio.gather(
            *(self._resolve(schedule, today) for schedule in schedules)
        )
        return list(results)

    async def bookable(self, today: Optional[date] = None) -> List[ScheduleAvailability]:
        """Only schedules with capacity left."""
        return [entry for entry in await self.load(today) if entry.bookable]

    async def _resolve(
        self, schedule: DoctorSchedule, today: date
    ) -> ScheduleAvailability:
        on_date = next_date_for_weekday(schedule.day_of_week, today)

        try:
            appointments = await self.store.list_appointments(
                doctor_id=schedule.doctor_id, date=on_date, status=ACTIVE_STATUSES
            )
        except StoreError as e:
            logger.error(
                f"Error fetching appointments count for schedule {schedule.id}: {e}"
            )
            appointments = []

        return ScheduleAvailability(
            schedule=schedule,
            date=on_date,
            capacity=compute_capacity(schedule, on_date, appointments),
            availability=compute_availability(
                schedule.doctor_id,
                on_date,
                appointments,
                slots=generate_time_slots(schedule.start, schedule.end),
            ),
        )

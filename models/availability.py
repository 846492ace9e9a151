"""Derived availability values for one doctor on one date."""

from typing import Dict, Optional

from pydantic import BaseModel, Field

# HH:MM -> True (free) / False (booked). A missing key means "not checked".
AvailabilityMap = Dict[str, bool]


class BookingCapacity(BaseModel):
    """Booked count of a schedule window against its max_patients limit."""

    schedule_id: Optional[str] = None
    max_patients: Optional[int] = Field(default=None, ge=0)
    booked: int = Field(default=0, ge=0)

    @property
    def unlimited(self) -> bool:
        return not self.max_patients

    @property
    def remaining(self) -> Optional[int]:
        """Slots left, or None for an unlimited schedule."""
        if self.unlimited:
            return None
        return max(self.max_patients - self.booked, 0)

    @property
    def is_full(self) -> bool:
        return not self.unlimited and self.booked >= self.max_patients

    def __str__(self) -> str:
        if self.unlimited:
            return f"{self.booked} booked"
        return f"{self.booked}/{self.max_patients}"

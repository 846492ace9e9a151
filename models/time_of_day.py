"""Wall-clock time value used for slots and appointment times."""

import re
from dataclasses import dataclass

from utils.constants import HOURS_IN_DAY, MINUTES_IN_HOUR, TIME_PATTERN
from utils.exceptions import FormatError

_TIME_RE = re.compile(TIME_PATTERN)


@dataclass(frozen=True, order=True)
class TimeOfDay:
    """Immutable HH:MM time of day, ordered by minutes since midnight."""

    hour: int
    minute: int

    def __post_init__(self):
        if not 0 <= self.hour < HOURS_IN_DAY:
            raise ValueError(f"Hour out of range: {self.hour}")
        if not 0 <= self.minute < MINUTES_IN_HOUR:
            raise ValueError(f"Minute out of range: {self.minute}")

    @classmethod
    def parse(cls, value: str, field: str = "time") -> "TimeOfDay":
        """
        Parse a zero-padded 24-hour HH:MM string.

        Args:
            value: Time string from the wire or a form
            field: Field name reported in the error

        Returns:
            Parsed TimeOfDay

        Raises:
            FormatError: If value is not a string matching HH:MM
        """
        if not isinstance(value, str) or not _TIME_RE.fullmatch(value):
            raise FormatError(
                f"Please provide valid time format (HH:MM) for {field}, got {value!r}",
                field=field,
                time=value if isinstance(value, str) else None,
            )
        hours, minutes = value.split(":")
        return cls(int(hours), int(minutes))

    @classmethod
    def from_minutes(cls, total_minutes: int) -> "TimeOfDay":
        """Build a time from minutes since midnight."""
        hours, minutes = divmod(total_minutes, MINUTES_IN_HOUR)
        return cls(hours, minutes)

    @property
    def total_minutes(self) -> int:
        return self.hour * MINUTES_IN_HOUR + self.minute

    def __str__(self) -> str:
        return f"{self.hour:02d}:{self.minute:02d}"


def strip_seconds(value):
    """Reduce a Postgres ``HH:MM:SS`` time column value to ``HH:MM``."""
    if isinstance(value, str) and re.fullmatch(r"\d{2}:\d{2}:\d{2}(\.\d+)?", value):
        return value[:5]
    return value

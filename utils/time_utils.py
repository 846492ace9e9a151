"""
Time-slot generation and 10-minute grid validation.

All arithmetic is done in minutes since midnight and re-rendered as
zero-padded HH:MM.
"""

import re
from typing import List, Optional, Union

from models.time_of_day import TimeOfDay
from utils.constants import (
    DEFAULT_DAY_END,
    DEFAULT_DAY_START,
    DEFAULT_FALLBACK_TIME,
    HOURS_IN_DAY,
    MINUTES_IN_HOUR,
    SLOT_STEP_MINUTES,
    TIME_PATTERN,
)
from utils.exceptions import QuantizationError

TimeLike = Union[str, TimeOfDay]

_TIME_RE = re.compile(TIME_PATTERN)


def _as_time(value: TimeLike, field: str) -> TimeOfDay:
    if isinstance(value, TimeOfDay):
        return value
    return TimeOfDay.parse(value, field=field)


def generate_time_slots(
    start: TimeLike = DEFAULT_DAY_START,
    end: TimeLike = DEFAULT_DAY_END,
    step_minutes: int = SLOT_STEP_MINUTES,
) -> List[str]:
    """
    Generate bookable start times from ``start`` up to, not including, ``end``.

    ``end`` is the final leaving time of the window, so it is never a slot.

    Args:
        start: First slot (HH:MM)
        end: End of the window (HH:MM)
        step_minutes: Distance between slots

    Returns:
        Ordered list of HH:MM strings; empty when start >= end

    Raises:
        FormatError: If start or end is not HH:MM
        ValueError: If step_minutes is not positive
    """
    if step_minutes <= 0:
        raise ValueError(f"step_minutes must be positive, got {step_minutes}")

    start_minutes = _as_time(start, "start_time").total_minutes
    end_minutes = _as_time(end, "end_time").total_minutes

    return [
        str(TimeOfDay.from_minutes(minutes))
        for minutes in range(start_minutes, end_minutes, step_minutes)
    ]


def is_quantized(value, step_minutes: int = SLOT_STEP_MINUTES) -> bool:
    """
    Check that a value is an HH:MM string on the slot grid.

    Never raises: malformed or non-string input is simply not quantized.
    """
    if not value or not isinstance(value, str):
        return False
    if not _TIME_RE.fullmatch(value):
        return False
    minutes = int(value.split(":")[1])
    return minutes % step_minutes == 0


def quantize(value, step_minutes: int = SLOT_STEP_MINUTES) -> str:
    """
    Round a time to the nearest grid step (half rounds up).

    Rounding up to 60 carries into the hour. A carry past 23 clamps to the
    last slot of the day rather than wrapping to tomorrow. Malformed input
    falls back to 08:00.

    Examples:
        >>> quantize("08:04")
        '08:00'
        >>> quantize("08:55")
        '09:00'
        >>> quantize("23:57")
        '23:50'
    """
    if not value or not isinstance(value, str) or not _TIME_RE.fullmatch(value):
        return DEFAULT_FALLBACK_TIME

    hours, minutes = (int(part) for part in value.split(":"))
    rounded = (2 * minutes + step_minutes) // (2 * step_minutes) * step_minutes

    if rounded >= MINUTES_IN_HOUR:
        hours += 1
        rounded = 0

    if hours >= HOURS_IN_DAY:
        hours = HOURS_IN_DAY - 1
        rounded = MINUTES_IN_HOUR - step_minutes

    return str(TimeOfDay(hours, rounded))


def require_quantized_time(
    value, field: str = "appointment_time", step_minutes: int = SLOT_STEP_MINUTES
) -> TimeOfDay:
    """
    Submit-time check: the value must be HH:MM and on the grid.

    Raises:
        FormatError: If value is not HH:MM
        QuantizationError: If value is HH:MM but off the grid
    """
    time = TimeOfDay.parse(value, field=field)
    if time.minute % step_minutes != 0:
        raise QuantizationError(
            f"Appointment time must be in {step_minutes}-minute intervals "
            f"(e.g., 08:00, 08:10, 08:20, 08:30), got {value}",
            field=field,
            time=value,
        )
    return time


def slot_options(
    start: TimeLike = DEFAULT_DAY_START,
    end: TimeLike = DEFAULT_DAY_END,
    selected: Optional[str] = None,
    step_minutes: int = SLOT_STEP_MINUTES,
) -> List[str]:
    """
    Slots for a picker, keeping an already selected time selectable.

    A quantized ``selected`` time outside the generated window (an existing
    appointment being edited, for instance) is merged in, in order.
    """
    slots = generate_time_slots(start, end, step_minutes)
    if selected and selected not in slots and is_quantized(selected, step_minutes):
        slots = sorted(slots + [selected])
    return slots

"""
Application-wide constants.
Centralizes magic numbers and configuration values.
"""

# Slot grid
SLOT_STEP_MINUTES = 10  # Every bookable time is a multiple of this
DEFAULT_FALLBACK_TIME = "08:00"  # quantize() result for malformed input
DEFAULT_DAY_START = "08:00"
DEFAULT_DAY_END = "18:00"

# Wire formats
TIME_PATTERN = r"^([01][0-9]|2[0-3]):[0-5][0-9]$"
MINUTES_IN_HOUR = 60
HOURS_IN_DAY = 24
DAYS_IN_WEEK = 7

# Validation limits
MAX_REASON_LENGTH = 500

# Store
NOTIFICATION_TYPE_APPOINTMENT = "appointment"
READ_RETRY_DELAY = 0.5  # seconds
READ_RETRY_BACKOFF = 2.0  # exponential backoff multiplier

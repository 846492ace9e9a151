"""Doctor notifications."""

from .doctor import (
    DoctorNotifier,
    build_booking_message,
    drain_notifications,
    notify_in_background,
)

__all__ = [
    "DoctorNotifier",
    "build_booking_message",
    "drain_notifications",
    "notify_in_background",
]

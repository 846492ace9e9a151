"""Notification models."""

from pydantic import BaseModel, Field

from utils.constants import NOTIFICATION_TYPE_APPOINTMENT


class NotificationCreate(BaseModel):
    """Notification creation model."""

    user_id: str = Field(..., description="Recipient user ID")
    message: str = Field(..., min_length=1)
    notification_type: str = NOTIFICATION_TYPE_APPOINTMENT
    is_read: bool = False

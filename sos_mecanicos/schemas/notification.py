"""
Pydantic schemas for notifications.
"""
from pydantic import BaseModel, ConfigDict
from datetime import datetime
from typing import Optional
from sos_mecanicos.models.notification import NotificationType


class Notification(BaseModel):
    id: int
    user_id: int
    title: str
    message: str
    type: NotificationType
    reference_id: Optional[int] = None
    read: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class UnreadCount(BaseModel):
    unread: int

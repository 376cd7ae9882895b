"""
Pydantic schemas for in-app notifications.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel

from ..models.notification import NotificationType


class NotificationResponse(BaseModel):
    id: UUID
    event_id: Optional[UUID]
    type: NotificationType
    title: str
    message: str
    is_read: bool
    created_at: datetime

    model_config = {"from_attributes": True}

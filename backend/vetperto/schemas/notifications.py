# backend/vetperto/schemas/notifications.py

from datetime import datetime
from typing import Optional
from pydantic import BaseModel


class NotificationRead(BaseModel):
    id: int
    title: str
    message: str
    type: str
    is_read: bool
    read_at: Optional[datetime] = None
    action_url: Optional[str] = None
    action_label: Optional[str] = None
    related_appointment_id: Optional[int] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class UnreadCount(BaseModel):
    unread: int


class MarkAllReadResponse(BaseModel):
    updated: int

"""Pydantic schemas for notifications"""
from pydantic import BaseModel, ConfigDict
from typing import Optional, List, Dict, Any
from datetime import datetime

from gatepass.models.notification import NotificationType


class NotificationResponse(BaseModel):
    id: str
    title: str
    message: str
    type: NotificationType
    data: Optional[Dict[str, Any]] = None
    is_read: bool
    read_at: Optional[datetime] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class NotificationListResponse(BaseModel):
    success: bool = True
    notifications: List[NotificationResponse]
    unread_count: int
    total: int
    page: int
    limit: int
    pages: int

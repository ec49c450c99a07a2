"""
Notification DTOs
"""

from pydantic import BaseModel
from typing import Optional
from datetime import datetime
from .models import NotificationType, ResourceType


class NotificationResponse(BaseModel):
    id: int
    title: str
    description: str
    type: NotificationType
    user_id: Optional[int]
    resource_type: ResourceType
    resource_id: Optional[int]
    is_read: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class MarkAllReadResponse(BaseModel):
    updated_count: int

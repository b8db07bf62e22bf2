"""
Notification schemas for the user inbox.
"""
from datetime import datetime
from typing import Dict, Optional

from core.schema_base import HTTPSchemaModel


class NotificationRead(HTTPSchemaModel):
    id: int
    user_id: int
    request_id: Optional[int] = None
    title: str
    message: str
    type: str
    is_read: bool
    created_at: datetime


class NotificationStats(HTTPSchemaModel):
    total: int
    unread: int
    by_type: Dict[str, int]


class MarkAllReadResult(HTTPSchemaModel):
    updated: int

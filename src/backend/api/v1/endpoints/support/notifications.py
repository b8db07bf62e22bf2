"""
Notification Endpoints.

The inbox of the authenticated user. Notifications are written by the
request lifecycle (assignment, status change, overdue) inside the same
transaction as the change that caused them.

Endpoints:
- GET / - List own notifications (optionally unread only)
- GET /stats - Totals, unread count and counts per type
- PUT /read-all - Mark every own notification as read
- PUT /{notification_id}/read - Mark one own notification as read

Authentication:
- All endpoints require authentication
- Users only see their own notifications
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from api.schemas.notification import MarkAllReadResult, NotificationRead, NotificationStats
from api.services.notification_service import NotificationService
from core.config import settings
from core.database import get_session
from core.dependencies import get_acting_user
from core.permissions import ActingUser
from core.schema_base import ApiResponse, PaginationMeta

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=ApiResponse[List[NotificationRead]])
async def list_notifications(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.pagination.default_page_size, ge=1, le=settings.pagination.max_page_size),
    unread_only: bool = Query(False, alias="unreadOnly"),
    db: AsyncSession = Depends(get_session),
    actor: ActingUser = Depends(get_acting_user),
):
    """
    List the caller's notifications, newest first.

    The unread count is reported in ``message`` so the badge can be updated
    without a second call.
    """
    notifications, total, unread = await NotificationService.list_for_user(
        db, actor.id, page=page, limit=limit, unread_only=unread_only
    )
    return ApiResponse(
        message=f"{unread} unread",
        data=[NotificationRead.model_validate(n) for n in notifications],
        meta=PaginationMeta.build(page, limit, total),
    )


@router.get("/stats", response_model=ApiResponse[NotificationStats])
async def get_notification_stats(
    db: AsyncSession = Depends(get_session),
    actor: ActingUser = Depends(get_acting_user),
):
    stats = await NotificationService.get_stats(db, actor.id)
    return ApiResponse(data=NotificationStats(**stats))


@router.put("/read-all", response_model=ApiResponse[MarkAllReadResult])
async def mark_all_notifications_read(
    db: AsyncSession = Depends(get_session),
    actor: ActingUser = Depends(get_acting_user),
):
    updated = await NotificationService.mark_all_as_read(db, actor.id)
    logger.info(f"User {actor.username} marked {updated} notifications as read")
    return ApiResponse(
        message="All notifications marked as read",
        data=MarkAllReadResult(updated=updated),
    )


@router.put("/{notification_id}/read", response_model=ApiResponse[NotificationRead])
async def mark_notification_read(
    notification_id: int,
    db: AsyncSession = Depends(get_session),
    actor: ActingUser = Depends(get_acting_user),
):
    notification = await NotificationService.mark_as_read(db, notification_id, actor.id)
    return ApiResponse(
        message="Notification marked as read",
        data=NotificationRead.model_validate(notification),
    )

"""
Notification Service

Writes in-app notification rows for lifecycle events and serves each user's
inbox.

Contract:
- Dispatch helpers only add and flush; the calling lifecycle operation owns
  the transaction, so notifications commit or roll back with it
- A recipient gets at most one notification per event
- Rows are never edited except to flip is_read
"""

import logging
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from core.decorators import (
    critical_database_operation,
    transactional_database_operation,
)
from core.exceptions import NotFoundError
from db import Notification, NotificationType, User, UserRole

logger = logging.getLogger(__name__)


class NotificationService:
    """In-app notification dispatch and inbox queries."""

    # ==================== Dispatch ====================

    @staticmethod
    async def create_notification(
        db: AsyncSession,
        user_id: int,
        title: str,
        message: str,
        notification_type: NotificationType,
        request_id: Optional[int] = None,
    ) -> Notification:
        """
        Add one notification to the current transaction.

        Args:
            db: Database session
            user_id: Recipient
            title: Short headline
            message: Body text
            notification_type: Kind of event
            request_id: Related request, if the recipient can still open it

        Returns:
            The flushed Notification
        """
        notification = Notification(
            user_id=user_id,
            request_id=request_id,
            title=title,
            message=message,
            type=NotificationType(notification_type).value,
        )
        db.add(notification)
        await db.flush()

        logger.info(
            f"[NOTIFICATION] Created {notification.type} for user {user_id}, "
            f"request_id={request_id}, notification_id={notification.id}"
        )
        return notification

    @staticmethod
    async def notify_many(
        db: AsyncSession,
        user_ids: Iterable[Optional[int]],
        title: str,
        message: str,
        notification_type: NotificationType,
        request_id: Optional[int] = None,
        exclude_user_id: Optional[int] = None,
    ) -> List[Notification]:
        """
        Add one notification per distinct recipient and flush once.

        None ids and ``exclude_user_id`` (usually the actor) are skipped.
        """
        recipients: List[int] = []
        for user_id in user_ids:
            if user_id is None or user_id == exclude_user_id or user_id in recipients:
                continue
            recipients.append(user_id)

        if not recipients:
            return []

        notification_type = NotificationType(notification_type).value
        notifications = [
            Notification(
                user_id=user_id,
                request_id=request_id,
                title=title,
                message=message,
                type=notification_type,
            )
            for user_id in recipients
        ]
        db.add_all(notifications)
        await db.flush()

        logger.info(
            f"[NOTIFICATION] Sent {notification_type} to {len(recipients)} users, "
            f"request_id={request_id}"
        )
        return notifications

    @staticmethod
    async def get_department_supervisor_ids(db: AsyncSession, department_id: int) -> List[int]:
        """Active department managers and section supervisors of a department."""
        result = await db.execute(
            select(User.id)
            .where(
                and_(
                    User.department_id == department_id,
                    User.role.in_([
                        UserRole.DEPARTMENT_MANAGER.value,
                        UserRole.SECTION_SUPERVISOR.value,
                    ]),
                    User.is_active.is_(True),
                )
            )
            .order_by(User.id)
        )
        return list(result.scalars().all())

    @staticmethod
    async def get_request_watcher_ids(db: AsyncSession, department_id: int) -> List[int]:
        """
        Managers and supervisors who can see a department's requests.

        Company and deputy managers see every department; department managers
        and section supervisors only their own.
        """
        result = await db.execute(
            select(User.id)
            .where(
                and_(
                    User.is_active.is_(True),
                    or_(
                        User.role.in_([
                            UserRole.COMPANY_MANAGER.value,
                            UserRole.DEPUTY_MANAGER.value,
                        ]),
                        and_(
                            User.department_id == department_id,
                            User.role.in_([
                                UserRole.DEPARTMENT_MANAGER.value,
                                UserRole.SECTION_SUPERVISOR.value,
                            ]),
                        ),
                    ),
                )
            )
            .order_by(User.id)
        )
        return list(result.scalars().all())

    # ==================== Inbox ====================

    @staticmethod
    @critical_database_operation("list_user_notifications")
    async def list_for_user(
        db: AsyncSession,
        user_id: int,
        page: int = 1,
        limit: int = 20,
        unread_only: bool = False,
    ) -> Tuple[List[Notification], int, int]:
        """
        Page through a user's notifications, newest first.

        Returns:
            Tuple of (notifications, total matching, unread count overall)
        """
        conditions = [Notification.user_id == user_id]
        if unread_only:
            conditions.append(Notification.is_read.is_(False))

        total = await db.scalar(
            select(func.count(Notification.id)).where(and_(*conditions))
        )
        unread_count = await db.scalar(
            select(func.count(Notification.id)).where(
                and_(Notification.user_id == user_id, Notification.is_read.is_(False))
            )
        )

        result = await db.execute(
            select(Notification)
            .where(and_(*conditions))
            .order_by(Notification.created_at.desc(), Notification.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return list(result.scalars().all()), total or 0, unread_count or 0

    @staticmethod
    @transactional_database_operation("mark_notification_read")
    async def mark_as_read(db: AsyncSession, notification_id: int, user_id: int) -> Notification:
        """Mark one of the user's own notifications as read."""
        result = await db.execute(
            select(Notification).where(
                and_(Notification.id == notification_id, Notification.user_id == user_id)
            )
        )
        notification = result.scalar_one_or_none()
        if not notification:
            raise NotFoundError("Notification not found")

        notification.is_read = True
        await db.flush()
        return notification

    @staticmethod
    @transactional_database_operation("mark_all_notifications_read")
    async def mark_all_as_read(db: AsyncSession, user_id: int) -> int:
        """Mark every unread notification of the user as read; returns the count."""
        result = await db.execute(
            update(Notification)
            .where(and_(Notification.user_id == user_id, Notification.is_read.is_(False)))
            .values(is_read=True)
        )
        logger.info(f"Marked {result.rowcount} notifications as read for user {user_id}")
        return result.rowcount

    @staticmethod
    @critical_database_operation("notification_stats")
    async def get_stats(db: AsyncSession, user_id: int) -> Dict:
        """Total, unread and per-type counts for a user's inbox."""
        total = await db.scalar(
            select(func.count(Notification.id)).where(Notification.user_id == user_id)
        )
        unread = await db.scalar(
            select(func.count(Notification.id)).where(
                and_(Notification.user_id == user_id, Notification.is_read.is_(False))
            )
        )
        by_type_result = await db.execute(
            select(Notification.type, func.count(Notification.id))
            .where(Notification.user_id == user_id)
            .group_by(Notification.type)
        )
        return {
            "total": total or 0,
            "unread": unread or 0,
            "by_type": {row[0]: row[1] for row in by_type_result.all()},
        }

"""
Activity service: the append-only audit trail of request mutations.
"""

import logging
from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.decorators import critical_database_operation
from db import ActivityType, RequestActivity

logger = logging.getLogger(__name__)


class ActivityService:
    """Writes and reads RequestActivity rows."""

    @staticmethod
    async def log_activity(
        db: AsyncSession,
        request_id: int,
        user_id: int,
        activity_type: ActivityType,
        description: str,
        old_value: Optional[str] = None,
        new_value: Optional[str] = None,
    ) -> RequestActivity:
        """
        Append an activity inside the caller's transaction.

        Args:
            db: Database session
            request_id: Request the mutation applies to
            user_id: Acting user
            activity_type: Kind of mutation
            description: Human-readable summary
            old_value: Previous value, if the mutation replaced one
            new_value: New value

        Returns:
            The flushed RequestActivity
        """
        activity = RequestActivity(
            request_id=request_id,
            user_id=user_id,
            activity_type=ActivityType(activity_type).value,
            description=description,
            old_value=None if old_value is None else str(old_value),
            new_value=None if new_value is None else str(new_value),
        )
        db.add(activity)
        await db.flush()

        logger.info(f"Activity logged for request {request_id}: {description}")
        return activity

    @staticmethod
    @critical_database_operation("list_request_activities")
    async def list_for_request(
        db: AsyncSession,
        request_id: int,
        page: int = 1,
        limit: int = 50,
    ) -> Tuple[List[RequestActivity], int]:
        """Activities of one request, newest first, with the total count."""
        total = await db.scalar(
            select(func.count(RequestActivity.id)).where(RequestActivity.request_id == request_id)
        )
        result = await db.execute(
            select(RequestActivity)
            .where(RequestActivity.request_id == request_id)
            .order_by(RequestActivity.created_at.desc(), RequestActivity.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return list(result.scalars().all()), total or 0

    @staticmethod
    @critical_database_operation("list_user_activities")
    async def list_for_user(
        db: AsyncSession,
        user_id: int,
        page: int = 1,
        limit: int = 50,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
    ) -> Tuple[List[RequestActivity], int]:
        """Activities performed by one user, optionally within a date range."""
        conditions = [RequestActivity.user_id == user_id]
        if date_from:
            conditions.append(RequestActivity.created_at >= date_from)
        if date_to:
            conditions.append(RequestActivity.created_at <= date_to)

        total = await db.scalar(
            select(func.count(RequestActivity.id)).where(and_(*conditions))
        )
        result = await db.execute(
            select(RequestActivity)
            .where(and_(*conditions))
            .order_by(RequestActivity.created_at.desc(), RequestActivity.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return list(result.scalars().all()), total or 0

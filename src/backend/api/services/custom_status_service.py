"""
Custom request status service.

Operators register extra working statuses; the active names become valid
update_status targets next to the canonical RequestStatus values.
"""
import logging
from typing import List, Optional

from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from api.schemas.custom_status import CustomStatusCreate, CustomStatusUpdate
from core.decorators import (
    critical_database_operation,
    transactional_database_operation,
)
from core.exceptions import NotFoundError, ValidationError
from core.permissions import Action, ActingUser, require
from db import CustomRequestStatus, RequestStatus, utc_now

logger = logging.getLogger(__name__)

CANONICAL_STATUS_NAMES = frozenset(status.value for status in RequestStatus)


class CustomStatusService:
    """Service for managing custom request statuses."""

    @staticmethod
    async def active_names(db: AsyncSession) -> List[str]:
        """Names of the active custom statuses."""
        result = await db.execute(
            select(CustomRequestStatus.name).where(CustomRequestStatus.is_active.is_(True))
        )
        return list(result.scalars().all())

    @staticmethod
    async def _check_name(db: AsyncSession, name: str) -> Optional[CustomRequestStatus]:
        """
        Reject built-in and active names.

        Returns the soft-deleted row holding the name, if any, so create can
        bring it back instead of colliding with the unique constraint.
        """
        if name.upper() in CANONICAL_STATUS_NAMES:
            raise ValidationError(f"'{name}' is a built-in status name")

        result = await db.execute(
            select(CustomRequestStatus).where(CustomRequestStatus.name == name)
        )
        existing = result.scalar_one_or_none()
        if existing is not None and existing.is_active:
            raise ValidationError("A status with this name already exists")
        return existing

    @staticmethod
    @critical_database_operation("list_custom_statuses")
    async def list_statuses(db: AsyncSession, actor: ActingUser) -> List[CustomRequestStatus]:
        """Active custom statuses ordered by sort_order."""
        require(actor, Action.MANAGE_CUSTOM_STATUS, message="Insufficient permissions to view custom statuses")

        result = await db.execute(
            select(CustomRequestStatus)
            .where(CustomRequestStatus.is_active.is_(True))
            .order_by(CustomRequestStatus.sort_order.asc(), CustomRequestStatus.id.asc())
        )
        return list(result.scalars().all())

    @staticmethod
    @critical_database_operation("get_custom_status")
    async def get_status(db: AsyncSession, status_id: int, actor: ActingUser) -> CustomRequestStatus:
        require(actor, Action.MANAGE_CUSTOM_STATUS, message="Insufficient permissions to view custom statuses")

        status = await db.get(CustomRequestStatus, status_id)
        if not status:
            raise NotFoundError("Custom status not found")
        return status

    @staticmethod
    @transactional_database_operation("create_custom_status")
    async def create_status(
        db: AsyncSession,
        payload: CustomStatusCreate,
        actor: ActingUser,
    ) -> CustomRequestStatus:
        """
        Create a custom status, or restore the soft-deleted one holding the
        same name.

        Raises:
            ForbiddenError: Warehouse keepers may not manage statuses
            ValidationError: Missing fields, or the name is taken or built in
        """
        require(actor, Action.MANAGE_CUSTOM_STATUS, message="Insufficient permissions to create custom statuses")

        if not payload.name or not payload.display_name:
            raise ValidationError("Name and display name are required")

        deleted = await CustomStatusService._check_name(db, payload.name)
        if deleted is not None:
            deleted.display_name = payload.display_name
            deleted.description = payload.description
            deleted.sort_order = payload.sort_order or 0
            deleted.is_active = True
            deleted.updated_at = utc_now()
            await db.flush()

            logger.info(f"Custom status '{deleted.name}' restored by user {actor.username}")
            return deleted

        status = CustomRequestStatus(
            name=payload.name,
            display_name=payload.display_name,
            description=payload.description,
            sort_order=payload.sort_order or 0,
            created_by_id=actor.id,
        )
        db.add(status)
        await db.flush()

        logger.info(f"Custom status '{status.name}' created by user {actor.username}")
        return status

    @staticmethod
    @transactional_database_operation("update_custom_status")
    async def update_status(
        db: AsyncSession,
        status_id: int,
        payload: CustomStatusUpdate,
        actor: ActingUser,
    ) -> CustomRequestStatus:
        require(actor, Action.MANAGE_CUSTOM_STATUS, message="Insufficient permissions to update custom statuses")

        status = await db.get(CustomRequestStatus, status_id)
        if not status:
            raise NotFoundError("Custom status not found")

        changes = payload.model_dump(exclude_unset=True, by_alias=False)
        new_name = changes.get("name")
        if new_name and new_name != status.name:
            if await CustomStatusService._check_name(db, new_name) is not None:
                raise ValidationError("A deleted status still holds this name")

        for field, value in changes.items():
            if value is None and field in ("name", "display_name", "sort_order", "is_active"):
                continue
            setattr(status, field, value)
        status.updated_at = utc_now()
        await db.flush()

        logger.info(f"Custom status '{status.name}' updated by user {actor.username}")
        return status

    @staticmethod
    @transactional_database_operation("delete_custom_status")
    async def delete_status(db: AsyncSession, status_id: int, actor: ActingUser) -> None:
        """Soft delete: the status stops being a valid target."""
        require(actor, Action.MANAGE_CUSTOM_STATUS, message="Insufficient permissions to delete custom statuses")

        result = await db.execute(
            select(CustomRequestStatus).where(
                and_(CustomRequestStatus.id == status_id, CustomRequestStatus.is_active.is_(True))
            )
        )
        status = result.scalar_one_or_none()
        if not status:
            raise NotFoundError("Custom status not found")

        status.is_active = False
        status.updated_at = utc_now()
        await db.flush()

        logger.info(f"Custom status '{status.name}' deleted by user {actor.username}")

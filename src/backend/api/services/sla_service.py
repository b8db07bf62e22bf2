"""
SLA service: due-date calculation, overdue scanning and SLA reporting.

Windows come from SLASettings: 168 h under warranty, 240 h out of warranty,
plus a 48 h buffer for on-site jobs.
"""

import logging
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from sqlalchemy import and_, func, or_, select, true, update
from sqlalchemy.ext.asyncio import AsyncSession

from api.services.notification_service import NotificationService
from core.config import settings
from core.decorators import (
    critical_database_operation,
    transactional_database_operation,
)
from db import (
    Department,
    ExecutionMethod,
    NotificationType,
    RequestStatus,
    ServiceRequest,
    User,
    UserRole,
    WarrantyStatus,
    utc_now,
)

logger = logging.getLogger(__name__)

FINISHED_STATUSES = (RequestStatus.COMPLETED.value, RequestStatus.CLOSED.value)


def sla_window_hours(warranty_status, execution_method) -> int:
    """Total SLA window in hours for a warranty status and execution method."""
    if WarrantyStatus(warranty_status) == WarrantyStatus.UNDER_WARRANTY:
        hours = settings.sla.under_warranty_hours
    else:
        hours = settings.sla.out_of_warranty_hours

    if ExecutionMethod(execution_method) == ExecutionMethod.ON_SITE:
        hours += settings.sla.onsite_buffer_hours

    return hours


def calculate_sla_due_date(
    warranty_status,
    execution_method,
    start: Optional[datetime] = None,
) -> datetime:
    """
    Compute the SLA due date.

    Args:
        warranty_status: WarrantyStatus (or its value)
        execution_method: ExecutionMethod (or its value)
        start: Base time; pass the request's created_at so both come from
            the same clock reading. Defaults to now.
    """
    base = start or utc_now()
    return base + timedelta(hours=sla_window_hours(warranty_status, execution_method))


def _overdue_condition(now: datetime):
    return and_(
        ServiceRequest.sla_due_date < now,
        ServiceRequest.status.not_in(FINISHED_STATUSES),
    )


class SLAService:
    """Overdue maintenance and SLA statistics."""

    @staticmethod
    async def _department_manager_ids(db: AsyncSession, department: Department) -> List[int]:
        if department.manager_id:
            return [department.manager_id]

        result = await db.execute(
            select(User.id).where(
                and_(
                    User.department_id == department.id,
                    User.role == UserRole.DEPARTMENT_MANAGER.value,
                    User.is_active.is_(True),
                )
            )
        )
        return list(result.scalars().all())

    @staticmethod
    @transactional_database_operation("check_sla_overdue")
    async def check_sla_overdue(db: AsyncSession) -> List[int]:
        """
        Bring every request's is_overdue flag in line with its SLA.

        Flags requests past their due date that are neither completed nor
        closed, clears the flag on rows that no longer qualify, and notifies
        the assigned technician and the department manager about each newly
        flagged request.

        Returns:
            Ids of the requests flagged by this scan
        """
        now = utc_now()

        result = await db.execute(
            select(ServiceRequest)
            .where(and_(_overdue_condition(now), ServiceRequest.is_overdue.is_(False)))
            .order_by(ServiceRequest.id)
        )
        newly_overdue = list(result.scalars().all())

        cleared = await db.execute(
            update(ServiceRequest)
            .where(
                and_(
                    ServiceRequest.is_overdue.is_(True),
                    or_(
                        ServiceRequest.status.in_(FINISHED_STATUSES),
                        ServiceRequest.sla_due_date >= now,
                    ),
                )
            )
            .values(is_overdue=False)
        )
        if cleared.rowcount:
            logger.info(f"Cleared overdue flag on {cleared.rowcount} requests")

        if not newly_overdue:
            return []

        manager_cache: Dict[int, List[int]] = {}
        for request in newly_overdue:
            request.is_overdue = True

            await NotificationService.notify_many(
                db,
                [request.assigned_technician_id],
                title="Request Overdue",
                message=f"Request {request.request_number} is now overdue",
                notification_type=NotificationType.OVERDUE,
                request_id=request.id,
            )

            department = request.department
            if department is not None:
                if department.id not in manager_cache:
                    manager_cache[department.id] = await SLAService._department_manager_ids(db, department)
                await NotificationService.notify_many(
                    db,
                    manager_cache[department.id],
                    title="Request Overdue in Your Department",
                    message=f"Request {request.request_number} in {department.name} is now overdue",
                    notification_type=NotificationType.OVERDUE,
                    request_id=request.id,
                )

        await db.flush()
        logger.warning(f"Marked {len(newly_overdue)} requests as overdue")
        return [request.id for request in newly_overdue]

    @staticmethod
    @critical_database_operation("sla_stats")
    async def get_sla_stats(
        db: AsyncSession,
        department_id: Optional[int] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
    ) -> Dict:
        """
        SLA compliance figures over requests created in the given range.

        Overdue counts are computed from the due dates, not the stored flag,
        so they are correct even between scans. A completed request is on
        time when completed_at <= sla_due_date.
        """
        now = utc_now()
        conditions = []
        if department_id:
            conditions.append(ServiceRequest.department_id == department_id)
        if date_from:
            conditions.append(ServiceRequest.created_at >= date_from)
        if date_to:
            conditions.append(ServiceRequest.created_at <= date_to)
        where = and_(*conditions) if conditions else true()

        total = await db.scalar(select(func.count(ServiceRequest.id)).where(where)) or 0
        overdue = await db.scalar(
            select(func.count(ServiceRequest.id)).where(and_(where, _overdue_condition(now)))
        ) or 0

        completed_result = await db.execute(
            select(
                ServiceRequest.created_at,
                ServiceRequest.completed_at,
                ServiceRequest.sla_due_date,
            ).where(and_(where, ServiceRequest.completed_at.is_not(None)))
        )
        completed_rows = completed_result.all()

        completed_on_time = sum(1 for row in completed_rows if row.completed_at <= row.sla_due_date)
        completed_late = len(completed_rows) - completed_on_time

        resolution_hours = [
            (row.completed_at - row.created_at).total_seconds() / 3600
            for row in completed_rows
        ]
        average_resolution_hours = (
            sum(resolution_hours) / len(resolution_hours) if resolution_hours else 0.0
        )

        def percentage(part: int, whole: int) -> float:
            return round(part / whole * 100, 2) if whole else 0.0

        return {
            "total_requests": total,
            "overdue_requests": overdue,
            "completed_on_time": completed_on_time,
            "completed_late": completed_late,
            "overdue_percentage": percentage(overdue, total),
            "on_time_percentage": percentage(completed_on_time, len(completed_rows)),
            "average_resolution_hours": round(average_resolution_hours, 2),
        }

    @staticmethod
    @critical_database_operation("upcoming_overdue")
    async def get_upcoming_overdue(
        db: AsyncSession,
        within_hours: Optional[int] = None,
        department_id: Optional[int] = None,
    ) -> List[ServiceRequest]:
        """Open requests whose due date falls within the next ``within_hours``."""
        now = utc_now()
        horizon = now + timedelta(hours=within_hours or settings.sla.upcoming_window_hours)

        conditions = [
            ServiceRequest.sla_due_date >= now,
            ServiceRequest.sla_due_date <= horizon,
            ServiceRequest.status.not_in(FINISHED_STATUSES),
        ]
        if department_id:
            conditions.append(ServiceRequest.department_id == department_id)

        result = await db.execute(
            select(ServiceRequest)
            .where(and_(*conditions))
            .order_by(ServiceRequest.sla_due_date.asc())
        )
        return list(result.scalars().all())

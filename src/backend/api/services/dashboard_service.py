"""
Dashboard statistics over the requests the caller may see.

Uses the same visibility rule as the request list, so a technician's
dashboard counts only requests assigned to or logged by them.
"""
import logging

from sqlalchemy import and_, case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from api.services.request_service import RequestService
from api.services.sla_service import FINISHED_STATUSES
from core.decorators import critical_database_operation
from core.permissions import ActingUser
from db import Department, RequestStatus, ServiceRequest, WarrantyStatus

logger = logging.getLogger(__name__)


class DashboardService:

    @staticmethod
    @critical_database_operation("get_dashboard_stats")
    async def get_stats(db: AsyncSession, actor: ActingUser) -> dict:
        """
        Counts by state, warranty, department and status, plus averages.

        average_resolution_time is in hours over COMPLETED requests with a
        completion stamp; both averages are 0 when there is nothing to average.
        """
        visibility = RequestService.visibility_condition(actor)

        def scoped(stmt):
            return stmt if visibility is None else stmt.where(visibility)

        open_request = ServiceRequest.status.not_in(FINISHED_STATUSES)
        totals = (
            await db.execute(
                scoped(
                    select(
                        func.count(ServiceRequest.id).label("total"),
                        func.count(case((open_request, 1))).label("pending"),
                        func.count(
                            case((and_(open_request, ServiceRequest.is_overdue.is_(True)), 1))
                        ).label("overdue"),
                        func.count(
                            case((ServiceRequest.status == RequestStatus.COMPLETED.value, 1))
                        ).label("completed"),
                        func.count(
                            case((ServiceRequest.warranty_status == WarrantyStatus.UNDER_WARRANTY.value, 1))
                        ).label("under_warranty"),
                        func.count(
                            case((ServiceRequest.warranty_status == WarrantyStatus.OUT_OF_WARRANTY.value, 1))
                        ).label("out_of_warranty"),
                        func.avg(ServiceRequest.customer_satisfaction).label("satisfaction"),
                    )
                )
            )
        ).one()

        by_department = await db.execute(
            scoped(
                select(ServiceRequest.department_id, Department.name, func.count(ServiceRequest.id))
                .join(Department, Department.id == ServiceRequest.department_id)
                .group_by(ServiceRequest.department_id, Department.name)
                .order_by(Department.name.asc())
            )
        )
        by_status = await db.execute(
            scoped(
                select(ServiceRequest.status, func.count(ServiceRequest.id))
                .group_by(ServiceRequest.status)
                .order_by(ServiceRequest.status.asc())
            )
        )

        # durations are computed in Python: date arithmetic differs between dialects
        completed = await db.execute(
            scoped(
                select(ServiceRequest.created_at, ServiceRequest.completed_at).where(
                    and_(
                        ServiceRequest.status == RequestStatus.COMPLETED.value,
                        ServiceRequest.completed_at.is_not(None),
                    )
                )
            )
        )
        durations = [
            (completed_at - created_at).total_seconds() / 3600
            for created_at, completed_at in completed.all()
        ]
        average_resolution = sum(durations) / len(durations) if durations else 0.0

        return {
            "total_requests": totals.total or 0,
            "pending_requests": totals.pending or 0,
            "overdue_requests": totals.overdue or 0,
            "completed_requests": totals.completed or 0,
            "under_warranty": totals.under_warranty or 0,
            "out_of_warranty": totals.out_of_warranty or 0,
            "requests_by_department": [
                {"department_id": department_id, "department_name": name, "count": count}
                for department_id, name, count in by_department.all()
            ],
            "requests_by_status": [
                {"status": status, "count": count} for status, count in by_status.all()
            ],
            "average_resolution_time": round(average_resolution, 2),
            "customer_satisfaction_average": round(float(totals.satisfaction or 0), 2),
        }

"""
Service request lifecycle.

Every mutating operation runs inside one transaction
(transactional_database_operation): the request update, its activity row
and its notification rows are committed together or rolled back together.
Validation and authorization happen before anything is written.
"""

import logging
import math
import re
from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import and_, false, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from api.schemas.service_request import ServiceRequestFilters
from api.services.activity_service import ActivityService
from api.services.custom_status_service import CustomStatusService
from api.services.department_router import DepartmentRouter
from api.services.notification_service import NotificationService
from api.services.request_number_service import RequestNumberService
from api.services.sla_service import FINISHED_STATUSES, SLAService, calculate_sla_due_date
from api.services.status_transitions import validate_transition
from core.decorators import (
    critical_database_operation,
    log_database_operation,
    transactional_database_operation,
)
from core.exceptions import ForbiddenError, NotFoundError, ValidationError
from core.logging_config import LifecycleLogger
from core.permissions import (
    Action,
    ActingUser,
    Scope,
    ScopeTarget,
    is_manager_level,
    require,
    scope_for,
)
from db import (
    ActivityType,
    CostType,
    Customer,
    ExecutionMethod,
    NotificationType,
    Product,
    RequestActivity,
    RequestCost,
    RequestPriority,
    RequestStatus,
    ServiceRequest,
    User,
    UserRole,
    WarrantyStatus,
    utc_now,
)

logger = logging.getLogger(__name__)
lifecycle_logger = LifecycleLogger("requests")

SORTABLE_COLUMNS = {
    "created_at": ServiceRequest.created_at,
    "updated_at": ServiceRequest.updated_at,
    "sla_due_date": ServiceRequest.sla_due_date,
    "priority": ServiceRequest.priority,
    "status": ServiceRequest.status,
    "request_number": ServiceRequest.request_number,
}


def _snake_case(name: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name).lower()


def _coerce_enum(enum_cls, value, field: str):
    try:
        return enum_cls(value)
    except ValueError:
        raise ValidationError(f"Invalid {field}: {value}")


class RequestService:
    """Lifecycle operations on service requests, each taking an explicit ActingUser."""

    department_router = DepartmentRouter()

    # ==================== Loading ====================

    @staticmethod
    async def _load_request(
        db: AsyncSession,
        request_id: int,
        with_history: bool = False,
    ) -> Optional[ServiceRequest]:
        """Load a request with its relations, refreshing any copy already in the session."""
        stmt = (
            select(ServiceRequest)
            .where(ServiceRequest.id == request_id)
            .execution_options(populate_existing=True)
        )
        if with_history:
            stmt = stmt.options(
                selectinload(ServiceRequest.activities).selectinload(RequestActivity.user),
                selectinload(ServiceRequest.costs).selectinload(RequestCost.added_by),
            )
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def _get_or_404(db: AsyncSession, request_id: int) -> ServiceRequest:
        request = await RequestService._load_request(db, request_id)
        if not request:
            raise NotFoundError("Request not found")
        return request

    @staticmethod
    def visibility_condition(actor: ActingUser):
        """WHERE clause limiting requests to what the actor may view; None means no limit."""
        scope = scope_for(actor, Action.VIEW_REQUEST)
        if scope == Scope.ANY:
            return None
        if scope == Scope.DEPARTMENT:
            if actor.department_id is None:
                return false()
            return ServiceRequest.department_id == actor.department_id
        if scope == Scope.ASSIGNED:
            return ServiceRequest.assigned_technician_id == actor.id
        if scope == Scope.ASSIGNED_OR_RECEIVED:
            return or_(
                ServiceRequest.assigned_technician_id == actor.id,
                ServiceRequest.received_by_id == actor.id,
            )
        return false()

    # ==================== Create ====================

    @staticmethod
    @transactional_database_operation("create_request")
    async def create(
        db: AsyncSession,
        actor: ActingUser,
        customer_id: Optional[int],
        issue_description: Optional[str],
        execution_method,
        warranty_status,
        product_id: Optional[int] = None,
        purchase_date: Optional[datetime] = None,
        priority=RequestPriority.NORMAL,
        router: Optional[DepartmentRouter] = None,
    ) -> ServiceRequest:
        """
        Log a new service request.

        The department comes from the product when one is given, otherwise
        from the keyword router. The SLA due date is computed from the same
        clock reading as created_at.

        Raises:
            ValidationError: Missing fields, unknown customer or product
        """
        require(actor, Action.CREATE_REQUEST)

        if not customer_id or not issue_description or not execution_method or not warranty_status:
            raise ValidationError(
                "Customer, issue description, execution method and warranty status are required"
            )

        execution_method = _coerce_enum(ExecutionMethod, execution_method, "execution method")
        warranty_status = _coerce_enum(WarrantyStatus, warranty_status, "warranty status")
        priority = _coerce_enum(RequestPriority, priority or RequestPriority.NORMAL, "priority")

        customer = await db.get(Customer, customer_id)
        if not customer:
            raise ValidationError("Customer not found")

        if product_id:
            product = await db.get(Product, product_id)
            if not product:
                raise ValidationError("Product not found")
            department_id = product.department_id
        else:
            router = router or RequestService.department_router
            department_id = await router.resolve(db, issue_description)

        now = utc_now()
        request_number = await RequestNumberService.next_request_number(db, now)

        request = ServiceRequest(
            request_number=request_number,
            customer_id=customer.id,
            product_id=product_id or None,
            department_id=department_id,
            received_by_id=actor.id,
            issue_description=issue_description,
            execution_method=execution_method.value,
            warranty_status=warranty_status.value,
            purchase_date=purchase_date,
            priority=priority.value,
            status=RequestStatus.NEW.value,
            created_at=now,
            updated_at=now,
            sla_due_date=calculate_sla_due_date(warranty_status, execution_method, now),
        )
        db.add(request)
        await db.flush()

        await ActivityService.log_activity(
            db,
            request.id,
            actor.id,
            ActivityType.CREATED,
            f"Request {request_number} created",
            new_value=RequestStatus.NEW.value,
        )

        supervisor_ids = await NotificationService.get_department_supervisor_ids(db, department_id)
        await NotificationService.notify_many(
            db,
            supervisor_ids,
            title="New Service Request",
            message=f"New request {request_number} from {customer.name}: {issue_description[:100]}",
            notification_type=NotificationType.ASSIGNMENT,
            request_id=request.id,
        )

        lifecycle_logger.request_created(request_number, department_id, actor.username)
        return await RequestService._load_request(db, request.id, with_history=True)

    # ==================== Read ====================

    @staticmethod
    @log_database_operation("request listing")
    async def list_requests(
        db: AsyncSession,
        filters: ServiceRequestFilters,
        actor: ActingUser,
    ) -> Tuple[List[ServiceRequest], int]:
        """
        List the requests visible to the actor, filtered, sorted and paged.

        After the page is fetched the overdue scan runs and the returned rows
        flagged by it are patched in place.
        """
        conditions = []
        visibility = RequestService.visibility_condition(actor)
        if visibility is not None:
            conditions.append(visibility)

        if filters.status:
            conditions.append(ServiceRequest.status == filters.status)
        if filters.priority:
            conditions.append(ServiceRequest.priority == RequestPriority(filters.priority).value)
        if filters.department_id:
            conditions.append(ServiceRequest.department_id == filters.department_id)
        if filters.assigned_technician_id:
            conditions.append(ServiceRequest.assigned_technician_id == filters.assigned_technician_id)
        if filters.warranty_status:
            conditions.append(ServiceRequest.warranty_status == WarrantyStatus(filters.warranty_status).value)
        if filters.is_overdue is not None:
            conditions.append(ServiceRequest.is_overdue.is_(filters.is_overdue))
        if filters.date_from:
            conditions.append(ServiceRequest.created_at >= filters.date_from)
        if filters.date_to:
            conditions.append(ServiceRequest.created_at <= filters.date_to)

        search = (filters.search or "").strip().lower()
        if search:
            term = f"%{search}%"
            conditions.append(
                or_(
                    func.lower(ServiceRequest.request_number).like(term),
                    func.lower(ServiceRequest.issue_description).like(term),
                    func.lower(Customer.name).like(term),
                    func.lower(Customer.phone).like(term),
                    func.lower(Product.name).like(term),
                )
            )

        def with_joins(stmt):
            if search:
                stmt = stmt.join(Customer, Customer.id == ServiceRequest.customer_id).outerjoin(
                    Product, Product.id == ServiceRequest.product_id
                )
            if conditions:
                stmt = stmt.where(and_(*conditions))
            return stmt

        total = await db.scalar(
            with_joins(select(func.count(ServiceRequest.id)).select_from(ServiceRequest))
        ) or 0

        sort_key = _snake_case(filters.sort_by or "created_at")
        sort_column = SORTABLE_COLUMNS.get(sort_key, ServiceRequest.created_at)
        ordering = sort_column.asc() if filters.sort_order == "asc" else sort_column.desc()

        result = await db.execute(
            with_joins(select(ServiceRequest))
            .order_by(ordering, ServiceRequest.id.desc())
            .offset((filters.page - 1) * filters.limit)
            .limit(filters.limit)
        )
        requests = list(result.scalars().all())

        overdue_ids = set(await SLAService.check_sla_overdue(db))
        for request in requests:
            if request.id in overdue_ids:
                request.is_overdue = True

        logger.debug(f"Listed {len(requests)} of {total} requests for {actor.username}")
        return requests, total

    @staticmethod
    @critical_database_operation("get_request")
    async def get_by_id(db: AsyncSession, request_id: int, actor: ActingUser) -> ServiceRequest:
        """
        Fetch one request with its relations, activities and costs (newest first).

        Raises:
            NotFoundError: No such request
            ForbiddenError: The request is outside the actor's view scope
        """
        request = await RequestService._load_request(db, request_id, with_history=True)
        if not request:
            raise NotFoundError("Request not found")

        require(actor, Action.VIEW_REQUEST, ScopeTarget.of(request), "You do not have access to this request")
        return request

    @staticmethod
    @critical_database_operation("list_request_activities")
    async def list_activities(
        db: AsyncSession,
        request_id: int,
        actor: ActingUser,
        page: int = 1,
        limit: int = 50,
    ) -> Tuple[List[RequestActivity], int]:
        request = await RequestService._get_or_404(db, request_id)
        require(actor, Action.VIEW_REQUEST, ScopeTarget.of(request), "You do not have access to this request")
        return await ActivityService.list_for_request(db, request_id, page=page, limit=limit)

    # ==================== Status ====================

    @staticmethod
    @transactional_database_operation("update_request_status")
    async def update_status(
        db: AsyncSession,
        request_id: int,
        new_status: str,
        actor: ActingUser,
        comment: Optional[str] = None,
    ) -> ServiceRequest:
        """
        Move a request to another status.

        Raises:
            NotFoundError: No such request
            ForbiddenError: The actor may not touch the request, or may not
                change statuses at all (technicians)
            ValidationError: The transition is not in the table
        """
        request = await RequestService._get_or_404(db, request_id)
        target = ScopeTarget.of(request)

        require(actor, Action.UPDATE_REQUEST, target, "Cannot update this request")
        require(
            actor,
            Action.CHANGE_STATUS,
            target,
            "Only administrators and supervisors can change request status",
        )

        new_status = (new_status or "").strip()
        if not new_status:
            raise ValidationError("Status is required")

        custom_statuses = await CustomStatusService.active_names(db)
        old_status = request.status
        validate_transition(old_status, new_status, custom_statuses)

        now = utc_now()
        request.status = new_status
        request.updated_at = now
        if new_status == RequestStatus.UNDER_INSPECTION.value and request.started_at is None:
            request.started_at = now
        if new_status == RequestStatus.COMPLETED.value and request.completed_at is None:
            request.completed_at = now
        if new_status == RequestStatus.CLOSED.value and request.closed_at is None:
            request.closed_at = now
        await db.flush()

        description = f"Status changed from {old_status} to {new_status}"
        if comment:
            description = f"{description}. Comment: {comment}"
        await ActivityService.log_activity(
            db, request.id, actor.id, ActivityType.STATUS_CHANGE, description, old_status, new_status
        )

        await NotificationService.notify_many(
            db,
            [request.assigned_technician_id],
            title="Request Status Updated",
            message=(
                f"{actor.full_name} changed request {request.request_number} "
                f"from {old_status} to {new_status}"
            ),
            notification_type=NotificationType.STATUS_CHANGE,
            request_id=request.id,
            exclude_user_id=actor.id,
        )

        if actor.role == UserRole.TECHNICIAN:
            watcher_ids = await NotificationService.get_request_watcher_ids(db, request.department_id)
            await NotificationService.notify_many(
                db,
                watcher_ids,
                title="Status Updated by Technician",
                message=(
                    f"Technician {actor.full_name} changed request {request.request_number} "
                    f"from {old_status} to {new_status}"
                ),
                notification_type=NotificationType.STATUS_CHANGE,
                request_id=request.id,
                exclude_user_id=actor.id,
            )

        lifecycle_logger.status_changed(request.request_number, old_status, new_status, actor.username)
        return await RequestService._load_request(db, request.id, with_history=True)

    # ==================== Assignment ====================

    @staticmethod
    @transactional_database_operation("assign_technician")
    async def assign_technician(
        db: AsyncSession,
        request_id: int,
        technician_id: int,
        actor: ActingUser,
    ) -> ServiceRequest:
        """
        Assign (or reassign) a technician and move the request to ASSIGNED.

        Raises:
            ForbiddenError: The actor cannot assign, the request is outside
                their department, or they picked a technician from another
                department without being manager-level
            NotFoundError: No such request
            ValidationError: The target is not an active technician, or the
                request is already completed or closed
        """
        require(actor, Action.ASSIGN_TECHNICIAN, message="Insufficient permissions to assign technicians")

        request = await RequestService._get_or_404(db, request_id)
        require(
            actor,
            Action.ASSIGN_TECHNICIAN,
            ScopeTarget.of(request),
            "You can only assign technicians to requests in your department",
        )

        if not technician_id:
            raise ValidationError("Technician ID is required")

        technician = await db.get(User, technician_id)
        if (
            technician is None
            or technician.role != UserRole.TECHNICIAN.value
            or not technician.is_active
        ):
            raise ValidationError("Valid technician not found")

        if not is_manager_level(actor.role) and technician.department_id != actor.department_id:
            raise ForbiddenError("Cannot assign technician from different department")

        if request.status in FINISHED_STATUSES:
            raise ValidationError(f"Cannot assign a technician to a {request.status.lower()} request")

        previous_technician_id = request.assigned_technician_id
        now = utc_now()
        request.assigned_technician_id = technician.id
        request.assigned_at = now
        request.status = RequestStatus.ASSIGNED.value
        request.updated_at = now
        await db.flush()

        await ActivityService.log_activity(
            db,
            request.id,
            actor.id,
            ActivityType.ASSIGNMENT,
            f"Assigned to technician: {technician.full_name}",
            previous_technician_id,
            technician.id,
        )

        await NotificationService.create_notification(
            db,
            technician.id,
            title="New Request Assigned",
            message=f"{actor.full_name} assigned you to request {request.request_number}",
            notification_type=NotificationType.ASSIGNMENT,
            request_id=request.id,
        )

        if previous_technician_id and previous_technician_id != technician.id:
            # no request reference: the previous technician can no longer open it
            await NotificationService.create_notification(
                db,
                previous_technician_id,
                title="Unassigned From Request",
                message=(
                    f"You are no longer responsible for request {request.request_number}. "
                    f"It was assigned to another technician."
                ),
                notification_type=NotificationType.ASSIGNMENT,
            )

        lifecycle_logger.technician_assigned(
            request.request_number, technician.id, previous_technician_id, actor.username
        )
        return await RequestService._load_request(db, request.id, with_history=True)

    # ==================== Costs ====================

    @staticmethod
    @transactional_database_operation("add_request_cost")
    async def add_cost(
        db: AsyncSession,
        request_id: int,
        actor: ActingUser,
        description: Optional[str],
        amount: Optional[float],
        cost_type,
        currency: str = "SYP",
    ) -> RequestCost:
        """
        Attach a cost line to a request.

        Raises:
            ValidationError: Missing fields or a non-positive amount
            NotFoundError: No such request
            ForbiddenError: Outside the actor's scope, or an under-warranty
                request and the actor is not manager-level
        """
        if not description or amount is None or not cost_type:
            raise ValidationError("All cost fields are required")
        if not math.isfinite(amount):
            raise ValidationError("Cost amount must be a finite number")
        if amount <= 0:
            raise ValidationError("Cost amount must be greater than zero")
        cost_type = _coerce_enum(CostType, cost_type, "cost type")
        currency = (currency or "SYP").upper()

        request = await RequestService._get_or_404(db, request_id)
        target = ScopeTarget.of(request)
        require(actor, Action.ADD_COST, target, "You do not have access to this request")

        if request.warranty_status == WarrantyStatus.UNDER_WARRANTY.value:
            require(actor, Action.ADD_WARRANTY_COST, target, "Cannot add costs to under-warranty requests")

        cost = RequestCost(
            request_id=request.id,
            description=description,
            amount=float(amount),
            currency=currency,
            cost_type=cost_type.value,
            added_by_id=actor.id,
        )
        db.add(cost)
        request.updated_at = utc_now()
        await db.flush()

        await ActivityService.log_activity(
            db,
            request.id,
            actor.id,
            ActivityType.COST_ADDED,
            f"Cost added: {description} - {amount} {currency}",
            None,
            f"{description}: {amount} {currency}",
        )

        if actor.role != UserRole.TECHNICIAN and actor.role != UserRole.WAREHOUSE_KEEPER:
            await NotificationService.notify_many(
                db,
                [request.assigned_technician_id],
                title="Cost Added to Request",
                message=(
                    f"{actor.full_name} added a cost to request {request.request_number}: "
                    f"{description} - {amount} {currency}"
                ),
                notification_type=NotificationType.STATUS_CHANGE,
                request_id=request.id,
                exclude_user_id=actor.id,
            )

        lifecycle_logger.cost_added(request.request_number, float(amount), currency, actor.username)

        result = await db.execute(
            select(RequestCost)
            .where(RequestCost.id == cost.id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one()

    # ==================== Close ====================

    @staticmethod
    @transactional_database_operation("close_request")
    async def close_request(
        db: AsyncSession,
        request_id: int,
        actor: ActingUser,
        final_notes: Optional[str] = None,
        customer_satisfaction: Optional[int] = None,
    ) -> ServiceRequest:
        """
        Close a completed request.

        The status check comes before the permission check, so closing a
        request that is not COMPLETED fails with ValidationError for every
        role.
        """
        request = await RequestService._get_or_404(db, request_id)

        if request.status != RequestStatus.COMPLETED.value:
            raise ValidationError("Request must be completed before closing")

        if customer_satisfaction is not None and not 1 <= int(customer_satisfaction) <= 5:
            raise ValidationError("Customer satisfaction must be between 1 and 5")

        require(
            actor,
            Action.CLOSE_REQUEST,
            ScopeTarget.of(request),
            "Insufficient permissions to close request",
        )

        now = utc_now()
        request.status = RequestStatus.CLOSED.value
        request.closed_at = now
        request.updated_at = now
        request.final_notes = final_notes
        request.customer_satisfaction = (
            int(customer_satisfaction) if customer_satisfaction is not None else None
        )
        await db.flush()

        await ActivityService.log_activity(
            db,
            request.id,
            actor.id,
            ActivityType.STATUS_CHANGE,
            "Request closed",
            RequestStatus.COMPLETED.value,
            RequestStatus.CLOSED.value,
        )

        await NotificationService.notify_many(
            db,
            [request.assigned_technician_id],
            title="Request Closed",
            message=f"{actor.full_name} closed request {request.request_number}",
            notification_type=NotificationType.STATUS_CHANGE,
            request_id=request.id,
            exclude_user_id=actor.id,
        )

        lifecycle_logger.request_closed(request.request_number, request.customer_satisfaction, actor.username)
        return await RequestService._load_request(db, request.id, with_history=True)

    # ==================== Comments ====================

    @staticmethod
    @transactional_database_operation("add_request_comment")
    async def add_comment(
        db: AsyncSession,
        request_id: int,
        comment: Optional[str],
        actor: ActingUser,
    ) -> RequestActivity:
        """Record a COMMENT activity and tell the assigned technician."""
        comment = (comment or "").strip()
        if not comment:
            raise ValidationError("Comment is required")

        request = await RequestService._get_or_404(db, request_id)
        require(actor, Action.ADD_COMMENT, ScopeTarget.of(request), "You do not have access to this request")

        activity = await ActivityService.log_activity(
            db, request.id, actor.id, ActivityType.COMMENT, comment
        )
        request.updated_at = utc_now()
        await db.flush()

        await NotificationService.notify_many(
            db,
            [request.assigned_technician_id],
            title="New Comment on Request",
            message=f"{actor.full_name} commented on request {request.request_number}: {comment[:100]}",
            notification_type=NotificationType.STATUS_CHANGE,
            request_id=request.id,
            exclude_user_id=actor.id,
        )

        result = await db.execute(
            select(RequestActivity)
            .where(RequestActivity.id == activity.id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one()

    # ==================== SLA ====================

    @staticmethod
    async def get_sla_stats(
        db: AsyncSession,
        actor: ActingUser,
        department_id: Optional[int] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
    ) -> dict:
        """SLA figures; department-scoped roles only see their own department."""
        require(actor, Action.VIEW_SLA_STATS, message="Insufficient permissions to view SLA statistics")

        if scope_for(actor, Action.VIEW_SLA_STATS) == Scope.DEPARTMENT:
            if department_id and department_id != actor.department_id:
                raise ForbiddenError("You can only view SLA statistics for your department")
            department_id = actor.department_id

        return await SLAService.get_sla_stats(db, department_id, date_from, date_to)

    @staticmethod
    async def get_upcoming_overdue(
        db: AsyncSession,
        actor: ActingUser,
        within_hours: Optional[int] = None,
        department_id: Optional[int] = None,
    ) -> List[ServiceRequest]:
        """Open requests about to miss their SLA, limited like get_sla_stats."""
        require(actor, Action.VIEW_SLA_STATS, message="Insufficient permissions to view SLA statistics")

        if scope_for(actor, Action.VIEW_SLA_STATS) == Scope.DEPARTMENT:
            department_id = actor.department_id

        return await SLAService.get_upcoming_overdue(db, within_hours, department_id)

"""
Service Request API endpoints.

Endpoints:
- POST / - Log a new service request
- GET / - List visible requests with filtering, sorting and pagination
- GET /sla/stats - SLA statistics (manager and supervisor tiers)
- GET /sla/upcoming - Open requests about to miss their SLA
- GET /{request_id} - Request detail with activities and costs
- GET /{request_id}/activities - Paginated activity log
- PUT /{request_id}/status - Change status
- PUT /{request_id}/assign - Assign or reassign a technician
- POST /{request_id}/costs - Add a cost line
- PUT /{request_id}/close - Close a completed request
- POST /{request_id}/comments - Comment on a request

**Authentication:** every endpoint requires a Bearer token. What each role may
do is decided by the capability table in core.permissions.
"""

import logging
from datetime import datetime
from typing import Annotated, List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from api.schemas.service_request import (
    AssignTechnicianRequest,
    CloseRequestPayload,
    RequestActivityRead,
    RequestCommentCreate,
    RequestCostCreate,
    RequestCostRead,
    ServiceRequestCreate,
    ServiceRequestDetail,
    ServiceRequestFilters,
    ServiceRequestListItem,
    ServiceRequestStatusUpdate,
    SLAStats,
)
from api.services.request_service import RequestService
from core.config import settings
from core.database import get_session
from core.dependencies import get_acting_user
from core.permissions import ActingUser
from core.schema_base import ApiResponse, PaginationMeta

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("", response_model=ApiResponse[ServiceRequestDetail], status_code=201)
async def create_request(
    request_data: ServiceRequestCreate,
    db: AsyncSession = Depends(get_session),
    actor: ActingUser = Depends(get_acting_user),
):
    """
    Log a new service request.

    - **customerId**: Existing customer
    - **productId**: Optional; its department becomes the request's
    - **issueDescription**: Used for department routing when no product is given
    - **executionMethod**: ON_SITE or WORKSHOP
    - **warrantyStatus**: UNDER_WARRANTY or OUT_OF_WARRANTY
    """
    request = await RequestService.create(
        db,
        actor=actor,
        customer_id=request_data.customer_id,
        product_id=request_data.product_id,
        issue_description=request_data.issue_description,
        execution_method=request_data.execution_method,
        warranty_status=request_data.warranty_status,
        purchase_date=request_data.purchase_date,
        priority=request_data.priority,
    )
    return ApiResponse(
        message="Service request created successfully",
        data=ServiceRequestDetail.model_validate(request),
    )


@router.get("", response_model=ApiResponse[List[ServiceRequestListItem]])
async def list_requests(
    filters: Annotated[ServiceRequestFilters, Query()],
    db: AsyncSession = Depends(get_session),
    actor: ActingUser = Depends(get_acting_user),
):
    """
    List the requests the caller may see.

    Query parameters mirror ServiceRequestFilters (camelCase accepted).
    """
    requests, total = await RequestService.list_requests(db, filters, actor)
    return ApiResponse(
        data=[ServiceRequestListItem.model_validate(r) for r in requests],
        meta=PaginationMeta.build(filters.page, filters.limit, total),
    )


@router.get("/sla/stats", response_model=ApiResponse[SLAStats])
async def get_sla_stats(
    department_id: Optional[int] = Query(None, alias="departmentId"),
    date_from: Optional[datetime] = Query(None, alias="dateFrom"),
    date_to: Optional[datetime] = Query(None, alias="dateTo"),
    db: AsyncSession = Depends(get_session),
    actor: ActingUser = Depends(get_acting_user),
):
    """SLA statistics; department tiers are limited to their own department."""
    stats = await RequestService.get_sla_stats(
        db, actor, department_id=department_id, date_from=date_from, date_to=date_to
    )
    return ApiResponse(data=SLAStats(**stats))


@router.get("/sla/upcoming", response_model=ApiResponse[List[ServiceRequestListItem]])
async def get_upcoming_overdue(
    within_hours: Optional[int] = Query(None, alias="withinHours", ge=1, le=720),
    department_id: Optional[int] = Query(None, alias="departmentId"),
    db: AsyncSession = Depends(get_session),
    actor: ActingUser = Depends(get_acting_user),
):
    requests = await RequestService.get_upcoming_overdue(
        db, actor, within_hours=within_hours, department_id=department_id
    )
    return ApiResponse(data=[ServiceRequestListItem.model_validate(r) for r in requests])


@router.get("/{request_id}", response_model=ApiResponse[ServiceRequestDetail])
async def get_request(
    request_id: int,
    db: AsyncSession = Depends(get_session),
    actor: ActingUser = Depends(get_acting_user),
):
    """Get a request with its relations, activities and costs (newest first)."""
    request = await RequestService.get_by_id(db, request_id, actor)
    return ApiResponse(data=ServiceRequestDetail.model_validate(request))


@router.get("/{request_id}/activities", response_model=ApiResponse[List[RequestActivityRead]])
async def list_request_activities(
    request_id: int,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=settings.pagination.max_page_size),
    db: AsyncSession = Depends(get_session),
    actor: ActingUser = Depends(get_acting_user),
):
    activities, total = await RequestService.list_activities(
        db, request_id, actor, page=page, limit=limit
    )
    return ApiResponse(
        data=[RequestActivityRead.model_validate(a) for a in activities],
        meta=PaginationMeta.build(page, limit, total),
    )


@router.put("/{request_id}/status", response_model=ApiResponse[ServiceRequestDetail])
async def update_request_status(
    request_id: int,
    update_data: ServiceRequestStatusUpdate,
    db: AsyncSession = Depends(get_session),
    actor: ActingUser = Depends(get_acting_user),
):
    """
    Change a request's status.

    Technicians cannot change statuses; completed requests can only be closed.
    """
    request = await RequestService.update_status(
        db, request_id, update_data.status, actor, comment=update_data.comment
    )
    return ApiResponse(
        message="Request status updated successfully",
        data=ServiceRequestDetail.model_validate(request),
    )


@router.put("/{request_id}/assign", response_model=ApiResponse[ServiceRequestDetail])
async def assign_technician(
    request_id: int,
    assign_data: AssignTechnicianRequest,
    db: AsyncSession = Depends(get_session),
    actor: ActingUser = Depends(get_acting_user),
):
    request = await RequestService.assign_technician(
        db, request_id, assign_data.technician_id, actor
    )
    return ApiResponse(
        message="Technician assigned successfully",
        data=ServiceRequestDetail.model_validate(request),
    )


@router.post("/{request_id}/costs", response_model=ApiResponse[RequestCostRead], status_code=201)
async def add_request_cost(
    request_id: int,
    cost_data: RequestCostCreate,
    db: AsyncSession = Depends(get_session),
    actor: ActingUser = Depends(get_acting_user),
):
    cost = await RequestService.add_cost(
        db,
        request_id,
        actor,
        description=cost_data.description,
        amount=cost_data.amount,
        cost_type=cost_data.cost_type,
        currency=cost_data.currency,
    )
    return ApiResponse(
        message="Cost added successfully",
        data=RequestCostRead.model_validate(cost),
    )


@router.put("/{request_id}/close", response_model=ApiResponse[ServiceRequestDetail])
async def close_request(
    request_id: int,
    close_data: CloseRequestPayload,
    db: AsyncSession = Depends(get_session),
    actor: ActingUser = Depends(get_acting_user),
):
    request = await RequestService.close_request(
        db,
        request_id,
        actor,
        final_notes=close_data.final_notes,
        customer_satisfaction=close_data.customer_satisfaction,
    )
    return ApiResponse(
        message="Request closed successfully",
        data=ServiceRequestDetail.model_validate(request),
    )


@router.post("/{request_id}/comments", response_model=ApiResponse[RequestActivityRead], status_code=201)
async def add_request_comment(
    request_id: int,
    comment_data: RequestCommentCreate,
    db: AsyncSession = Depends(get_session),
    actor: ActingUser = Depends(get_acting_user),
):
    activity = await RequestService.add_comment(db, request_id, comment_data.comment, actor)
    return ApiResponse(
        message="Comment added successfully",
        data=RequestActivityRead.model_validate(activity),
    )

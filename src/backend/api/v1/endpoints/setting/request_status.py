"""
Custom Request Status API endpoints.

Operators define extra working statuses on top of the built-in lifecycle
(NEW, ASSIGNED, UNDER_INSPECTION, WAITING_PARTS, IN_REPAIR, COMPLETED,
CLOSED). Active custom statuses are accepted as status-change targets.

Endpoints:
- GET / - List active custom statuses ordered by sortOrder
- POST / - Create a custom status
- GET /{status_id} - Get a custom status by ID
- PUT /{status_id} - Update a custom status
- DELETE /{status_id} - Deactivate a custom status (soft delete)

Authentication:
- All endpoints require authentication
- Warehouse keepers cannot manage statuses
"""
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from api.schemas.custom_status import CustomStatusCreate, CustomStatusRead, CustomStatusUpdate
from api.services.custom_status_service import CustomStatusService
from core.database import get_session
from core.dependencies import get_acting_user
from core.permissions import ActingUser
from core.schema_base import ApiResponse

router = APIRouter()


@router.get("", response_model=ApiResponse[List[CustomStatusRead]])
async def list_custom_statuses(
    db: AsyncSession = Depends(get_session),
    actor: ActingUser = Depends(get_acting_user),
):
    statuses = await CustomStatusService.list_statuses(db, actor)
    return ApiResponse(data=[CustomStatusRead.model_validate(s) for s in statuses])


@router.post("", response_model=ApiResponse[CustomStatusRead], status_code=201)
async def create_custom_status(
    status_data: CustomStatusCreate,
    db: AsyncSession = Depends(get_session),
    actor: ActingUser = Depends(get_acting_user),
):
    """
    Create a custom status.

    - **name**: Unique name; built-in status names are rejected
    - **displayName**: Label shown in the UI
    - **sortOrder**: Position in lists
    """
    status = await CustomStatusService.create_status(db, status_data, actor)
    return ApiResponse(
        message="Custom status created successfully",
        data=CustomStatusRead.model_validate(status),
    )


@router.get("/{status_id}", response_model=ApiResponse[CustomStatusRead])
async def get_custom_status(
    status_id: int,
    db: AsyncSession = Depends(get_session),
    actor: ActingUser = Depends(get_acting_user),
):
    status = await CustomStatusService.get_status(db, status_id, actor)
    return ApiResponse(data=CustomStatusRead.model_validate(status))


@router.put("/{status_id}", response_model=ApiResponse[CustomStatusRead])
async def update_custom_status(
    status_id: int,
    status_data: CustomStatusUpdate,
    db: AsyncSession = Depends(get_session),
    actor: ActingUser = Depends(get_acting_user),
):
    status = await CustomStatusService.update_status(db, status_id, status_data, actor)
    return ApiResponse(
        message="Custom status updated successfully",
        data=CustomStatusRead.model_validate(status),
    )


@router.delete("/{status_id}", response_model=ApiResponse)
async def delete_custom_status(
    status_id: int,
    db: AsyncSession = Depends(get_session),
    actor: ActingUser = Depends(get_acting_user),
):
    await CustomStatusService.delete_status(db, status_id, actor)
    return ApiResponse(message="Custom status deleted successfully")

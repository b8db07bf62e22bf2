"""
Staff user endpoints.

Endpoints:
- GET / - List users (filters: role, departmentId, isActive)
- GET /technicians - Active technicians the caller may assign
- POST / - Create a staff account

Authentication:
- All endpoints require authentication
- Warehouse keepers cannot list users
- Department managers create technicians and section supervisors in their
  own department; manager-level roles create any account
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from api.schemas.user import UserCreate, UserRead
from api.services.user_service import UserService
from core.config import settings
from core.database import get_session
from core.dependencies import get_acting_user
from core.permissions import ActingUser
from core.schema_base import ApiResponse, PaginationMeta
from db.enums import UserRole

router = APIRouter()


@router.get("", response_model=ApiResponse[List[UserRead]])
async def list_users(
    role: Optional[UserRole] = Query(None),
    department_id: Optional[int] = Query(None, alias="departmentId"),
    is_active: Optional[bool] = Query(True, alias="isActive"),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=settings.pagination.max_page_size),
    db: AsyncSession = Depends(get_session),
    actor: ActingUser = Depends(get_acting_user),
):
    users, total = await UserService.list_users(
        db,
        actor,
        role=role,
        department_id=department_id,
        is_active=is_active,
        page=page,
        limit=limit,
    )
    return ApiResponse(
        data=[UserRead.model_validate(u) for u in users],
        meta=PaginationMeta.build(page, limit, total),
    )


@router.get("/technicians", response_model=ApiResponse[List[UserRead]])
async def list_assignable_technicians(
    department_id: Optional[int] = Query(None, alias="departmentId"),
    db: AsyncSession = Depends(get_session),
    actor: ActingUser = Depends(get_acting_user),
):
    """Technicians for the assignment picker; non-managers only get their own department."""
    technicians = await UserService.list_assignable_technicians(db, actor, department_id=department_id)
    return ApiResponse(data=[UserRead.model_validate(t) for t in technicians])


@router.post("", response_model=ApiResponse[UserRead], status_code=201)
async def create_user(
    user_data: UserCreate,
    db: AsyncSession = Depends(get_session),
    actor: ActingUser = Depends(get_acting_user),
):
    user = await UserService.create_user(db, user_data, actor)
    return ApiResponse(
        message="User created successfully",
        data=UserRead.model_validate(user),
    )

"""
Department endpoints.

- GET / - All departments ordered by name, with their manager
"""
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from api.schemas.service_request import UserSummary
from api.schemas.user import DepartmentRead
from api.services.department_service import DepartmentService
from core.database import get_session
from core.dependencies import get_acting_user
from core.permissions import ActingUser
from core.schema_base import ApiResponse

router = APIRouter()


@router.get("", response_model=ApiResponse[List[DepartmentRead]])
async def list_departments(
    db: AsyncSession = Depends(get_session),
    actor: ActingUser = Depends(get_acting_user),
):
    rows = await DepartmentService.list_departments(db)
    return ApiResponse(
        data=[
            DepartmentRead(
                id=department.id,
                name=department.name,
                description=department.description,
                is_active=department.is_active,
                manager=UserSummary.model_validate(manager) if manager else None,
            )
            for department, manager in rows
        ]
    )

"""
Dashboard Endpoints.

- GET /stats - Request counts and averages over what the caller may see
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from api.schemas.dashboard import DashboardStats
from api.services.dashboard_service import DashboardService
from core.database import get_session
from core.dependencies import get_acting_user
from core.permissions import ActingUser
from core.schema_base import ApiResponse

router = APIRouter()


@router.get("/stats", response_model=ApiResponse[DashboardStats])
async def get_dashboard_stats(
    db: AsyncSession = Depends(get_session),
    actor: ActingUser = Depends(get_acting_user),
):
    stats = await DashboardService.get_stats(db, actor)
    return ApiResponse(data=DashboardStats(**stats))

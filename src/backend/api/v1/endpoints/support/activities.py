"""
Activity Endpoints.

- GET /mine - Activities performed by the authenticated user
"""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from api.schemas.service_request import RequestActivityRead
from api.services.activity_service import ActivityService
from core.config import settings
from core.database import get_session
from core.dependencies import get_acting_user
from core.permissions import ActingUser
from core.schema_base import ApiResponse, PaginationMeta

router = APIRouter()


@router.get("/mine", response_model=ApiResponse[List[RequestActivityRead]])
async def list_my_activities(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=settings.pagination.max_page_size),
    date_from: Optional[datetime] = Query(None, alias="dateFrom"),
    date_to: Optional[datetime] = Query(None, alias="dateTo"),
    db: AsyncSession = Depends(get_session),
    actor: ActingUser = Depends(get_acting_user),
):
    """What the caller did, newest first, optionally within a date range."""
    activities, total = await ActivityService.list_for_user(
        db, actor.id, page=page, limit=limit, date_from=date_from, date_to=date_to
    )
    return ApiResponse(
        data=[RequestActivityRead.model_validate(a) for a in activities],
        meta=PaginationMeta.build(page, limit, total),
    )

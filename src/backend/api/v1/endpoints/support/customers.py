"""
Customer Endpoints.

- GET / - List customers (technicians see only their assigned customers)
- POST / - Register a customer (managers and supervisors)
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from api.schemas.customer import CustomerCreate, CustomerRead
from api.services.customer_service import CustomerService
from core.config import settings
from core.database import get_session
from core.dependencies import get_acting_user
from core.permissions import ActingUser
from core.schema_base import ApiResponse, PaginationMeta

router = APIRouter()


@router.get("", response_model=ApiResponse[List[CustomerRead]])
async def list_customers(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.pagination.default_page_size, ge=1, le=settings.pagination.max_page_size),
    search: Optional[str] = Query(None, description="Name, phone, email or address"),
    db: AsyncSession = Depends(get_session),
    actor: ActingUser = Depends(get_acting_user),
):
    customers, total = await CustomerService.list_customers(
        db, actor, page=page, limit=limit, search=search
    )
    return ApiResponse(
        data=[CustomerRead.model_validate(c) for c in customers],
        meta=PaginationMeta.build(page, limit, total),
    )


@router.post("", response_model=ApiResponse[CustomerRead], status_code=201)
async def create_customer(
    customer_data: CustomerCreate,
    db: AsyncSession = Depends(get_session),
    actor: ActingUser = Depends(get_acting_user),
):
    """
    Register a customer.

    - **name**, **phone**, **address**: Required
    - **email**, **city**: Optional
    """
    customer = await CustomerService.create_customer(db, customer_data, actor)
    return ApiResponse(
        message="Customer created successfully",
        data=CustomerRead.model_validate(customer),
    )

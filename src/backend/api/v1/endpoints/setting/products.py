"""
Product catalogue endpoints.

Endpoints:
- GET / - List products, optionally by department or search term
- POST / - Register a product in a department

Authentication:
- All endpoints require authentication
- Department managers and section supervisors register products for their
  own department only; technicians and warehouse keepers cannot register
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from api.schemas.product import ProductCreate, ProductRead
from api.services.product_service import ProductService
from core.config import settings
from core.database import get_session
from core.dependencies import get_acting_user
from core.permissions import ActingUser
from core.schema_base import ApiResponse, PaginationMeta

router = APIRouter()


@router.get("", response_model=ApiResponse[List[ProductRead]])
async def list_products(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.pagination.default_page_size, ge=1, le=settings.pagination.max_page_size),
    search: Optional[str] = Query(None),
    department_id: Optional[int] = Query(None, alias="departmentId"),
    db: AsyncSession = Depends(get_session),
    actor: ActingUser = Depends(get_acting_user),
):
    products, total = await ProductService.list_products(
        db, page=page, limit=limit, search=search, department_id=department_id
    )
    return ApiResponse(
        data=[ProductRead.model_validate(p) for p in products],
        meta=PaginationMeta.build(page, limit, total),
    )


@router.post("", response_model=ApiResponse[ProductRead], status_code=201)
async def create_product(
    product_data: ProductCreate,
    db: AsyncSession = Depends(get_session),
    actor: ActingUser = Depends(get_acting_user),
):
    product = await ProductService.create_product(db, product_data, actor)
    return ApiResponse(
        message="Product created successfully",
        data=ProductRead.model_validate(product),
    )

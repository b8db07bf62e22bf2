"""
Product catalogue. A product belongs to one department, and requests logged
for it are routed there without keyword matching.
"""
import logging
from typing import List, Optional, Tuple

from sqlalchemy import and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from api.schemas.product import ProductCreate
from core.decorators import critical_database_operation, transactional_database_operation
from core.exceptions import ValidationError
from core.permissions import Action, ActingUser, ScopeTarget, require
from db import Department, Product

logger = logging.getLogger(__name__)


class ProductService:

    @staticmethod
    @critical_database_operation("list_products")
    async def list_products(
        db: AsyncSession,
        page: int = 1,
        limit: int = 20,
        search: Optional[str] = None,
        department_id: Optional[int] = None,
    ) -> Tuple[List[Product], int]:
        """Page through products, newest first; search covers name, model, category and serial number."""
        conditions = []
        if department_id:
            conditions.append(Product.department_id == department_id)

        term = (search or "").strip().lower()
        if term:
            pattern = f"%{term}%"
            conditions.append(
                or_(
                    func.lower(Product.name).like(pattern),
                    func.lower(Product.model).like(pattern),
                    func.lower(Product.category).like(pattern),
                    func.lower(Product.serial_number).like(pattern),
                )
            )

        count_stmt = select(func.count(Product.id))
        stmt = select(Product)
        if conditions:
            count_stmt = count_stmt.where(and_(*conditions))
            stmt = stmt.where(and_(*conditions))

        total = await db.scalar(count_stmt) or 0
        result = await db.execute(
            stmt.order_by(Product.created_at.desc(), Product.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return list(result.scalars().all()), total

    @staticmethod
    @transactional_database_operation("create_product")
    async def create_product(
        db: AsyncSession,
        payload: ProductCreate,
        actor: ActingUser,
    ) -> Product:
        """
        Register a product.

        Raises:
            ForbiddenError: Technicians and warehouse keepers, or a
                department-scoped actor registering for another department
            ValidationError: The department does not exist
        """
        require(
            actor,
            Action.MANAGE_PRODUCTS,
            ScopeTarget(department_id=payload.department_id),
            "You can only register products for your department",
        )

        department = await db.get(Department, payload.department_id)
        if not department:
            raise ValidationError("Department not found")

        product = Product(
            name=payload.name,
            model=payload.model,
            serial_number=payload.serial_number or None,
            category=payload.category,
            department_id=department.id,
            warranty_months=payload.warranty_months,
        )
        db.add(product)
        await db.flush()

        logger.info(f"Product {product.id} '{product.name}' created in {department.name} by {actor.username}")

        result = await db.execute(
            select(Product)
            .where(Product.id == product.id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one()

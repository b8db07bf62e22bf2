"""
Department listing.
"""
import logging
from typing import List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.decorators import critical_database_operation
from db import Department, User

logger = logging.getLogger(__name__)


class DepartmentService:

    @staticmethod
    @critical_database_operation("list_departments")
    async def list_departments(db: AsyncSession) -> List[Tuple[Department, Optional[User]]]:
        """Every department ordered by name, paired with its manager (or None)."""
        result = await db.execute(
            select(Department, User)
            .outerjoin(User, User.id == Department.manager_id)
            .order_by(Department.name.asc())
        )
        return [(department, manager) for department, manager in result.all()]

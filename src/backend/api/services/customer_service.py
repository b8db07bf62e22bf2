"""
Customer directory.

Non-technician staff see every customer; technicians only see customers
with a request assigned to them.
"""
import logging
from typing import List, Optional, Tuple

from sqlalchemy import and_, exists, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from api.schemas.customer import CustomerCreate
from core.decorators import critical_database_operation, transactional_database_operation
from core.exceptions import ValidationError
from core.permissions import Action, ActingUser, Scope, require, scope_for
from db import Customer, ServiceRequest

logger = logging.getLogger(__name__)


class CustomerService:
    """Listing and registration of customers."""

    @staticmethod
    @critical_database_operation("list_customers")
    async def list_customers(
        db: AsyncSession,
        actor: ActingUser,
        page: int = 1,
        limit: int = 20,
        search: Optional[str] = None,
    ) -> Tuple[List[Customer], int]:
        """
        Page through the customers the actor may see, newest first.

        Search matches name, phone, email or address, case-insensitively.
        """
        require(actor, Action.VIEW_CUSTOMERS, message="Insufficient permissions to view customers")

        conditions = []
        if scope_for(actor, Action.VIEW_CUSTOMERS) == Scope.ASSIGNED:
            conditions.append(
                exists().where(
                    and_(
                        ServiceRequest.customer_id == Customer.id,
                        ServiceRequest.assigned_technician_id == actor.id,
                    )
                )
            )

        term = (search or "").strip().lower()
        if term:
            pattern = f"%{term}%"
            conditions.append(
                or_(
                    func.lower(Customer.name).like(pattern),
                    func.lower(Customer.phone).like(pattern),
                    func.lower(Customer.email).like(pattern),
                    func.lower(Customer.address).like(pattern),
                )
            )

        count_stmt = select(func.count(Customer.id))
        stmt = select(Customer)
        if conditions:
            count_stmt = count_stmt.where(and_(*conditions))
            stmt = stmt.where(and_(*conditions))

        total = await db.scalar(count_stmt) or 0
        result = await db.execute(
            stmt.order_by(Customer.created_at.desc(), Customer.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return list(result.scalars().all()), total

    @staticmethod
    @transactional_database_operation("create_customer")
    async def create_customer(
        db: AsyncSession,
        payload: CustomerCreate,
        actor: ActingUser,
    ) -> Customer:
        """
        Register a customer.

        Raises:
            ForbiddenError: Technicians and warehouse keepers
            ValidationError: Blank name, phone or address
        """
        require(actor, Action.MANAGE_CUSTOMERS, message="Insufficient permissions to create customers")

        name, phone, address = payload.name.strip(), payload.phone.strip(), payload.address.strip()
        if not name or not phone or not address:
            raise ValidationError("Name, phone, and address are required")

        customer = Customer(
            name=name,
            phone=phone,
            address=address,
            email=payload.email or None,
            city=payload.city or None,
        )
        db.add(customer)
        await db.flush()

        logger.info(f"Customer {customer.id} created by user {actor.username}")
        return customer

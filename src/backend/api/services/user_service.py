"""
Staff directory: listing users, picking technicians and creating accounts.

Visibility follows the VIEW_USERS row of the capability table. Department
managers and section supervisors see their own department; technicians see
only the technicians of their department; manager-level roles see everyone.
"""
import logging
from typing import List, Optional, Tuple

from sqlalchemy import and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from api.schemas.user import UserCreate
from core.decorators import critical_database_operation, transactional_database_operation
from core.exceptions import ForbiddenError, ValidationError
from core.permissions import (
    Action,
    ActingUser,
    Scope,
    ScopeTarget,
    can_assign_technicians,
    is_manager_level,
    require,
    scope_for,
)
from db import Department, User, UserRole

logger = logging.getLogger(__name__)

# Roles that department managers may create inside their own department
DEPARTMENT_MANAGER_CREATABLE_ROLES = frozenset({UserRole.TECHNICIAN, UserRole.SECTION_SUPERVISOR})

# Roles whose authority is tied to a department
DEPARTMENT_BOUND_ROLES = frozenset(
    {UserRole.DEPARTMENT_MANAGER, UserRole.SECTION_SUPERVISOR, UserRole.TECHNICIAN}
)


class UserService:
    """Service for staff accounts."""

    @staticmethod
    @critical_database_operation("list_users")
    async def list_users(
        db: AsyncSession,
        actor: ActingUser,
        role: Optional[UserRole] = None,
        department_id: Optional[int] = None,
        is_active: Optional[bool] = True,
        page: int = 1,
        limit: int = 50,
    ) -> Tuple[List[User], int]:
        """
        Page through staff ordered by first name.

        Raises:
            ForbiddenError: Warehouse keepers, or a department-scoped actor
                asking for another department
        """
        require(actor, Action.VIEW_USERS, message="Insufficient permissions to view users")

        if scope_for(actor, Action.VIEW_USERS) == Scope.DEPARTMENT:
            if department_id and department_id != actor.department_id:
                raise ForbiddenError("You can only view users of your department")
            department_id = actor.department_id
            if department_id is None:
                return [], 0

        if actor.role == UserRole.TECHNICIAN:
            role = UserRole.TECHNICIAN

        conditions = []
        if role:
            conditions.append(User.role == UserRole(role).value)
        if department_id:
            conditions.append(User.department_id == department_id)
        if is_active is not None:
            conditions.append(User.is_active.is_(is_active))

        count_stmt = select(func.count(User.id))
        stmt = select(User)
        if conditions:
            count_stmt = count_stmt.where(and_(*conditions))
            stmt = stmt.where(and_(*conditions))

        total = await db.scalar(count_stmt)
        result = await db.execute(
            stmt.order_by(User.first_name.asc(), User.id.asc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return list(result.scalars().all()), total or 0

    @staticmethod
    @critical_database_operation("list_assignable_technicians")
    async def list_assignable_technicians(
        db: AsyncSession,
        actor: ActingUser,
        department_id: Optional[int] = None,
    ) -> List[User]:
        """
        Active technicians the actor may assign.

        Manager-level actors may pick from any department (optionally
        filtered); everyone else only from their own.
        """
        if not can_assign_technicians(actor.role):
            raise ForbiddenError("Insufficient permissions to assign technicians")

        if not is_manager_level(actor.role):
            department_id = actor.department_id
            if department_id is None:
                return []

        conditions = [
            User.role == UserRole.TECHNICIAN.value,
            User.is_active.is_(True),
        ]
        if department_id:
            conditions.append(User.department_id == department_id)

        result = await db.execute(
            select(User)
            .where(and_(*conditions))
            .order_by(User.first_name.asc(), User.last_name.asc(), User.id.asc())
        )
        return list(result.scalars().all())

    @staticmethod
    @transactional_database_operation("create_user")
    async def create_user(
        db: AsyncSession,
        payload: UserCreate,
        actor: ActingUser,
    ) -> User:
        """
        Create a staff account.

        Department managers may only create technicians and section
        supervisors in their own department.

        Raises:
            ForbiddenError: The actor may not create this account
            ValidationError: Username or email taken, unknown department, or
                a department-bound role without a department
        """
        role = UserRole(payload.role)
        require(
            actor,
            Action.MANAGE_USERS,
            ScopeTarget(department_id=payload.department_id),
            "You can only create users in your department",
        )

        if not is_manager_level(actor.role) and role not in DEPARTMENT_MANAGER_CREATABLE_ROLES:
            raise ForbiddenError("You cannot create users with this role")

        if role in DEPARTMENT_BOUND_ROLES and payload.department_id is None:
            raise ValidationError("A department is required for this role")

        if payload.department_id is not None:
            department = await db.get(Department, payload.department_id)
            if not department:
                raise ValidationError("Department not found")

        existing = await db.execute(
            select(User.id).where(
                or_(User.username == payload.username, User.email == payload.email)
            )
        )
        if existing.first() is not None:
            raise ValidationError("Username or email already in use")

        user = User(
            username=payload.username,
            email=payload.email,
            first_name=payload.first_name,
            last_name=payload.last_name,
            phone=payload.phone or None,
            role=role.value,
            department_id=payload.department_id,
            is_active=True,
        )
        db.add(user)
        await db.flush()

        logger.info(f"User '{user.username}' ({role.value}) created by {actor.username}")

        result = await db.execute(
            select(User)
            .where(User.id == user.id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one()

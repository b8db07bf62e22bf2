"""
Authorization for request lifecycle and directory operations.

Every decision is a lookup in CAPABILITIES, a table of
(role, action) -> scope. The scope says which requests the role may act on
(for directory actions: customers with a request assigned to the actor,
products and users of the actor's department):

    ANY                   every request
    DEPARTMENT            requests of the actor's own department
    ASSIGNED              requests assigned to the actor
    ASSIGNED_OR_RECEIVED  requests assigned to or logged by the actor
    NONE                  never

Services call require() before writing anything.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from core.exceptions import ForbiddenError
from core.logging_config import LifecycleLogger
from db.enums import UserRole

lifecycle_logger = LifecycleLogger("permissions")


class Action(str, Enum):
    VIEW_REQUEST = "view_request"
    CREATE_REQUEST = "create_request"
    UPDATE_REQUEST = "update_request"
    CHANGE_STATUS = "change_status"
    ASSIGN_TECHNICIAN = "assign_technician"
    ADD_COST = "add_cost"
    ADD_WARRANTY_COST = "add_warranty_cost"
    CLOSE_REQUEST = "close_request"
    ADD_COMMENT = "add_comment"
    MANAGE_CUSTOM_STATUS = "manage_custom_status"
    VIEW_SLA_STATS = "view_sla_stats"
    VIEW_CUSTOMERS = "view_customers"
    MANAGE_CUSTOMERS = "manage_customers"
    MANAGE_PRODUCTS = "manage_products"
    VIEW_USERS = "view_users"
    MANAGE_USERS = "manage_users"


class Scope(str, Enum):
    ANY = "any"
    DEPARTMENT = "department"
    ASSIGNED = "assigned"
    ASSIGNED_OR_RECEIVED = "assigned_or_received"
    NONE = "none"


MANAGER_LEVEL_ROLES = frozenset({UserRole.COMPANY_MANAGER, UserRole.DEPUTY_MANAGER})


def _row(**scopes: Scope) -> dict:
    """Build one role's row; actions not listed get Scope.NONE."""
    row = {action: Scope.NONE for action in Action}
    row.update({Action[name]: scope for name, scope in scopes.items()})
    return row


_MANAGER_ROW = _row(**{action.name: Scope.ANY for action in Action})

CAPABILITIES: dict[UserRole, dict[Action, Scope]] = {
    UserRole.COMPANY_MANAGER: _MANAGER_ROW,
    UserRole.DEPUTY_MANAGER: _MANAGER_ROW,
    UserRole.DEPARTMENT_MANAGER: _row(
        VIEW_REQUEST=Scope.DEPARTMENT,
        CREATE_REQUEST=Scope.ANY,
        UPDATE_REQUEST=Scope.DEPARTMENT,
        CHANGE_STATUS=Scope.DEPARTMENT,
        ASSIGN_TECHNICIAN=Scope.DEPARTMENT,
        ADD_COST=Scope.DEPARTMENT,
        ADD_COMMENT=Scope.DEPARTMENT,
        MANAGE_CUSTOM_STATUS=Scope.ANY,
        VIEW_SLA_STATS=Scope.DEPARTMENT,
        VIEW_CUSTOMERS=Scope.ANY,
        MANAGE_CUSTOMERS=Scope.ANY,
        MANAGE_PRODUCTS=Scope.DEPARTMENT,
        VIEW_USERS=Scope.DEPARTMENT,
        MANAGE_USERS=Scope.DEPARTMENT,
    ),
    UserRole.SECTION_SUPERVISOR: _row(
        VIEW_REQUEST=Scope.DEPARTMENT,
        CREATE_REQUEST=Scope.ANY,
        UPDATE_REQUEST=Scope.DEPARTMENT,
        CHANGE_STATUS=Scope.DEPARTMENT,
        ASSIGN_TECHNICIAN=Scope.DEPARTMENT,
        ADD_COST=Scope.DEPARTMENT,
        CLOSE_REQUEST=Scope.DEPARTMENT,
        ADD_COMMENT=Scope.DEPARTMENT,
        MANAGE_CUSTOM_STATUS=Scope.ANY,
        VIEW_SLA_STATS=Scope.DEPARTMENT,
        VIEW_CUSTOMERS=Scope.ANY,
        MANAGE_CUSTOMERS=Scope.ANY,
        MANAGE_PRODUCTS=Scope.DEPARTMENT,
        VIEW_USERS=Scope.DEPARTMENT,
    ),
    UserRole.TECHNICIAN: _row(
        VIEW_REQUEST=Scope.ASSIGNED_OR_RECEIVED,
        CREATE_REQUEST=Scope.ANY,
        UPDATE_REQUEST=Scope.ASSIGNED,
        ADD_COST=Scope.ASSIGNED_OR_RECEIVED,
        ADD_COMMENT=Scope.ASSIGNED_OR_RECEIVED,
        MANAGE_CUSTOM_STATUS=Scope.ANY,
        VIEW_CUSTOMERS=Scope.ASSIGNED,
        # only fellow technicians, see UserService.list_users
        VIEW_USERS=Scope.DEPARTMENT,
    ),
    UserRole.WAREHOUSE_KEEPER: _row(
        VIEW_REQUEST=Scope.ASSIGNED_OR_RECEIVED,
        CREATE_REQUEST=Scope.ANY,
        ADD_COMMENT=Scope.ASSIGNED_OR_RECEIVED,
        VIEW_CUSTOMERS=Scope.ANY,
    ),
}


@dataclass(frozen=True)
class ActingUser:
    """The authenticated caller, passed explicitly into every service call."""

    id: int
    role: UserRole
    department_id: Optional[int]
    username: str
    first_name: str = ""
    last_name: str = ""

    @classmethod
    def from_user(cls, user) -> "ActingUser":
        return cls(
            id=user.id,
            role=UserRole(user.role),
            department_id=user.department_id,
            username=user.username,
            first_name=user.first_name,
            last_name=user.last_name,
        )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip() or self.username


@dataclass(frozen=True)
class ScopeTarget:
    """The fields of a request that scope checks look at."""

    department_id: Optional[int]
    assignee_id: Optional[int] = None
    receiver_id: Optional[int] = None

    @classmethod
    def of(cls, request) -> "ScopeTarget":
        return cls(
            department_id=request.department_id,
            assignee_id=request.assigned_technician_id,
            receiver_id=request.received_by_id,
        )


def is_manager_level(role) -> bool:
    """Company manager or deputy manager: cross-department authority."""
    return UserRole(role) in MANAGER_LEVEL_ROLES


def can_assign_technicians(role) -> bool:
    """Roles holding any ASSIGN_TECHNICIAN scope: manager-level plus department managers and section supervisors."""
    scope = CAPABILITIES.get(UserRole(role), {}).get(Action.ASSIGN_TECHNICIAN, Scope.NONE)
    return scope != Scope.NONE


def scope_for(actor: ActingUser, action: Action) -> Scope:
    return CAPABILITIES.get(actor.role, {}).get(action, Scope.NONE)


def is_allowed(actor: ActingUser, action: Action, target: Optional[ScopeTarget] = None) -> bool:
    """
    Check whether the actor may perform the action.

    Without a target only the role is consulted: any scope other than NONE
    passes. With a target the scope is matched against the request fields.
    """
    scope = scope_for(actor, action)

    if scope == Scope.NONE:
        return False
    if scope == Scope.ANY or target is None:
        return True
    if scope == Scope.DEPARTMENT:
        return actor.department_id is not None and actor.department_id == target.department_id
    if scope == Scope.ASSIGNED:
        return target.assignee_id == actor.id
    if scope == Scope.ASSIGNED_OR_RECEIVED:
        return actor.id in (target.assignee_id, target.receiver_id)
    return False


def require(
    actor: ActingUser,
    action: Action,
    target: Optional[ScopeTarget] = None,
    message: Optional[str] = None,
) -> None:
    """Raise ForbiddenError unless is_allowed() passes."""
    if is_allowed(actor, action, target):
        return

    lifecycle_logger.permission_denied(action.value, actor.username, actor.role.value, target)
    raise ForbiddenError(message or "You do not have permission to perform this action")

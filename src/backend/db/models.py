"""
Database models for the after-sales service desk.

All timestamps are stored as naive UTC (see utc_now). Enumerated columns are
plain strings holding the values of the enums in db.enums.

Many-to-one relationships load eagerly with ``selectin``; the request's
activity and cost collections are loaded explicitly by the services
(``lazy="raise"`` guards against implicit IO on the async session).
"""

from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    text,
)
from sqlmodel import Field, Relationship, SQLModel

from db.enums import (
    CostType,
    RequestPriority,
    RequestStatus,
    UserRole,
)


def utc_now() -> datetime:
    """
    Get current time in UTC (timezone-naive) for database storage.

    The API layer serializes these with a 'Z' suffix so clients convert to
    their local timezone for display.
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


class TableModel(SQLModel):
    """Base table model with common functionality."""

    pass


class Department(TableModel, table=True):
    """Department grouping staff and products; every request belongs to one."""

    __tablename__ = "departments"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(
        sa_column=Column(String(100), nullable=False, unique=True),
        description="Department name, matched by the keyword router",
    )
    description: Optional[str] = Field(
        default=None,
        sa_column=Column(Text, nullable=True),
    )
    manager_id: Optional[int] = Field(
        default=None,
        sa_column=Column(
            Integer,
            ForeignKey("users.id", use_alter=True, name="fk_departments_manager_id"),
            nullable=True,
        ),
        description="Department manager notified about overdue requests",
    )
    is_active: bool = Field(
        default=True,
        sa_column=Column(Boolean, default=True, nullable=False),
    )
    created_at: datetime = Field(
        default_factory=utc_now,
        sa_column_kwargs={"server_default": text("CURRENT_TIMESTAMP")},
    )


class User(TableModel, table=True):
    """Staff user. Role plus department gate every lifecycle action."""

    __tablename__ = "users"

    id: Optional[int] = Field(default=None, primary_key=True)
    username: str = Field(
        sa_column=Column(String(50), nullable=False, unique=True),
    )
    email: str = Field(
        sa_column=Column(String(255), nullable=False, unique=True),
    )
    first_name: str = Field(sa_column=Column(String(100), nullable=False))
    last_name: str = Field(sa_column=Column(String(100), nullable=False))
    phone: Optional[str] = Field(
        default=None,
        sa_column=Column(String(30), nullable=True),
    )
    role: str = Field(
        default=UserRole.TECHNICIAN.value,
        sa_column=Column(String(32), nullable=False),
        description="UserRole value",
    )
    department_id: Optional[int] = Field(
        default=None,
        sa_column=Column(Integer, ForeignKey("departments.id"), nullable=True),
    )
    is_active: bool = Field(
        default=True,
        sa_column=Column(Boolean, default=True, nullable=False),
    )
    created_at: datetime = Field(
        default_factory=utc_now,
        sa_column_kwargs={"server_default": text("CURRENT_TIMESTAMP")},
    )

    department: Optional[Department] = Relationship(
        sa_relationship_kwargs={
            "lazy": "selectin",
            "foreign_keys": "User.department_id",
        }
    )

    __table_args__ = (
        Index("ix_users_role", "role"),
        Index("ix_users_department_id", "department_id"),
        Index("ix_users_department_role_active", "department_id", "role", "is_active"),
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class Customer(TableModel, table=True):
    __tablename__ = "customers"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(sa_column=Column(String(200), nullable=False))
    phone: str = Field(sa_column=Column(String(30), nullable=False))
    email: Optional[str] = Field(
        default=None,
        sa_column=Column(String(255), nullable=True),
    )
    address: Optional[str] = Field(
        default=None,
        sa_column=Column(Text, nullable=True),
    )
    city: Optional[str] = Field(
        default=None,
        sa_column=Column(String(100), nullable=True),
    )
    created_at: datetime = Field(
        default_factory=utc_now,
        sa_column_kwargs={"server_default": text("CURRENT_TIMESTAMP")},
    )

    __table_args__ = (
        Index("ix_customers_phone", "phone"),
    )


class Product(TableModel, table=True):
    """Product model; a request for a product inherits its department."""

    __tablename__ = "products"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(sa_column=Column(String(200), nullable=False))
    model: Optional[str] = Field(
        default=None,
        sa_column=Column(String(100), nullable=True),
    )
    serial_number: Optional[str] = Field(
        default=None,
        sa_column=Column(String(100), nullable=True),
    )
    category: Optional[str] = Field(
        default=None,
        sa_column=Column(String(100), nullable=True),
    )
    warranty_months: int = Field(
        default=12,
        sa_column=Column(Integer, default=12, nullable=False),
    )
    department_id: int = Field(
        sa_column=Column(Integer, ForeignKey("departments.id"), nullable=False),
    )
    created_at: datetime = Field(
        default_factory=utc_now,
        sa_column_kwargs={"server_default": text("CURRENT_TIMESTAMP")},
    )

    department: Optional[Department] = Relationship(
        sa_relationship_kwargs={"lazy": "selectin"}
    )


class ServiceRequest(TableModel, table=True):
    """Customer service request tracked through the repair lifecycle."""

    __tablename__ = "requests"

    id: Optional[int] = Field(default=None, primary_key=True)
    request_number: str = Field(
        sa_column=Column(String(20), nullable=False, unique=True),
        description="REQ<YY><MM><DD>-<NNN>",
    )
    customer_id: int = Field(
        sa_column=Column(Integer, ForeignKey("customers.id"), nullable=False),
    )
    product_id: Optional[int] = Field(
        default=None,
        sa_column=Column(Integer, ForeignKey("products.id"), nullable=True),
    )
    department_id: int = Field(
        sa_column=Column(Integer, ForeignKey("departments.id"), nullable=False),
    )
    assigned_technician_id: Optional[int] = Field(
        default=None,
        sa_column=Column(Integer, ForeignKey("users.id"), nullable=True),
    )
    received_by_id: int = Field(
        sa_column=Column(Integer, ForeignKey("users.id"), nullable=False),
        description="User who logged the request",
    )
    issue_description: str = Field(sa_column=Column(Text, nullable=False))
    execution_method: str = Field(
        sa_column=Column(String(16), nullable=False),
        description="ExecutionMethod value",
    )
    warranty_status: str = Field(
        sa_column=Column(String(20), nullable=False),
        description="WarrantyStatus value",
    )
    purchase_date: Optional[datetime] = Field(
        default=None,
        sa_column=Column(DateTime, nullable=True),
    )
    priority: str = Field(
        default=RequestPriority.NORMAL.value,
        sa_column=Column(String(10), nullable=False),
    )
    status: str = Field(
        default=RequestStatus.NEW.value,
        sa_column=Column(String(50), nullable=False),
        description="RequestStatus value or the name of an active custom status",
    )

    created_at: datetime = Field(
        default_factory=utc_now,
        sa_column_kwargs={"server_default": text("CURRENT_TIMESTAMP")},
    )
    updated_at: datetime = Field(
        default_factory=utc_now,
        sa_column_kwargs={"server_default": text("CURRENT_TIMESTAMP")},
    )
    assigned_at: Optional[datetime] = Field(
        default=None,
        sa_column=Column(DateTime, nullable=True),
    )
    started_at: Optional[datetime] = Field(
        default=None,
        sa_column=Column(DateTime, nullable=True),
        description="First entry into UNDER_INSPECTION",
    )
    completed_at: Optional[datetime] = Field(
        default=None,
        sa_column=Column(DateTime, nullable=True),
    )
    closed_at: Optional[datetime] = Field(
        default=None,
        sa_column=Column(DateTime, nullable=True),
    )
    sla_due_date: datetime = Field(sa_column=Column(DateTime, nullable=False))
    is_overdue: bool = Field(
        default=False,
        sa_column=Column(Boolean, default=False, nullable=False),
    )
    final_notes: Optional[str] = Field(
        default=None,
        sa_column=Column(Text, nullable=True),
    )
    customer_satisfaction: Optional[int] = Field(
        default=None,
        sa_column=Column(Integer, nullable=True),
        description="Score from 1 to 5 given on close",
    )

    customer: Optional[Customer] = Relationship(
        sa_relationship_kwargs={"lazy": "selectin"}
    )
    product: Optional[Product] = Relationship(
        sa_relationship_kwargs={"lazy": "selectin"}
    )
    department: Optional[Department] = Relationship(
        sa_relationship_kwargs={"lazy": "selectin"}
    )
    assigned_technician: Optional[User] = Relationship(
        sa_relationship_kwargs={
            "lazy": "selectin",
            "foreign_keys": "ServiceRequest.assigned_technician_id",
        }
    )
    received_by: Optional[User] = Relationship(
        sa_relationship_kwargs={
            "lazy": "selectin",
            "foreign_keys": "ServiceRequest.received_by_id",
        }
    )
    activities: List["RequestActivity"] = Relationship(
        sa_relationship_kwargs={
            "lazy": "raise",
            "order_by": "RequestActivity.id.desc()",
            "viewonly": True,
        }
    )
    costs: List["RequestCost"] = Relationship(
        sa_relationship_kwargs={
            "lazy": "raise",
            "order_by": "RequestCost.id.desc()",
            "viewonly": True,
        }
    )

    __table_args__ = (
        Index("ix_requests_status", "status"),
        Index("ix_requests_department_id", "department_id"),
        Index("ix_requests_assigned_technician_id", "assigned_technician_id"),
        Index("ix_requests_received_by_id", "received_by_id"),
        Index("ix_requests_created_at", "created_at"),
        Index("ix_requests_sla_due_date", "sla_due_date"),
        Index("ix_requests_overdue_scan", "is_overdue", "status", "sla_due_date"),
    )


class RequestActivity(TableModel, table=True):
    """Append-only audit entry for one mutation of a request."""

    __tablename__ = "request_activities"

    id: Optional[int] = Field(default=None, primary_key=True)
    request_id: int = Field(
        sa_column=Column(
            Integer, ForeignKey("requests.id", ondelete="CASCADE"), nullable=False
        ),
    )
    user_id: int = Field(
        sa_column=Column(Integer, ForeignKey("users.id"), nullable=False),
    )
    activity_type: str = Field(
        sa_column=Column(String(20), nullable=False),
        description="ActivityType value",
    )
    description: str = Field(sa_column=Column(Text, nullable=False))
    old_value: Optional[str] = Field(
        default=None,
        sa_column=Column(String(255), nullable=True),
    )
    new_value: Optional[str] = Field(
        default=None,
        sa_column=Column(String(255), nullable=True),
    )
    created_at: datetime = Field(
        default_factory=utc_now,
        sa_column_kwargs={"server_default": text("CURRENT_TIMESTAMP")},
    )

    user: Optional[User] = Relationship(
        sa_relationship_kwargs={"lazy": "selectin"}
    )

    __table_args__ = (
        Index("ix_request_activities_request_id", "request_id"),
        Index("ix_request_activities_user_id", "user_id"),
        Index("ix_request_activities_created_at", "created_at"),
    )


class RequestCost(TableModel, table=True):
    """Immutable cost line attached to a request."""

    __tablename__ = "request_costs"

    id: Optional[int] = Field(default=None, primary_key=True)
    request_id: int = Field(
        sa_column=Column(
            Integer, ForeignKey("requests.id", ondelete="CASCADE"), nullable=False
        ),
    )
    description: str = Field(sa_column=Column(String(500), nullable=False))
    amount: float = Field(sa_column=Column(Float, nullable=False))
    currency: str = Field(
        default="SYP",
        sa_column=Column(String(3), nullable=False, server_default="SYP"),
    )
    cost_type: str = Field(
        default=CostType.OTHER.value,
        sa_column=Column(String(20), nullable=False),
    )
    added_by_id: int = Field(
        sa_column=Column(Integer, ForeignKey("users.id"), nullable=False),
    )
    created_at: datetime = Field(
        default_factory=utc_now,
        sa_column_kwargs={"server_default": text("CURRENT_TIMESTAMP")},
    )

    added_by: Optional[User] = Relationship(
        sa_relationship_kwargs={"lazy": "selectin"}
    )

    __table_args__ = (
        Index("ix_request_costs_request_id", "request_id"),
    )


class Notification(TableModel, table=True):
    """In-app notification addressed to one user. Only is_read ever changes."""

    __tablename__ = "notifications"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(
        sa_column=Column(
            Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
        ),
    )
    request_id: Optional[int] = Field(
        default=None,
        sa_column=Column(
            Integer, ForeignKey("requests.id", ondelete="SET NULL"), nullable=True
        ),
    )
    title: str = Field(sa_column=Column(String(200), nullable=False))
    message: str = Field(sa_column=Column(Text, nullable=False))
    type: str = Field(
        sa_column=Column(String(20), nullable=False),
        description="NotificationType value",
    )
    is_read: bool = Field(
        default=False,
        sa_column=Column(Boolean, default=False, nullable=False),
    )
    created_at: datetime = Field(
        default_factory=utc_now,
        sa_column_kwargs={"server_default": text("CURRENT_TIMESTAMP")},
    )

    __table_args__ = (
        Index("ix_notifications_user_read", "user_id", "is_read"),
        Index("ix_notifications_request_id", "request_id"),
    )


class CustomRequestStatus(TableModel, table=True):
    """Operator-defined status name usable as an update_status target."""

    __tablename__ = "custom_request_statuses"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(
        sa_column=Column(String(50), nullable=False, unique=True),
    )
    display_name: str = Field(sa_column=Column(String(100), nullable=False))
    description: Optional[str] = Field(
        default=None,
        sa_column=Column(Text, nullable=True),
    )
    sort_order: int = Field(
        default=0,
        sa_column=Column(Integer, default=0, nullable=False),
    )
    is_active: bool = Field(
        default=True,
        sa_column=Column(Boolean, default=True, nullable=False),
    )
    created_by_id: int = Field(
        sa_column=Column(Integer, ForeignKey("users.id"), nullable=False),
    )
    created_at: datetime = Field(
        default_factory=utc_now,
        sa_column_kwargs={"server_default": text("CURRENT_TIMESTAMP")},
    )
    updated_at: datetime = Field(
        default_factory=utc_now,
        sa_column_kwargs={"server_default": text("CURRENT_TIMESTAMP")},
    )

    __table_args__ = (
        Index("ix_custom_request_statuses_active_order", "is_active", "sort_order"),
    )


class RequestSequence(TableModel, table=True):
    """Per-day counter behind request numbers, incremented by an atomic upsert."""

    __tablename__ = "request_sequences"

    day_key: str = Field(
        sa_column=Column(String(6), primary_key=True),
        description="YYMMDD",
    )
    last_value: int = Field(
        default=0,
        sa_column=Column(Integer, nullable=False, default=0),
    )

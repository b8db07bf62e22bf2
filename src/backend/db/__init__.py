"""
Database models and enums for the after-sales service desk.
"""
from .enums import (
    ActivityType,
    CostType,
    ExecutionMethod,
    NotificationType,
    RequestPriority,
    RequestStatus,
    UserRole,
    WarrantyStatus,
)
from .models import (
    Customer,
    CustomRequestStatus,
    Department,
    Notification,
    Product,
    RequestActivity,
    RequestCost,
    RequestSequence,
    ServiceRequest,
    User,
    utc_now,
)

__all__ = [
    # Enums
    "ActivityType",
    "CostType",
    "ExecutionMethod",
    "NotificationType",
    "RequestPriority",
    "RequestStatus",
    "UserRole",
    "WarrantyStatus",
    # Tables
    "Customer",
    "CustomRequestStatus",
    "Department",
    "Notification",
    "Product",
    "RequestActivity",
    "RequestCost",
    "RequestSequence",
    "ServiceRequest",
    "User",
    # Helpers
    "utc_now",
]

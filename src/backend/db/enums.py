"""
Model enums for database models.

Columns store the enum value as a plain string, so rows read back as str
and compare equal to the members below.
"""
from enum import Enum


class UserRole(str, Enum):
    """Role held by a staff user; with the department it gates every action."""
    COMPANY_MANAGER = "COMPANY_MANAGER"
    DEPUTY_MANAGER = "DEPUTY_MANAGER"
    DEPARTMENT_MANAGER = "DEPARTMENT_MANAGER"
    SECTION_SUPERVISOR = "SECTION_SUPERVISOR"
    TECHNICIAN = "TECHNICIAN"
    WAREHOUSE_KEEPER = "WAREHOUSE_KEEPER"


class RequestStatus(str, Enum):
    """
    Canonical request statuses.

    ServiceRequest.status may also hold the name of an active
    CustomRequestStatus.
    """
    NEW = "NEW"
    ASSIGNED = "ASSIGNED"
    UNDER_INSPECTION = "UNDER_INSPECTION"
    WAITING_PARTS = "WAITING_PARTS"
    IN_REPAIR = "IN_REPAIR"
    COMPLETED = "COMPLETED"
    CLOSED = "CLOSED"


class RequestPriority(str, Enum):
    LOW = "LOW"
    NORMAL = "NORMAL"
    HIGH = "HIGH"
    URGENT = "URGENT"


class WarrantyStatus(str, Enum):
    UNDER_WARRANTY = "UNDER_WARRANTY"
    OUT_OF_WARRANTY = "OUT_OF_WARRANTY"


class ExecutionMethod(str, Enum):
    ON_SITE = "ON_SITE"
    WORKSHOP = "WORKSHOP"


class CostType(str, Enum):
    PARTS = "PARTS"
    LABOR = "LABOR"
    TRANSPORTATION = "TRANSPORTATION"
    OTHER = "OTHER"


class ActivityType(str, Enum):
    """Kind of audit entry written to request_activities."""
    CREATED = "CREATED"
    STATUS_CHANGE = "STATUS_CHANGE"
    ASSIGNMENT = "ASSIGNMENT"
    COST_ADDED = "COST_ADDED"
    COMMENT = "COMMENT"
    UPDATED = "UPDATED"


class NotificationType(str, Enum):
    ASSIGNMENT = "ASSIGNMENT"
    OVERDUE = "OVERDUE"
    STATUS_CHANGE = "STATUS_CHANGE"
    COMPLETION = "COMPLETION"
    READ_RECEIPT = "READ_RECEIPT"
    WAREHOUSE_UPDATE = "WAREHOUSE_UPDATE"
    PRODUCT_ADDED = "PRODUCT_ADDED"

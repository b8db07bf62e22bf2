"""
Service request schemas for API validation and serialization.
"""
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import Field

from core.config import settings
from core.schema_base import HTTPSchemaModel
from db.enums import (
    CostType,
    ExecutionMethod,
    RequestPriority,
    WarrantyStatus,
)


# ==================== Nested summaries ====================

class UserSummary(HTTPSchemaModel):
    id: int
    username: str
    first_name: str
    last_name: str
    role: str
    department_id: Optional[int] = None


class DepartmentSummary(HTTPSchemaModel):
    id: int
    name: str


class CustomerSummary(HTTPSchemaModel):
    id: int
    name: str
    phone: str
    email: Optional[str] = None
    address: Optional[str] = None


class ProductSummary(HTTPSchemaModel):
    id: int
    name: str
    model: Optional[str] = None
    category: Optional[str] = None
    department_id: int


# ==================== Inputs ====================

class ServiceRequestCreate(HTTPSchemaModel):
    """Schema for logging a new service request."""
    customer_id: int = Field(..., description="Existing customer")
    product_id: Optional[int] = Field(None, description="Product; its department becomes the request's")
    issue_description: str = Field(..., min_length=1)
    execution_method: ExecutionMethod
    warranty_status: WarrantyStatus
    purchase_date: Optional[datetime] = None
    priority: RequestPriority = RequestPriority.NORMAL


class ServiceRequestFilters(HTTPSchemaModel):
    """Query filters for listing requests."""
    page: int = Field(1, ge=1)
    limit: int = Field(settings.pagination.default_page_size, ge=1, le=settings.pagination.max_page_size)
    sort_by: str = "created_at"
    sort_order: Literal["asc", "desc"] = "desc"
    status: Optional[str] = None
    priority: Optional[RequestPriority] = None
    department_id: Optional[int] = None
    assigned_technician_id: Optional[int] = None
    warranty_status: Optional[WarrantyStatus] = None
    is_overdue: Optional[bool] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    search: Optional[str] = None


class ServiceRequestStatusUpdate(HTTPSchemaModel):
    """Schema for changing a request's status."""
    status: str = Field(..., min_length=1, max_length=50)
    comment: Optional[str] = Field(None, max_length=2000)


class AssignTechnicianRequest(HTTPSchemaModel):
    """Schema for assigning a technician to a request."""
    technician_id: int = Field(..., description="ID of the technician to assign")


class RequestCostCreate(HTTPSchemaModel):
    """Schema for adding a cost line."""
    description: str = Field(..., min_length=1, max_length=500)
    amount: float = Field(..., gt=0, allow_inf_nan=False)
    cost_type: CostType
    currency: str = Field("SYP", min_length=3, max_length=3)


class CloseRequestPayload(HTTPSchemaModel):
    """Schema for closing a completed request."""
    final_notes: Optional[str] = Field(None, max_length=4000)
    customer_satisfaction: Optional[int] = None


class RequestCommentCreate(HTTPSchemaModel):
    comment: str = Field(..., min_length=1, max_length=4000)


# ==================== Outputs ====================

class RequestActivityRead(HTTPSchemaModel):
    """Schema for reading an activity entry."""
    id: int
    request_id: int
    user_id: int
    activity_type: str
    description: str
    old_value: Optional[str] = None
    new_value: Optional[str] = None
    created_at: datetime
    user: Optional[UserSummary] = None


class RequestCostRead(HTTPSchemaModel):
    """Schema for reading a cost line."""
    id: int
    request_id: int
    description: str
    amount: float
    currency: str
    cost_type: str
    added_by_id: int
    created_at: datetime
    added_by: Optional[UserSummary] = None


class ServiceRequestListItem(HTTPSchemaModel):
    """Schema for request lists."""
    id: int
    request_number: str
    customer_id: int
    product_id: Optional[int] = None
    department_id: int
    assigned_technician_id: Optional[int] = None
    received_by_id: int
    issue_description: str
    execution_method: str
    warranty_status: str
    purchase_date: Optional[datetime] = None
    priority: str
    status: str
    created_at: datetime
    updated_at: datetime
    assigned_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None
    sla_due_date: datetime
    is_overdue: bool
    final_notes: Optional[str] = None
    customer_satisfaction: Optional[int] = None

    customer: Optional[CustomerSummary] = None
    product: Optional[ProductSummary] = None
    department: Optional[DepartmentSummary] = None
    assigned_technician: Optional[UserSummary] = None
    received_by: Optional[UserSummary] = None


class ServiceRequestDetail(ServiceRequestListItem):
    """Schema for a single request with its history."""
    activities: List[RequestActivityRead] = []
    costs: List[RequestCostRead] = []


class SLAStats(HTTPSchemaModel):
    total_requests: int
    overdue_requests: int
    completed_on_time: int
    completed_late: int
    overdue_percentage: float
    on_time_percentage: float
    average_resolution_hours: float

"""
Dashboard statistics schemas.
"""
from typing import List

from core.schema_base import HTTPSchemaModel


class DepartmentCount(HTTPSchemaModel):
    department_id: int
    department_name: str
    count: int


class StatusCount(HTTPSchemaModel):
    status: str
    count: int


class DashboardStats(HTTPSchemaModel):
    """Request counts over everything the caller may see."""
    total_requests: int
    pending_requests: int
    overdue_requests: int
    completed_requests: int
    under_warranty: int
    out_of_warranty: int
    requests_by_department: List[DepartmentCount]
    requests_by_status: List[StatusCount]
    average_resolution_time: float
    customer_satisfaction_average: float

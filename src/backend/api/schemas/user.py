"""
Staff user and department schemas for API validation and serialization.
"""
from datetime import datetime
from typing import Optional

from pydantic import Field

from api.schemas.service_request import DepartmentSummary, UserSummary
from core.schema_base import HTTPSchemaModel
from db.enums import UserRole


class UserCreate(HTTPSchemaModel):
    """Schema for creating a staff account."""
    username: str = Field(..., min_length=3, max_length=50)
    email: str = Field(..., min_length=3, max_length=255)
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    phone: Optional[str] = Field(None, max_length=30)
    role: UserRole
    department_id: Optional[int] = None


class UserRead(HTTPSchemaModel):
    id: int
    username: str
    email: str
    first_name: str
    last_name: str
    phone: Optional[str] = None
    role: str
    department_id: Optional[int] = None
    department: Optional[DepartmentSummary] = None
    is_active: bool
    created_at: datetime


class DepartmentRead(HTTPSchemaModel):
    """Department with its manager, if one is set."""
    id: int
    name: str
    description: Optional[str] = None
    is_active: bool
    manager: Optional[UserSummary] = None

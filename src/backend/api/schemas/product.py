"""
Product schemas for API validation and serialization.
"""
from datetime import datetime
from typing import Optional

from pydantic import Field

from api.schemas.service_request import DepartmentSummary
from core.schema_base import HTTPSchemaModel


class ProductCreate(HTTPSchemaModel):
    """Schema for registering a product; requests for it go to its department."""
    name: str = Field(..., min_length=1, max_length=200)
    model: str = Field(..., min_length=1, max_length=100)
    category: str = Field(..., min_length=1, max_length=100)
    department_id: int
    serial_number: Optional[str] = Field(None, max_length=100)
    warranty_months: int = Field(12, ge=0, le=120)


class ProductRead(HTTPSchemaModel):
    id: int
    name: str
    model: Optional[str] = None
    serial_number: Optional[str] = None
    category: Optional[str] = None
    warranty_months: int
    department_id: int
    department: Optional[DepartmentSummary] = None
    created_at: datetime

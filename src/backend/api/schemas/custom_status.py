"""
Custom request status schemas for API validation and serialization.
"""
from datetime import datetime
from typing import Optional

from pydantic import Field

from core.schema_base import HTTPSchemaModel


class CustomStatusCreate(HTTPSchemaModel):
    """Schema for creating a custom status."""
    name: str = Field(..., min_length=1, max_length=50)
    display_name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    sort_order: int = 0


class CustomStatusUpdate(HTTPSchemaModel):
    """Schema for updating a custom status; omitted fields are kept."""
    name: Optional[str] = Field(None, min_length=1, max_length=50)
    display_name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    sort_order: Optional[int] = None
    is_active: Optional[bool] = None


class CustomStatusRead(HTTPSchemaModel):
    """Schema for reading a custom status."""
    id: int
    name: str
    display_name: str
    description: Optional[str] = None
    sort_order: int
    is_active: bool
    created_by_id: int
    created_at: datetime
    updated_at: datetime

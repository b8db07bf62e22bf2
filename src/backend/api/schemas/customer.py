"""
Customer schemas for API validation and serialization.
"""
from datetime import datetime
from typing import Optional

from pydantic import Field

from core.schema_base import HTTPSchemaModel


class CustomerCreate(HTTPSchemaModel):
    """Schema for registering a customer."""
    name: str = Field(..., min_length=1, max_length=200)
    phone: str = Field(..., min_length=1, max_length=30)
    address: str = Field(..., min_length=1)
    email: Optional[str] = Field(None, max_length=255)
    city: Optional[str] = Field(None, max_length=100)


class CustomerRead(HTTPSchemaModel):
    """Schema for reading a customer."""
    id: int
    name: str
    phone: str
    email: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    created_at: datetime

"""
Base schema models for API payloads and the response envelope.

Wire field names are camelCase, datetimes are serialized as naive UTC with a
'Z' suffix, and every endpoint answers with
``{"success": ..., "message": ..., "data": ..., "meta": ...}``.
"""

import math
from datetime import datetime, timezone
from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, field_serializer

T = TypeVar("T")


def to_camel(string: str) -> str:
    """
    Convert snake_case to camelCase.

    Example:
        >>> to_camel("sla_due_date")
        'slaDueDate'
    """
    parts = string.split("_")
    return parts[0] + "".join(word.capitalize() for word in parts[1:])


def serialize_datetime(dt: datetime | None) -> str | None:
    """Serialize a UTC datetime to ISO 8601 with a 'Z' suffix."""
    if dt is None:
        return None

    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)

    return dt.isoformat() + "Z"


class HTTPSchemaModel(BaseModel):
    """
    Base model for all HTTP API schemas.

    Accepts both snake_case and camelCase input, reads ORM rows directly
    (from_attributes=True) and emits camelCase keys.
    """

    model_config = ConfigDict(
        from_attributes=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    @field_serializer("*", mode="wrap")
    @classmethod
    def serialize_any_datetime(cls, value: Any, handler: Any) -> Any:
        if isinstance(value, datetime):
            return serialize_datetime(value)
        return handler(value)


class PaginationMeta(HTTPSchemaModel):
    """Pagination block carried in ``meta`` on list endpoints."""

    page: int
    limit: int
    total: int
    total_pages: int

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "PaginationMeta":
        total_pages = math.ceil(total / limit) if limit else 0
        return cls(page=page, limit=limit, total=total, total_pages=total_pages)


class ApiResponse(HTTPSchemaModel, Generic[T]):
    """Uniform response envelope."""

    success: bool = True
    message: Optional[str] = None
    data: Optional[T] = None
    meta: Optional[PaginationMeta] = None

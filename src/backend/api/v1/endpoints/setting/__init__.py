"""Settings endpoints."""

from . import departments, products, request_status, users

__all__ = [
    "departments",
    "products",
    "request_status",
    "users",
]

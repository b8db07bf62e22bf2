"""
API v1 routes.

Endpoints are organized into subdirectories: support (requests, customers,
activities, notifications), setting (custom request statuses, departments,
products, users) and reporting (dashboard).
"""

from fastapi import APIRouter

from .endpoints.reporting import dashboard
from .endpoints.setting import departments, products, request_status, users
from .endpoints.support import activities, customers, notifications, requests

api_router = APIRouter()

api_router.include_router(requests.router, prefix="/requests", tags=["requests"])

api_router.include_router(customers.router, prefix="/customers", tags=["customers"])

api_router.include_router(
    activities.router, prefix="/activities", tags=["activities"]
)

api_router.include_router(
    notifications.router, prefix="/notifications", tags=["notifications"]
)

api_router.include_router(
    request_status.router, prefix="/statuses", tags=["request-statuses"]
)

api_router.include_router(
    departments.router, prefix="/departments", tags=["departments"]
)

api_router.include_router(products.router, prefix="/products", tags=["products"])

api_router.include_router(users.router, prefix="/users", tags=["users"])

api_router.include_router(dashboard.router, prefix="/dashboard", tags=["dashboard"])

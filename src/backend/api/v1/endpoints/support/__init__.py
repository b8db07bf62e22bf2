"""Service request, customer, activity and notification endpoints."""

from . import activities, customers, notifications, requests

__all__ = [
    "activities",
    "customers",
    "notifications",
    "requests",
]

"""Reporting endpoints."""

from . import dashboard

__all__ = ["dashboard"]

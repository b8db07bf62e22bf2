"""
Application factory for FastAPI.

This module provides the create_app() function that creates and configures
the FastAPI application instance.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address

from api.v1 import api_router
from app.routes import health_router
from core.config import settings
from core.exceptions import register_exception_handlers
from core.lifespan import lifespan
from core.middleware import CorrelationIdMiddleware


def create_app() -> FastAPI:
    """
    Application factory function.

    Creates and configures the FastAPI application with its middleware,
    exception handlers and routes.

    Returns:
        FastAPI: Configured FastAPI application instance
    """
    # Rate limiter instance
    limiter = Limiter(
        key_func=get_remote_address,
        default_limits=[settings.rate_limit.default_limit],
        enabled=settings.rate_limit.enabled,
    )

    # Create FastAPI app
    app = FastAPI(
        title=settings.api.app_name,
        version=settings.api.app_version,
        description="After-sales service desk: request lifecycle, SLA tracking and notifications",
        lifespan=lifespan,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
    )

    # Add rate limiter
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)

    # Error envelope for AppError, HTTPException and validation errors
    register_exception_handlers(app)

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors.origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "Accept", "Origin", "X-Requested-With", "X-Correlation-ID"],
        expose_headers=["X-Correlation-ID"],
    )

    app.add_middleware(CorrelationIdMiddleware)

    # Include routers
    app.include_router(health_router)
    app.include_router(api_router, prefix=settings.api.api_v1_prefix)

    return app

"""
FastAPI Application Entry Point.

This is the main application file for the RideShare Backend.
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from rideshare.app.core.config import settings
from rideshare.app.api.v1.router import router as api_v1_router
from rideshare.app.db.session import engine, Base
from rideshare.app.core.observability import configure_logging, ObservabilityMiddleware
from rideshare.app.core.redis_client import ping_redis
from rideshare.app.core.exceptions import (
    AppException,
    app_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    generic_exception_handler
)

# Import models to ensure they are registered with Base
from rideshare.app.models.vehicle import Vehicle  # before users and assignments for FKs
from rideshare.app.models.user import User
from rideshare.app.models.audit_log import AuditLog
from rideshare.app.models.route_template import RouteTemplate
from rideshare.app.models.assignment import Assignment
from rideshare.app.models.stop_completion import AssignmentStopCompletion
from rideshare.app.models.attendance import AttendanceRecord
from rideshare.app.models.subscription import Subscription, SubscriptionRide

configure_logging(settings.log_level)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for application startup/shutdown.
    
    Creates database tables on startup.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    await engine.dispose()

# Initialize FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.api_version,
    debug=settings.debug,
    description="Ride subscription backend: preset routes, driver assignments and live stop-by-stop progress",
    lifespan=lifespan,
)

app.add_middleware(ObservabilityMiddleware)

# Register global exception handlers
app.add_exception_handler(AppException, app_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)


@app.get("/health", tags=["Health"])
async def health_check():
    """
    Health check endpoint.
    
    Returns:
        dict: Status, application information and Redis reachability
    """
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.api_version,
        "redis": "up" if await ping_redis() else "down",
    }


# Include API v1 router
app.include_router(api_v1_router, prefix=f"/{settings.api_version}")


@app.get("/", tags=["Root"])
async def root():
    """
    Root endpoint.
    
    Returns:
        dict: Welcome message and API documentation links
    """
    return {
        "message": "Welcome to RideShare Backend API",
        "docs": "/docs",
        "health": "/health",
    }

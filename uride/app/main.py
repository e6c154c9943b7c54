"""
FastAPI Application Entry Point.

This is the main application file for the uRide matching backend.
"""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from uride.app.core.config import settings
from uride.app.api.v1.router import router as api_v1_router
from uride.app.db.session import engine, Base
from uride.app.core.redis_client import ping_redis
from uride.app.core.observability import ObservabilityMiddleware, configure_logging
from uride.app.core.exceptions import (
    AppException,
    app_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    generic_exception_handler
)

# Import models to ensure they are registered with Base
from uride.app.models.user import User  # noqa: F401
from uride.app.models.audit_log import AuditLog  # noqa: F401
from uride.app.models.driver import Driver  # noqa: F401
from uride.app.models.ride import Ride  # noqa: F401

logger = logging.getLogger("uride")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for application startup/shutdown.

    Creates database tables on startup. Users and the audit log always live
    in SQL, whatever the ride storage backend.
    """
    configure_logging(settings.log_level)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Started %s with %s ride storage", settings.app_name, settings.storage_backend)
    yield
    await engine.dispose()


app = FastAPI(
    title=settings.app_name,
    version=settings.api_version,
    debug=settings.debug,
    description="Nearby-driver matching and ride dispatch API",
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
        "storage_backend": settings.storage_backend,
        "redis": "up" if await ping_redis() else "down",
    }


app.include_router(api_v1_router, prefix=settings.api_prefix)


@app.get("/", tags=["Root"])
async def root():
    return {
        "message": "Welcome to the uRide API",
        "docs": "/docs",
        "health": "/health",
    }

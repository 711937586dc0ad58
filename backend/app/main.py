"""
FastAPI Application Entry Point.

Pricing and live-tracking backend for animal transports.
"""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from backend.app.core.config import settings
from backend.app.api.v1.router import router as api_v1_router
from backend.app.core.observability import ObservabilityMiddleware
from backend.app.core.redis_client import ping_redis, close_redis
from backend.app.core.reliability import directions_circuit_breaker
from backend.app.db.session import engine, Base
from backend.app.core.exceptions import (
    AppException,
    app_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    generic_exception_handler
)

logger = logging.getLogger(__name__)


def register_models():
    """Import models so they are registered with Base before create_all."""
    from backend.app.models import (  # noqa: F401
        audit_log, shelter, driver, animal, transport, pricing_rule,
        complexity_fee, pricing_snapshot, route_path, live_position, transaction,
    )


register_models()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for application startup/shutdown.

    Creates database tables on startup; closes Redis and the engine on shutdown.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("%s started", settings.app_name)
    yield
    await close_redis()
    await engine.dispose()


app = FastAPI(
    title=settings.app_name,
    version=settings.api_version,
    debug=settings.debug,
    description="Transport pricing snapshots and live tracking for animal transports",
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

    Reports Redis reachability and the directions provider circuit state.
    The service stays "healthy" while degraded; pricing fails fast instead.
    """
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.api_version,
        "redis": "up" if await ping_redis() else "down",
        "directions_circuit": directions_circuit_breaker.state,
    }


app.include_router(api_v1_router, prefix=f"/{settings.api_version}")


@app.get("/", tags=["Root"])
async def root():
    return {
        "message": "Welcome to the Animal Transport Backend API",
        "docs": "/docs",
        "health": "/health",
    }

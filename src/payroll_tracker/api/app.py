"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from payroll_tracker import __version__
from payroll_tracker.api.routes import (
    employees_router,
    health_router,
    payouts_router,
    settings_router,
    time_entries_router,
    webhook_router,
)
from payroll_tracker.config import Settings, get_settings
from payroll_tracker.database import dispose_db, init_db

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Create the engine on startup and dispose of it on shutdown."""
    engine, _ = init_db()
    logger.info("Database engine ready (%s)", engine.url.get_backend_name())
    try:
        yield
    finally:
        await dispose_db()


async def unhandled_error(request: Request, exc: Exception) -> JSONResponse:
    """Log an unexpected exception and answer with a generic 500."""
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "detail": "An unexpected error occurred",
            "code": "INTERNAL_ERROR",
        },
    )


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the API: webhook and health checks at the root, admin API under /api/v1."""
    settings = settings or get_settings()
    app = FastAPI(
        title="Payroll Tracker API",
        description="Project and hourly payouts with a timezone-aware time clock",
        version=__version__,
        lifespan=lifespan,
    )

    # Browsers reject credentials with a wildcard origin.
    any_origin = "*" in settings.cors_origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=not any_origin,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(Exception, unhandled_error)

    # External integrations post to /project-webhook without a prefix.
    app.include_router(health_router)
    app.include_router(webhook_router)
    for router in (employees_router, time_entries_router, payouts_router, settings_router):
        app.include_router(router, prefix=API_PREFIX)

    return app


# Default app instance for uvicorn
app = create_app()

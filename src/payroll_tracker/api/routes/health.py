"""Liveness, readiness and health endpoints."""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Response, status
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from payroll_tracker import __version__
from payroll_tracker.api.dependencies import DbSession
from payroll_tracker.models import DEFAULT_TIMEZONE
from payroll_tracker.timeclock import InvalidTimezoneError, resolve_timezone

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    timestamp: datetime
    database: str
    timezone_data: str


async def _database_ok(db: AsyncSession) -> bool:
    try:
        await db.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError):
        logger.warning("Database health check failed", exc_info=True)
        return False
    return True


def _timezone_data_ok() -> bool:
    """Local-time conversions need the IANA database installed."""
    try:
        resolve_timezone(DEFAULT_TIMEZONE)
    except InvalidTimezoneError:
        logger.warning("IANA timezone data is not available")
        return False
    return True


@router.get("/health", response_model=HealthResponse)
async def health_check(db: DbSession) -> HealthResponse:
    """Database and timezone data status. Always answers 200."""
    database_ok = await _database_ok(db)
    timezone_ok = _timezone_data_ok()
    return HealthResponse(
        status="healthy" if database_ok and timezone_ok else "degraded",
        version=__version__,
        timestamp=datetime.now(timezone.utc),
        database="healthy" if database_ok else "unhealthy",
        timezone_data="available" if timezone_ok else "missing",
    )


@router.get("/ready")
async def readiness_check(db: DbSession, response: Response) -> dict[str, str]:
    """Ready once the database answers; 503 until then."""
    if not await _database_ok(db):
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return {"status": "unavailable"}
    return {"status": "ready"}


@router.get("/live")
async def liveness_check() -> dict[str, str]:
    return {"status": "alive"}

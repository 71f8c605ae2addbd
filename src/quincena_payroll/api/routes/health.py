"""Health check endpoints."""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy import text

from quincena_payroll import __version__
from quincena_payroll.api.dependencies import Uow
from quincena_payroll.database import UnitOfWork

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    timestamp: datetime
    database: str


async def _database_ok(uow: UnitOfWork) -> bool:
    try:
        await uow.session.execute(text("SELECT 1"))
    except Exception:
        logger.warning("Database health check failed", exc_info=True)
        return False
    return True


@router.get("/health", response_model=HealthResponse)
async def health_check(uow: Uow) -> HealthResponse:
    """Report API version and database reachability."""
    db_ok = await _database_ok(uow)
    return HealthResponse(
        status="healthy" if db_ok else "degraded",
        version=__version__,
        timestamp=datetime.now(timezone.utc),
        database="healthy" if db_ok else "unhealthy",
    )


@router.get("/ready")
async def readiness_check(uow: Uow) -> JSONResponse:
    """Ready once the database answers; 503 otherwise."""
    if await _database_ok(uow):
        return JSONResponse({"status": "ready"})
    return JSONResponse(
        {"status": "not_ready"}, status_code=status.HTTP_503_SERVICE_UNAVAILABLE
    )


@router.get("/live")
async def liveness_check() -> dict[str, str]:
    """Process is up; no dependencies checked."""
    return {"status": "alive"}

"""Health check endpoints."""

from typing import Literal

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from app.core.exceptions import ExecutionError
from app.core.logging import get_logger
from app.features.reports.data_access import ReportDataAccess
from app.features.reports.deps import get_data_access

logger = get_logger(__name__)

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Health check response schema."""

    status: Literal["ok", "unhealthy"]
    database: Literal["connected", "disconnected"] | None = None


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Liveness check; does not touch the store."""
    return HealthResponse(status="ok")


@router.get("/health/ready", response_model=HealthResponse)
async def readiness_check(
    data_access: ReportDataAccess = Depends(get_data_access),
) -> HealthResponse:
    """Readiness check running ``SELECT 1`` through the report data access.

    Args:
        data_access: Report data access dependency.

    Returns:
        Health status with database state.
    """
    try:
        await data_access.execute("SELECT 1", [])
    except ExecutionError as e:
        logger.error(
            "health.database_disconnected",
            error=e.message,
            details=e.details,
        )
        return HealthResponse(status="unhealthy", database="disconnected")

    logger.debug("health.database_connected")
    return HealthResponse(status="ok", database="connected")

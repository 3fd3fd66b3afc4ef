"""FastAPI dependencies for the reports feature."""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.database import get_db
from app.features.reports.data_access import ReportDataAccess, SessionDataAccess
from app.features.reports.service import ReportsService


async def get_data_access(db: AsyncSession = Depends(get_db)) -> ReportDataAccess:
    """Provide the data access bound to the request's session."""
    return SessionDataAccess(db, timeout=get_settings().reports_query_timeout_seconds)


async def get_reports_service(
    data_access: ReportDataAccess = Depends(get_data_access),
) -> ReportsService:
    """Provide a reports service for the request."""
    return ReportsService(data_access)

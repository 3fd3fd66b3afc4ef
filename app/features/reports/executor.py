"""Runs assembled report queries and types their results."""

from app.core.logging import get_logger
from app.features.reports.data_access import ReportDataAccess
from app.features.reports.normalizer import TypedResult, normalize_rows
from app.features.reports.query_builder import ReportQuery
from app.features.reports.schemas import ReportShape

logger = get_logger(__name__)


class ReportExecutor:
    """Executes a ``ReportQuery`` through the injected data access.

    Store failures propagate unchanged; there are no retries here.
    """

    def __init__(self, data_access: ReportDataAccess) -> None:
        self.data_access = data_access

    async def run(self, shape: ReportShape, query: ReportQuery) -> list[TypedResult]:
        """Execute ``query`` and normalize every returned row.

        Args:
            shape: Report shape, selects the numeric field set.
            query: Assembled query.

        Returns:
            Typed result rows.
        """
        rows = await self.data_access.execute(query.sql, list(query.parameters))
        logger.debug(
            "reports.query_executed",
            shape=shape.value,
            parameter_count=len(query.parameters),
            row_count=len(rows),
        )
        return normalize_rows(shape, rows)

"""Service layer for sales reports.

Each operation runs the same pipeline: normalize filters, build the query,
execute it, type the rows.
"""

from collections.abc import Mapping
from typing import Any

from app.core.config import Settings, get_settings
from app.core.exceptions import InvalidFilterError
from app.core.logging import get_logger
from app.features.reports.data_access import ReportDataAccess
from app.features.reports.executor import ReportExecutor
from app.features.reports.filters import FilterDescriptor, normalize_filters
from app.features.reports.normalizer import TypedResult
from app.features.reports.query_builder import build_query
from app.features.reports.schemas import ReportFilterParams, ReportShape, TimeGranularity

logger = get_logger(__name__)

FilterInput = Mapping[str, Any] | ReportFilterParams | None

EMPTY_KPIS: TypedResult = {
    "totalRevenue": 0,
    "avgTicket": 0,
    "totalSales": 0,
    "cancelRate": 0,
}


class ReportsService:
    """Computes KPI, revenue-over-time and top-product reports."""

    def __init__(
        self,
        data_access: ReportDataAccess,
        settings: Settings | None = None,
    ) -> None:
        """Initialize reports service.

        Args:
            data_access: Collaborator that runs positional SQL.
            settings: Application settings (defaults to the cached singleton).
        """
        self.settings = settings or get_settings()
        self.executor = ReportExecutor(data_access)

    async def get_kpis(self, params: FilterInput = None) -> TypedResult:
        """Compute headline KPIs for the filtered sales.

        Args:
            params: Caller filters.

        Returns:
            ``totalRevenue``, ``avgTicket``, ``totalSales`` and ``cancelRate``.

        Raises:
            InvalidFilterError: If the filters are invalid.
        """
        descriptor = normalize_filters(params)
        query = build_query(ReportShape.KPI, descriptor)
        rows = await self.executor.run(ReportShape.KPI, query)
        result = rows[0] if rows else dict(EMPTY_KPIS)

        logger.info(
            "reports.kpis_computed",
            **_describe(descriptor),
            total_sales=result.get("totalSales"),
        )
        return result

    async def get_revenue_over_time(
        self,
        params: FilterInput = None,
        granularity: TimeGranularity | None = None,
    ) -> list[TypedResult]:
        """Compute completed revenue per time bucket.

        Args:
            params: Caller filters.
            granularity: Bucket size (defaults to settings).

        Returns:
            One row per bucket with ``date``, ``revenue`` and ``totalSales``.
        """
        granularity = granularity or TimeGranularity(self.settings.reports_default_granularity)
        descriptor = normalize_filters(params)
        query = build_query(ReportShape.REVENUE_OVER_TIME, descriptor, granularity=granularity)
        rows = await self.executor.run(ReportShape.REVENUE_OVER_TIME, query)

        logger.info(
            "reports.revenue_over_time_computed",
            **_describe(descriptor),
            granularity=granularity.value,
            bucket_count=len(rows),
        )
        return rows

    async def get_top_products(
        self,
        params: FilterInput = None,
        limit: int | None = None,
    ) -> list[TypedResult]:
        """Rank products by quantity sold.

        Args:
            params: Caller filters.
            limit: Number of products (defaults to settings, capped by
                ``reports_top_products_max_limit``).

        Returns:
            Up to ``limit`` rows, highest quantity first.

        Raises:
            InvalidFilterError: If the filters or the limit are invalid.
        """
        if limit is None:
            limit = self.settings.reports_top_products_default_limit
        max_limit = self.settings.reports_top_products_max_limit
        if isinstance(limit, bool) or not isinstance(limit, int) or not 1 <= limit <= max_limit:
            raise InvalidFilterError(
                f"limit must be an integer between 1 and {max_limit}",
                details={"field": "limit", "value": str(limit)},
            )

        descriptor = normalize_filters(params)
        query = build_query(ReportShape.TOP_PRODUCTS, descriptor, limit=limit)
        rows = await self.executor.run(ReportShape.TOP_PRODUCTS, query)

        logger.info(
            "reports.top_products_computed",
            **_describe(descriptor),
            limit=limit,
            product_count=len(rows),
        )
        return rows


def _describe(descriptor: FilterDescriptor) -> dict[str, Any]:
    """Log-friendly view of the applied filters."""
    return {
        "start": descriptor.start.isoformat() if descriptor.start else None,
        "end": descriptor.end.isoformat() if descriptor.end else None,
        "channel_ids": list(descriptor.channel_ids),
        "store_ids": list(descriptor.store_ids),
        "days_of_week": list(descriptor.days_of_week),
    }

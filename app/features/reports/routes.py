"""API routes for sales reports.

All endpoints share the same filters: ``startDate``, ``endDate`` (inclusive
calendar days), ``channelIds``, ``storeIds`` and ``dayOfWeek`` (0 = Sunday).
List filters accept repeated parameters (``storeIds=1&storeIds=2``) or a
comma-separated value (``storeIds=1,2``).
"""

from fastapi import APIRouter, Depends, Query

from app.core.logging import get_logger
from app.features.reports.deps import get_reports_service
from app.features.reports.schemas import (
    KPIResponse,
    ReportFilterParams,
    RevenueOverTimeResponse,
    RevenuePoint,
    TimeGranularity,
    TopProduct,
    TopProductsResponse,
)
from app.features.reports.service import ReportsService

logger = get_logger(__name__)

router = APIRouter(prefix="/reports", tags=["reports"])


def get_filter_params(
    start_date: str | None = Query(
        None,
        alias="startDate",
        description="Start of the period (inclusive). Format: YYYY-MM-DD.",
    ),
    end_date: str | None = Query(
        None,
        alias="endDate",
        description="End of the period (inclusive). Format: YYYY-MM-DD.",
    ),
    channel_ids: list[str] | None = Query(
        None,
        alias="channelIds",
        description="Restrict to these sales channels.",
    ),
    store_ids: list[str] | None = Query(
        None,
        alias="storeIds",
        description="Restrict to these stores.",
    ),
    day_of_week: list[str] | None = Query(
        None,
        alias="dayOfWeek",
        description="Restrict to these weekdays (0 = Sunday ... 6 = Saturday).",
    ),
) -> ReportFilterParams:
    """Collect report filters from the query string."""
    return ReportFilterParams(
        start_date=start_date,
        end_date=end_date,
        channel_ids=channel_ids,
        store_ids=store_ids,
        day_of_week=day_of_week,
    )


@router.get(
    "/kpis",
    response_model=KPIResponse,
    summary="Compute headline KPIs",
    description="""
Total revenue, average ticket and number of completed sales, plus the share
of cancelled sales, for the filtered period.

**Example**: `GET /reports/kpis?startDate=2024-01-01&endDate=2024-01-31&channelIds=1,3`
""",
)
async def get_kpis(
    filters: ReportFilterParams = Depends(get_filter_params),
    service: ReportsService = Depends(get_reports_service),
) -> KPIResponse:
    """Compute KPIs for the filtered sales."""
    result = await service.get_kpis(filters)
    return KPIResponse.model_validate(result)


@router.get(
    "/revenue-over-time",
    response_model=RevenueOverTimeResponse,
    summary="Revenue per time bucket",
    description="""
Completed revenue and sale counts grouped by day, week or month.

**Example**: `GET /reports/revenue-over-time?granularity=week&storeIds=5`
""",
)
async def get_revenue_over_time(
    granularity: TimeGranularity | None = Query(
        None,
        description="Bucket size: day, week or month (default from settings).",
    ),
    filters: ReportFilterParams = Depends(get_filter_params),
    service: ReportsService = Depends(get_reports_service),
) -> RevenueOverTimeResponse:
    """Compute the revenue series for the filtered sales."""
    granularity = granularity or TimeGranularity(service.settings.reports_default_granularity)
    rows = await service.get_revenue_over_time(filters, granularity)
    return RevenueOverTimeResponse(
        granularity=granularity,
        points=[RevenuePoint.model_validate(row) for row in rows],
    )


@router.get(
    "/top-products",
    response_model=TopProductsResponse,
    summary="Best-selling products",
    description="""
Products ranked by quantity sold in completed sales.

**Example**: `GET /reports/top-products?limit=5&dayOfWeek=0,6`
""",
)
async def get_top_products(
    limit: int | None = Query(
        None,
        ge=1,
        description="Number of products to return (default from settings).",
    ),
    filters: ReportFilterParams = Depends(get_filter_params),
    service: ReportsService = Depends(get_reports_service),
) -> TopProductsResponse:
    """Rank products by quantity for the filtered sales."""
    limit = limit or service.settings.reports_top_products_default_limit
    rows = await service.get_top_products(filters, limit)
    return TopProductsResponse(
        limit=limit,
        items=[TopProduct.model_validate(row) for row in rows],
    )

"""Pydantic schemas and enums for report endpoints.

Response fields are snake_case in Python and camelCase on the wire.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# =============================================================================
# Enums
# =============================================================================


class ReportShape(str, Enum):
    """Aggregation template selected by report type."""

    KPI = "kpi"
    REVENUE_OVER_TIME = "revenue_over_time"
    TOP_PRODUCTS = "top_products"


class TimeGranularity(str, Enum):
    """Bucket size for revenue-over-time reports."""

    DAY = "day"
    WEEK = "week"
    MONTH = "month"


# =============================================================================
# Inbound Filters
# =============================================================================


class ReportFilterParams(BaseModel):
    """Raw report filters as received from the caller.

    Values are kept loose here; ``normalize_filters`` does the validation so
    that every malformed combination surfaces as ``InvalidFilterError``.
    """

    model_config = ConfigDict(populate_by_name=True)

    start_date: str | None = Field(
        None,
        alias="startDate",
        description="Start of the period (inclusive). Format: YYYY-MM-DD.",
    )
    end_date: str | None = Field(
        None,
        alias="endDate",
        description="End of the period (inclusive). Format: YYYY-MM-DD.",
    )
    channel_ids: list[str] | None = Field(
        None,
        alias="channelIds",
        description="Sales channel IDs. Repeated or comma-separated.",
    )
    store_ids: list[str] | None = Field(
        None,
        alias="storeIds",
        description="Store IDs. Repeated or comma-separated.",
    )
    day_of_week: list[str] | None = Field(
        None,
        alias="dayOfWeek",
        description="Days of week, 0 = Sunday through 6 = Saturday.",
    )

    def to_raw(self) -> dict[str, Any]:
        """Return the filters keyed by their wire names, absent ones dropped."""
        return self.model_dump(by_alias=True, exclude_none=True)


# =============================================================================
# Responses
# =============================================================================


class KPIResponse(BaseModel):
    """Headline sales KPIs for the filtered period."""

    model_config = ConfigDict(populate_by_name=True)

    total_revenue: float = Field(
        ...,
        alias="totalRevenue",
        description="Sum of total_amount over completed sales.",
    )
    avg_ticket: float = Field(
        ...,
        alias="avgTicket",
        description="Average total_amount of a completed sale.",
    )
    total_sales: int = Field(
        ...,
        ge=0,
        alias="totalSales",
        description="Number of completed sales.",
    )
    cancel_rate: float = Field(
        ...,
        ge=0,
        le=1,
        alias="cancelRate",
        description="Cancelled sales divided by all sales (0-1).",
    )


class RevenuePoint(BaseModel):
    """Revenue for one time bucket."""

    model_config = ConfigDict(populate_by_name=True)

    date: str = Field(..., description="Bucket start date (YYYY-MM-DD).")
    revenue: float = Field(..., description="Completed revenue in the bucket.")
    total_sales: int = Field(..., ge=0, alias="totalSales")


class RevenueOverTimeResponse(BaseModel):
    """Revenue series ordered by bucket date."""

    granularity: TimeGranularity
    points: list[RevenuePoint]


class TopProduct(BaseModel):
    """A product ranked by quantity sold."""

    model_config = ConfigDict(populate_by_name=True)

    product_id: int = Field(..., alias="productId")
    product_name: str | None = Field(None, alias="productName")
    total_quantity: float = Field(..., alias="totalQuantity")
    total_revenue: float = Field(..., alias="totalRevenue")


class TopProductsResponse(BaseModel):
    """Top-N products ordered by quantity sold (highest first)."""

    limit: int = Field(..., ge=1)
    items: list[TopProduct]

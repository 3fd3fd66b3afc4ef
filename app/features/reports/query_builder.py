"""Parameterized SQL assembly for report queries.

Every report is a fixed aggregation template plus a WHERE clause built from
the filter descriptor. Filter fragments never carry placeholder indexes; the
assembler assigns ``$N`` as it appends each value, so placeholders and
parameters cannot drift apart. Caller data only ever travels as parameters.
"""

from __future__ import annotations

import re
from collections.abc import Iterator
from dataclasses import dataclass
from typing import Any

from app.core.exceptions import QueryAssemblyError
from app.core.logging import get_logger
from app.features.reports.filters import FilterDescriptor
from app.features.reports.schemas import ReportShape, TimeGranularity

logger = get_logger(__name__)

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

_PLACEHOLDER_RE = re.compile(r"\$(\d+)")


@dataclass(frozen=True)
class ClauseFragment:
    """A WHERE condition with a single ``{}`` slot for its placeholder."""

    condition: str
    value: Any


@dataclass(frozen=True)
class ReportQuery:
    """SQL text with its positional parameters (``$1`` binds ``parameters[0]``)."""

    sql: str
    parameters: tuple[Any, ...]

    @property
    def placeholder_count(self) -> int:
        return len(_PLACEHOLDER_RE.findall(self.sql))


# =============================================================================
# Templates
# =============================================================================

# Columns are quoted so the store returns camelCase keys.
KPI_TEMPLATE = """
SELECT
    COALESCE(SUM(s.total_amount) FILTER (WHERE s.sale_status_desc = 'COMPLETED'), 0)
        AS "totalRevenue",
    COALESCE(AVG(s.total_amount) FILTER (WHERE s.sale_status_desc = 'COMPLETED'), 0)
        AS "avgTicket",
    COUNT(*) FILTER (WHERE s.sale_status_desc = 'COMPLETED') AS "totalSales",
    COALESCE(
        COUNT(*) FILTER (WHERE s.sale_status_desc = 'CANCELLED')::numeric
            / NULLIF(COUNT(*), 0),
        0
    ) AS "cancelRate"
FROM sales s
{where}
""".strip()

_REVENUE_OVER_TIME_TEMPLATE = """
SELECT
    TO_CHAR(DATE_TRUNC('{bucket}', s.created_at), 'YYYY-MM-DD') AS "date",
    COALESCE(SUM(s.total_amount) FILTER (WHERE s.sale_status_desc = 'COMPLETED'), 0)
        AS "revenue",
    COUNT(*) FILTER (WHERE s.sale_status_desc = 'COMPLETED') AS "totalSales"
FROM sales s
{where}
GROUP BY DATE_TRUNC('{bucket}', s.created_at)
ORDER BY DATE_TRUNC('{bucket}', s.created_at)
""".strip()

REVENUE_OVER_TIME_TEMPLATES: dict[TimeGranularity, str] = {
    granularity: _REVENUE_OVER_TIME_TEMPLATE.replace("{bucket}", granularity.value)
    for granularity in TimeGranularity
}

TOP_PRODUCTS_TEMPLATE = """
SELECT
    p.id AS "productId",
    p.name AS "productName",
    SUM(ps.quantity) AS "totalQuantity",
    SUM(ps.total_price) AS "totalRevenue"
FROM product_sales ps
JOIN sales s ON s.id = ps.sale_id AND s.sale_status_desc = 'COMPLETED'
JOIN products p ON p.id = ps.product_id
{where}
GROUP BY p.id, p.name
ORDER BY "totalQuantity" DESC, p.id
LIMIT {limit}
""".strip()


# =============================================================================
# Filter Fragments
# =============================================================================


def filter_fragments(descriptor: FilterDescriptor) -> Iterator[ClauseFragment]:
    """Yield one fragment per present filter, in canonical clause order.

    Order: start, end, channels, stores, days of week.
    """
    if descriptor.start is not None:
        yield ClauseFragment(
            "s.created_at >= {}::text::timestamp",
            descriptor.start.strftime(TIMESTAMP_FORMAT),
        )
    if descriptor.end is not None:
        yield ClauseFragment(
            "s.created_at <= {}::text::timestamp",
            descriptor.end.strftime(TIMESTAMP_FORMAT),
        )
    if descriptor.channel_ids:
        yield ClauseFragment("s.channel_id = ANY({})", list(descriptor.channel_ids))
    if descriptor.store_ids:
        yield ClauseFragment("s.store_id = ANY({})", list(descriptor.store_ids))
    if descriptor.days_of_week:
        yield ClauseFragment(
            "EXTRACT(DOW FROM s.created_at) = ANY({})",
            list(descriptor.days_of_week),
        )


# =============================================================================
# Assembly
# =============================================================================


class _ParameterBinder:
    """Appends values and hands back the placeholder that binds each one."""

    def __init__(self) -> None:
        self.parameters: list[Any] = []

    def bind(self, value: Any) -> str:
        self.parameters.append(value)
        return f"${len(self.parameters)}"


def build_query(
    shape: ReportShape,
    descriptor: FilterDescriptor,
    *,
    granularity: TimeGranularity = TimeGranularity.DAY,
    limit: int | None = None,
) -> ReportQuery:
    """Assemble the SQL and positional parameters for a report.

    Args:
        shape: Report template to use.
        descriptor: Validated filters.
        granularity: Bucket size, used by revenue-over-time only.
        limit: Row limit, required by top products only.

    Returns:
        Query whose placeholders match its parameters one to one.

    Raises:
        QueryAssemblyError: If placeholders and parameters disagree, or a
            required shape argument is missing.
    """
    binder = _ParameterBinder()
    conditions = [
        fragment.condition.format(binder.bind(fragment.value))
        for fragment in filter_fragments(descriptor)
    ]
    where = f"WHERE {' AND '.join(conditions)}" if conditions else ""

    if shape == ReportShape.KPI:
        sql = KPI_TEMPLATE.format(where=where)
    elif shape == ReportShape.REVENUE_OVER_TIME:
        sql = REVENUE_OVER_TIME_TEMPLATES[granularity].format(where=where)
    else:  # TOP_PRODUCTS
        if limit is None:
            raise QueryAssemblyError(
                "Top products query requires a limit",
                details={"shape": shape.value},
            )
        sql = TOP_PRODUCTS_TEMPLATE.format(where=where, limit=binder.bind(limit))

    # Drop the blank line left where an empty WHERE clause would be.
    sql = "\n".join(line for line in sql.splitlines() if line.strip())
    query = ReportQuery(sql=sql, parameters=tuple(binder.parameters))
    verify_placeholders(query)

    logger.debug(
        "reports.query_built",
        shape=shape.value,
        filter_count=len(conditions),
        parameter_count=len(query.parameters),
    )
    return query


def verify_placeholders(query: ReportQuery) -> None:
    """Check that ``$1..$N`` each appear once, in order, for N parameters.

    Raises:
        QueryAssemblyError: On any mismatch.
    """
    indexes = [int(match) for match in _PLACEHOLDER_RE.findall(query.sql)]
    expected = list(range(1, len(query.parameters) + 1))
    if indexes != expected:
        logger.error(
            "reports.query_assembly_failed",
            placeholders=indexes,
            parameter_count=len(query.parameters),
            sql=query.sql,
        )
        raise QueryAssemblyError(
            details={"placeholders": indexes, "parameter_count": len(query.parameters)},
        )

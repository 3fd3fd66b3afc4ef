"""Conversion of raw report rows into typed results.

PostgreSQL returns SUM/AVG over numeric columns as arbitrary-precision values
(strings or ``Decimal`` depending on the driver). Each report shape declares
which columns are numeric; those are converted explicitly and anything that
does not parse is treated as a template bug, never coerced.
"""

from collections.abc import Iterable, Mapping
from decimal import Decimal, InvalidOperation
from typing import Any

from app.core.exceptions import MalformedResultError
from app.features.reports.schemas import ReportShape

TypedResult = dict[str, Any]

NUMERIC_FIELDS: dict[ReportShape, frozenset[str]] = {
    ReportShape.KPI: frozenset({"totalRevenue", "avgTicket", "totalSales", "cancelRate"}),
    ReportShape.REVENUE_OVER_TIME: frozenset({"revenue", "totalSales"}),
    ReportShape.TOP_PRODUCTS: frozenset({"productId", "totalQuantity", "totalRevenue"}),
}


def to_number(value: Any, field: str) -> int | float | None:
    """Convert a raw numeric column value.

    Integral text (no fractional digits) becomes ``int``; anything with a
    fractional part or exponent becomes ``float``.

    Raises:
        MalformedResultError: If the value is not a finite number.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        raise MalformedResultError(details={"field": field, "value": str(value)})
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        number = Decimal(repr(value))
    elif isinstance(value, Decimal):
        number = value
    elif isinstance(value, str):
        try:
            number = Decimal(value.strip())
        except InvalidOperation:
            raise MalformedResultError(
                details={"field": field, "value": value},
            ) from None
    else:
        raise MalformedResultError(details={"field": field, "value": repr(value)})

    if not number.is_finite():
        raise MalformedResultError(details={"field": field, "value": str(value)})
    exponent = number.as_tuple().exponent
    if isinstance(exponent, int) and exponent >= 0:
        return int(number)
    return float(number)


def normalize_row(shape: ReportShape, row: Mapping[str, Any]) -> TypedResult:
    """Convert the numeric fields of one row; other fields pass through."""
    numeric = NUMERIC_FIELDS[shape]
    return {
        key: to_number(value, key) if key in numeric else value
        for key, value in row.items()
    }


def normalize_rows(shape: ReportShape, rows: Iterable[Mapping[str, Any]]) -> list[TypedResult]:
    """Convert every row returned for a report."""
    return [normalize_row(shape, row) for row in rows]

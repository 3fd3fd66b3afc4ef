"""Report filter normalization.

Turns loosely-typed caller filters into a canonical, immutable
``FilterDescriptor``. All validation happens here so that nothing malformed
ever reaches the query builder or the store.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Any

from app.core.exceptions import InvalidFilterError
from app.features.reports.schemas import ReportFilterParams

DAY_START = time(0, 0, 0)
DAY_END = time(23, 59, 59)

MIN_DAY_OF_WEEK = 0  # Sunday
MAX_DAY_OF_WEEK = 6  # Saturday

_INTEGER_RE = re.compile(r"-?[0-9]+")


@dataclass(frozen=True)
class FilterDescriptor:
    """Canonical report filters.

    ``None``/empty means "no restriction" for that field.

    Attributes:
        start: Lower bound, floored to the start of its day.
        end: Upper bound, widened to the last second of its day.
        channel_ids: Deduplicated sales channel IDs.
        store_ids: Deduplicated store IDs.
        days_of_week: Deduplicated days of week (0 = Sunday).
    """

    start: datetime | None = None
    end: datetime | None = None
    channel_ids: tuple[int, ...] = ()
    store_ids: tuple[int, ...] = ()
    days_of_week: tuple[int, ...] = ()

    def __post_init__(self) -> None:
        if self.start is not None and self.end is not None and self.start > self.end:
            raise InvalidFilterError(
                "startDate must be on or before endDate",
                details={
                    "field": "startDate",
                    "start": self.start.date().isoformat(),
                    "end": self.end.date().isoformat(),
                },
            )
        for field_name, values in (("channelIds", self.channel_ids), ("storeIds", self.store_ids)):
            for value in values:
                _require_int(value, field_name)
                if value < 1:
                    raise InvalidFilterError(
                        f"{field_name} must contain positive integers",
                        details={"field": field_name, "value": value},
                    )
        for value in self.days_of_week:
            _require_int(value, "dayOfWeek")
            if not MIN_DAY_OF_WEEK <= value <= MAX_DAY_OF_WEEK:
                raise InvalidFilterError(
                    "dayOfWeek values must be between 0 (Sunday) and 6 (Saturday)",
                    details={"field": "dayOfWeek", "value": value},
                )

    @property
    def is_empty(self) -> bool:
        """True when no filter restricts the report."""
        return (
            self.start is None
            and self.end is None
            and not self.channel_ids
            and not self.store_ids
            and not self.days_of_week
        )


def normalize_filters(raw: Mapping[str, Any] | ReportFilterParams | None) -> FilterDescriptor:
    """Validate caller filters and build a ``FilterDescriptor``.

    Args:
        raw: Filters keyed by ``startDate``, ``endDate``, ``channelIds``,
            ``storeIds`` and ``dayOfWeek``. Unknown keys are ignored.

    Returns:
        Canonical filter descriptor.

    Raises:
        InvalidFilterError: If a date does not parse, start is after end,
            a day of week is outside 0-6, or an ID is not a positive integer.
    """
    if raw is None:
        return FilterDescriptor()
    if isinstance(raw, ReportFilterParams):
        raw = raw.to_raw()

    start_day = _parse_day(raw.get("startDate"), "startDate")
    end_day = _parse_day(raw.get("endDate"), "endDate")

    return FilterDescriptor(
        start=datetime.combine(start_day, DAY_START) if start_day else None,
        end=datetime.combine(end_day, DAY_END) if end_day else None,
        channel_ids=_parse_int_list(raw.get("channelIds"), "channelIds"),
        store_ids=_parse_int_list(raw.get("storeIds"), "storeIds"),
        days_of_week=_parse_int_list(raw.get("dayOfWeek"), "dayOfWeek"),
    )


def _parse_day(value: Any, field_name: str) -> date | None:
    """Parse a calendar day from a date, datetime or ISO string."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            return date.fromisoformat(text)
        except ValueError:
            pass
        try:
            return datetime.fromisoformat(text).date()
        except ValueError:
            pass
    raise InvalidFilterError(
        f"{field_name} must be a date in YYYY-MM-DD format",
        details={"field": field_name, "value": str(value)},
    )


def _parse_int_list(value: Any, field_name: str) -> tuple[int, ...]:
    """Parse a list filter, deduplicating while keeping first-seen order.

    Accepts a sequence of ints or digit strings, or a comma-separated string.
    """
    if value is None:
        return ()
    items: Iterable[Any]
    if isinstance(value, (str, int)):
        items = [value]
    elif isinstance(value, (list, tuple, set, frozenset)):
        items = value
    else:
        raise InvalidFilterError(
            f"{field_name} must be a list of integers or a comma-separated string",
            details={"field": field_name, "value": str(value)},
        )

    parsed: list[int] = []
    for item in items:
        for token in _split(item):
            number = _to_int(token, field_name)
            if number not in parsed:
                parsed.append(number)
    return tuple(parsed)


def _split(item: Any) -> list[Any]:
    if isinstance(item, str):
        return [part.strip() for part in item.split(",") if part.strip()]
    return [item]


def _to_int(token: Any, field_name: str) -> int:
    if isinstance(token, bool):
        raise InvalidFilterError(
            f"{field_name} must contain integers",
            details={"field": field_name, "value": str(token)},
        )
    if isinstance(token, int):
        return token
    if isinstance(token, str) and _INTEGER_RE.fullmatch(token):
        return int(token)
    raise InvalidFilterError(
        f"{field_name} must contain integers",
        details={"field": field_name, "value": str(token)},
    )


def _require_int(value: Any, field_name: str) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidFilterError(
            f"{field_name} must contain integers",
            details={"field": field_name, "value": str(value)},
        )

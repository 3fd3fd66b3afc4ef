"""Sales reports: KPIs, revenue over time and top products.

Filters are normalized into a ``FilterDescriptor``, turned into a
parameterized query by ``build_query`` and executed through a
``ReportDataAccess``.
"""

from app.features.reports.filters import FilterDescriptor, normalize_filters
from app.features.reports.query_builder import ReportQuery, build_query
from app.features.reports.routes import router
from app.features.reports.schemas import ReportShape, TimeGranularity
from app.features.reports.service import ReportsService

__all__ = [
    "FilterDescriptor",
    "ReportQuery",
    "ReportShape",
    "ReportsService",
    "TimeGranularity",
    "build_query",
    "normalize_filters",
    "router",
]

"""Test fixtures for the reports feature."""

from collections.abc import Mapping, Sequence
from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.core.config import get_settings
from app.features.reports.deps import get_data_access
from app.features.reports.service import ReportsService
from app.main import app


class CapturingDataAccess:
    """Records every execute call and replays canned rows."""

    def __init__(
        self,
        rows: list[Mapping[str, Any]] | None = None,
        error: Exception | None = None,
    ) -> None:
        self.rows = rows or []
        self.error = error
        self.calls: list[tuple[str, list[Any]]] = []

    async def execute(self, sql: str, parameters: Sequence[Any]) -> list[Mapping[str, Any]]:
        self.calls.append((sql, list(parameters)))
        if self.error is not None:
            raise self.error
        return [dict(row) for row in self.rows]

    @property
    def last_sql(self) -> str:
        return self.calls[-1][0]

    @property
    def last_parameters(self) -> list[Any]:
        return self.calls[-1][1]


@pytest.fixture
def kpi_raw_rows() -> list[dict[str, Any]]:
    """KPI row as the store returns it (numerics as strings)."""
    return [
        {
            "totalRevenue": "125000",
            "avgTicket": "85.50",
            "totalSales": "1472",
            "cancelRate": "0.025",
        }
    ]


@pytest.fixture
def revenue_raw_rows() -> list[dict[str, Any]]:
    return [
        {"date": "2024-01-01", "revenue": "1520.40", "totalSales": "18"},
        {"date": "2024-01-02", "revenue": "980", "totalSales": "11"},
    ]


@pytest.fixture
def top_products_raw_rows() -> list[dict[str, Any]]:
    return [
        {
            "productId": 7,
            "productName": "X-Burger",
            "totalQuantity": "340",
            "totalRevenue": "8160.00",
        },
        {
            "productId": 3,
            "productName": "Fries",
            "totalQuantity": "295",
            "totalRevenue": "2655.50",
        },
    ]


@pytest.fixture
def kpi_data_access(kpi_raw_rows) -> CapturingDataAccess:
    return CapturingDataAccess(rows=kpi_raw_rows)


@pytest.fixture
def reports_service(kpi_data_access) -> ReportsService:
    return ReportsService(kpi_data_access)


@pytest.fixture
def override_data_access():
    """Install a data access into the app; yields a setter for the rows."""

    def install(data_access: CapturingDataAccess) -> CapturingDataAccess:
        app.dependency_overrides[get_data_access] = lambda: data_access
        return data_access

    yield install
    app.dependency_overrides.pop(get_data_access, None)


@pytest.fixture
async def client():
    """Create async HTTP client for the reports endpoints."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest.fixture
def make_data_access():
    """Factory for capturing data access fakes."""
    return CapturingDataAccess


@pytest.fixture
async def db_session():
    """Create async database session for integration tests.

    Requires PostgreSQL reachable at DATABASE_URL.
    """
    settings = get_settings()
    engine = create_async_engine(settings.database_url, echo=False)
    async_session_maker = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session_maker() as session:
        try:
            yield session
        finally:
            await session.rollback()

    await engine.dispose()

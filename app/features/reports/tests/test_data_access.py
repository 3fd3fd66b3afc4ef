"""Tests for the session-backed report data access."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import asyncpg
import pytest
from sqlalchemy.exc import OperationalError

from app.core.exceptions import ExecutionError
from app.features.reports.data_access import ReportDataAccess, SessionDataAccess
from app.features.reports.filters import normalize_filters
from app.features.reports.normalizer import normalize_rows
from app.features.reports.query_builder import build_query
from app.features.reports.schemas import ReportShape, TimeGranularity

WEEKEND_FILTERS = {
    "channelIds": [1, 3],
    "storeIds": [5],
    "dayOfWeek": [0, 6],
    "startDate": "2024-01-01",
    "endDate": "2024-01-31",
}

SALES_FIXTURE_SQL = [
    """
    CREATE TEMP TABLE sales (
        id integer PRIMARY KEY,
        store_id integer NOT NULL,
        channel_id integer NOT NULL,
        created_at timestamp NOT NULL,
        sale_status_desc text NOT NULL,
        total_amount numeric(10, 2) NOT NULL
    )
    """,
    "CREATE TEMP TABLE products (id integer PRIMARY KEY, name text NOT NULL)",
    """
    CREATE TEMP TABLE product_sales (
        id serial PRIMARY KEY,
        sale_id integer NOT NULL,
        product_id integer NOT NULL,
        quantity numeric(10, 2) NOT NULL,
        total_price numeric(10, 2) NOT NULL
    )
    """,
    """
    INSERT INTO sales VALUES
        (1, 5, 1, '2024-01-06 12:00:00', 'COMPLETED', 100.00),
        (2, 5, 3, '2024-01-07 18:30:00', 'CANCELLED', 40.00),
        (3, 5, 1, '2024-01-08 10:00:00', 'COMPLETED', 70.00),
        (4, 6, 1, '2024-01-06 09:00:00', 'COMPLETED', 500.00),
        (5, 5, 2, '2024-01-13 11:00:00', 'COMPLETED', 300.00),
        (6, 5, 3, '2024-01-27 23:59:00', 'COMPLETED', 60.00),
        (7, 5, 1, '2024-02-03 10:00:00', 'COMPLETED', 999.00)
    """,
    "INSERT INTO products VALUES (10, 'X-Burger'), (11, 'Fries')",
    """
    INSERT INTO product_sales (sale_id, product_id, quantity, total_price) VALUES
        (1, 10, 2, 100.00),
        (2, 11, 5, 40.00),
        (6, 11, 1, 60.00)
    """,
]


def make_session(fetch: AsyncMock) -> tuple[AsyncMock, MagicMock]:
    """Build a session whose raw driver connection uses ``fetch``."""
    driver_connection = MagicMock()
    driver_connection.fetch = fetch
    raw_connection = MagicMock(driver_connection=driver_connection)
    connection = MagicMock()
    connection.get_raw_connection = AsyncMock(return_value=raw_connection)
    session = AsyncMock()
    session.connection = AsyncMock(return_value=connection)
    return session, driver_connection


class TestSessionDataAccess:
    """Unit tests for SessionDataAccess."""

    def test_satisfies_protocol(self):
        assert isinstance(SessionDataAccess(AsyncMock()), ReportDataAccess)

    @pytest.mark.asyncio
    async def test_passes_parameters_positionally(self):
        fetch = AsyncMock(return_value=[{"totalSales": "3"}])
        session, driver_connection = make_session(fetch)
        data_access = SessionDataAccess(session, timeout=5.0)

        rows = await data_access.execute("SELECT $1, $2", ["a", [1, 2]])

        assert rows == [{"totalSales": "3"}]
        driver_connection.fetch.assert_awaited_once_with("SELECT $1, $2", "a", [1, 2], timeout=5.0)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [
            asyncpg.PostgresError("syntax error"),
            OperationalError("SELECT 1", {}, Exception("refused")),
            ConnectionRefusedError("refused"),
        ],
    )
    async def test_store_failures_wrapped(self, error):
        session, _ = make_session(AsyncMock(side_effect=error))

        with pytest.raises(ExecutionError) as exc_info:
            await SessionDataAccess(session).execute("SELECT 1", [])

        assert exc_info.value.__cause__ is error
        assert exc_info.value.details["error_type"] == type(error).__name__

    @pytest.mark.asyncio
    async def test_timeout_wrapped(self):
        session, _ = make_session(AsyncMock(side_effect=asyncio.TimeoutError()))

        with pytest.raises(ExecutionError, match="timed out"):
            await SessionDataAccess(session, timeout=0.5).execute("SELECT 1", [])

    @pytest.mark.asyncio
    async def test_fetch_called_once(self):
        fetch = AsyncMock(side_effect=asyncpg.PostgresError("boom"))
        session, _ = make_session(fetch)

        with pytest.raises(ExecutionError):
            await SessionDataAccess(session).execute("SELECT 1", [])

        assert fetch.await_count == 1


@pytest.mark.integration
class TestSessionDataAccessIntegration:
    """Runs report queries against PostgreSQL (requires DATABASE_URL)."""

    @pytest.mark.asyncio
    async def test_array_and_timestamp_parameters_bind(self, db_session):
        data_access = SessionDataAccess(db_session, timeout=10.0)

        rows = await data_access.execute(
            "SELECT $1::text::timestamp AS ts, 3 = ANY($2::int[]) AS hit",
            ["2024-01-31 23:59:59", [1, 3]],
        )

        assert rows[0]["hit"] is True
        assert rows[0]["ts"].day == 31


@pytest.fixture
async def seeded_data_access(db_session):
    """Data access over temporary sales tables (rolled back after the test)."""
    data_access = SessionDataAccess(db_session, timeout=10.0)
    for statement in SALES_FIXTURE_SQL:
        await data_access.execute(statement, [])
    return data_access


@pytest.mark.integration
class TestBuiltQueriesIntegration:
    """Runs build_query output against PostgreSQL (requires DATABASE_URL)."""

    @pytest.mark.asyncio
    async def test_kpis_with_every_filter(self, seeded_data_access):
        query = build_query(ReportShape.KPI, normalize_filters(WEEKEND_FILTERS))

        rows = await seeded_data_access.execute(query.sql, list(query.parameters))
        result = normalize_rows(ReportShape.KPI, rows)[0]

        # Sales 1, 2 and 6 match; 2 is cancelled.
        assert result["totalRevenue"] == 160
        assert result["avgTicket"] == 80
        assert result["totalSales"] == 2
        assert result["cancelRate"] == pytest.approx(1 / 3)

    @pytest.mark.asyncio
    async def test_kpis_without_filters(self, seeded_data_access):
        query = build_query(ReportShape.KPI, normalize_filters({}))

        rows = await seeded_data_access.execute(query.sql, list(query.parameters))

        assert normalize_rows(ReportShape.KPI, rows)[0]["totalSales"] == 6

    @pytest.mark.asyncio
    async def test_revenue_over_time_by_week(self, seeded_data_access):
        query = build_query(
            ReportShape.REVENUE_OVER_TIME,
            normalize_filters(WEEKEND_FILTERS),
            granularity=TimeGranularity.WEEK,
        )

        rows = await seeded_data_access.execute(query.sql, list(query.parameters))
        points = normalize_rows(ReportShape.REVENUE_OVER_TIME, rows)

        assert [point["date"] for point in points] == ["2024-01-01", "2024-01-22"]
        assert [point["revenue"] for point in points] == [100, 60]

    @pytest.mark.asyncio
    async def test_top_products_with_every_filter(self, seeded_data_access):
        query = build_query(
            ReportShape.TOP_PRODUCTS, normalize_filters(WEEKEND_FILTERS), limit=5
        )

        rows = await seeded_data_access.execute(query.sql, list(query.parameters))
        products = normalize_rows(ReportShape.TOP_PRODUCTS, rows)

        assert [(p["productId"], p["totalQuantity"]) for p in products] == [(10, 2), (11, 1)]

"""Shared pytest fixtures for API-level tests."""

from unittest.mock import AsyncMock

import pytest
from httpx import ASGITransport, AsyncClient

from app.features.reports.deps import get_data_access
from app.main import app


@pytest.fixture
async def client():
    """Create async HTTP client for testing FastAPI endpoints."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest.fixture
def store():
    """Replace the report store with a mock returning one KPI row."""
    data_access = AsyncMock()
    data_access.execute.return_value = [
        {
            "totalRevenue": "125000",
            "avgTicket": "85.50",
            "totalSales": "1472",
            "cancelRate": "0.025",
        }
    ]
    app.dependency_overrides[get_data_access] = lambda: data_access
    yield data_access
    app.dependency_overrides.clear()

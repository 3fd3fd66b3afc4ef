"""Test fixtures for core infrastructure."""

from unittest.mock import AsyncMock

import pytest
from httpx import ASGITransport, AsyncClient

from app.features.reports.deps import get_data_access
from app.main import app


@pytest.fixture
def mock_data_access():
    """Data access whose execute succeeds with no rows."""
    data_access = AsyncMock()
    data_access.execute.return_value = []
    app.dependency_overrides[get_data_access] = lambda: data_access
    yield data_access
    app.dependency_overrides.pop(get_data_access, None)


@pytest.fixture
async def client():
    """Create async HTTP client for testing FastAPI endpoints."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

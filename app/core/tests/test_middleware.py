"""Tests for request middleware."""

import pytest


@pytest.mark.asyncio
async def test_request_id_middleware_generates_id(client):
    """Middleware should generate request ID if not provided."""
    response = await client.get("/health")

    request_id = response.headers.get("X-Request-ID")
    assert request_id is not None
    assert len(request_id) == 36  # UUID format


@pytest.mark.asyncio
async def test_request_id_middleware_preserves_provided_id(client):
    """Middleware should preserve client-provided request ID."""
    response = await client.get("/health", headers={"X-Request-ID": "my-custom-request-id"})

    assert response.headers["X-Request-ID"] == "my-custom-request-id"


@pytest.mark.asyncio
async def test_request_id_middleware_different_ids_per_request(client):
    """Each request should get a unique ID if not provided."""
    response1 = await client.get("/health")
    response2 = await client.get("/health")

    assert response1.headers["X-Request-ID"] != response2.headers["X-Request-ID"]


@pytest.mark.asyncio
async def test_problem_response_carries_request_id(client, mock_data_access):
    """Error bodies should echo the request ID for correlation."""
    response = await client.get(
        "/reports/kpis",
        params={"dayOfWeek": "9"},
        headers={"X-Request-ID": "req-42"},
    )

    body = response.json()
    assert body["request_id"] == "req-42"
    assert body["instance"] == "/requests/req-42"

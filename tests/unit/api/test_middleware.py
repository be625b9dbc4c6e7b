"""Tests for API middleware: correlation ID, response headers, error mapping."""

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_correlation_id_generated(client: AsyncClient):
    """When X-Correlation-ID is not sent, response has a generated correlation ID."""
    r = await client.get("/health")
    assert r.status_code == 200
    assert "X-Correlation-ID" in r.headers
    assert len(r.headers["X-Correlation-ID"]) > 0


@pytest.mark.asyncio
async def test_correlation_id_preserved_when_passed(client: AsyncClient):
    """When X-Correlation-ID is sent, the same value is returned in response."""
    correlation_id = "my-correlation-123"
    r = await client.get("/health", headers={"X-Correlation-ID": correlation_id})
    assert r.status_code == 200
    assert r.headers.get("X-Correlation-ID") == correlation_id
    assert r.json().get("correlation_id") == correlation_id


@pytest.mark.asyncio
async def test_error_responses_carry_correlation_id(client: AsyncClient):
    """Mapped errors still pass through the middleware."""
    r = await client.get("/api/permissions", headers={"X-Correlation-ID": "err-1"})
    assert r.status_code == 401
    assert r.json() == {"detail": "Not authenticated"}
    assert r.headers.get("X-Correlation-ID") == "err-1"


@pytest.mark.asyncio
async def test_invalid_token_is_unauthenticated(client: AsyncClient):
    r = await client.get("/api/permissions", headers={"Authorization": "Bearer not-a-jwt"})
    assert r.status_code == 401

"""Health endpoint tests."""

import pytest


@pytest.mark.asyncio
async def test_health_returns_ok(client):
    """Health endpoint should return server status and version."""
    resp = await client.get("/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["server"] == "ok"
    assert "version" in data
    # No Redis in tests — rate limiting is off, so health is degraded
    assert data["redis"].startswith("error")

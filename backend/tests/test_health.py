"""
Tests for health check endpoints.
"""
import pytest
from fastapi.testclient import TestClient

from app.core.logging import mask_sensitive


def test_root_endpoint(client: TestClient):
    """Test the root endpoint returns API info."""
    response = client.get("/")

    assert response.status_code == 200
    data = response.json()
    assert data["name"] == "Sheetstore Orders API"
    assert "version" in data
    assert data["status"] == "running"


def test_health_check(client: TestClient):
    """Test the basic health check endpoint."""
    response = client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert "timestamp" in data


def test_liveness_probe(client: TestClient):
    """Test the liveness probe endpoint."""
    response = client.get("/health/live")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "alive"


def test_request_id_is_echoed(client: TestClient):
    response = client.get("/health", headers={"X-Request-ID": "req-123"})

    assert response.headers["x-request-id"] == "req-123"


def test_request_id_is_generated(client: TestClient):
    response = client.get("/health")

    assert len(response.headers["x-request-id"]) == 36


@pytest.mark.asyncio
async def test_readiness_probe(async_client):
    """Test the readiness probe endpoint."""
    response = await async_client.get("/health/ready")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ready"
    assert data["checks"]["database"] == "connected"
    assert data["checks"]["paymaya"] == "not_configured"


def test_log_processor_masks_credentials():
    event = mask_sensitive(None, "info", {
        "event": "PayMaya checkout request",
        "headers": {"Authorization": "Basic abc", "Accept": "application/json"},
        "data": [{"card": {"cardNumber": "4123450131001381", "cvc": "123"}}],
    })

    assert event["headers"] == {"Authorization": "***", "Accept": "application/json"}
    assert event["data"][0]["card"] == {"cardNumber": "***", "cvc": "***"}
    assert event["event"] == "PayMaya checkout request"

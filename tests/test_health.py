"""
tests/test_health.py -- Integration tests for GET /api/v1/health and app-level errors.

Covers:
  - 200 response with status, version, and components fields
  - components.database reports 'ok' against the test store
  - No authentication required
  - Unknown endpoints and validation failures use the error envelope
"""

from __future__ import annotations

from fastapi.testclient import TestClient


def test_health_returns_200_with_components(client: TestClient) -> None:
    """Health endpoint returns 200 with status, version, and components."""
    resp = client.get("/api/v1/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "healthy"
    assert "version" in data
    assert data["components"]["app"] == "ok"
    assert data["components"]["database"] == "ok"


def test_health_no_auth_required(client: TestClient) -> None:
    """Health endpoint is accessible without any authentication headers."""
    resp = client.get("/api/v1/health", headers={})
    assert resp.status_code == 200


def test_unknown_endpoint_uses_error_envelope(client: TestClient) -> None:
    resp = client.get("/api/v1/does-not-exist")
    assert resp.status_code == 404
    data = resp.json()
    assert data["success"] is False
    assert data["error"]["code"] == "unknown_endpoint"


def test_validation_failure_is_400_without_echoing_input(client: TestClient) -> None:
    """Request validation errors answer 400 and never echo the rejected value."""
    long_password = "p" * 100
    resp = client.post(
        "/api/v1/auth/register",
        json={"name": "Ada", "email": "ada@example.com", "password": long_password},
    )
    assert resp.status_code == 400
    data = resp.json()
    assert data["success"] is False
    assert data["error"]["code"] == "validation_error"
    assert "password" in data["error"]["detail"]
    assert long_password not in resp.text


def test_untrusted_host_rejected(client: TestClient) -> None:
    resp = client.get("/api/v1/health", headers={"Host": "evil.example.com"})
    assert resp.status_code == 400

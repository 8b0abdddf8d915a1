"""
Basic application tests.

Validates that the FastAPI app starts correctly, the health endpoint
responds and every response carries the security headers.
"""

from fastapi.testclient import TestClient

from tradedesk.main import app
from tradedesk.shared.security.headers import SECURE_HEADERS

client = TestClient(app)


class TestHealthEndpoint:
    """Tests for the health check endpoint."""

    def test_health_returns_200(self) -> None:
        """Health endpoint must return HTTP 200 with status ok."""
        response = client.get("/api/v1/health")
        assert response.status_code == 200

    def test_health_response_body(self) -> None:
        response = client.get("/api/v1/health")
        body = response.json()
        assert body["status"] == "ok"
        assert "version" in body
        assert body["exchanges"] == ["binance", "binance_us"]


class TestSecurityHeaders:
    def test_security_headers_present(self) -> None:
        """All security headers must be present on every response."""
        response = client.get("/api/v1/health")
        for name, value in SECURE_HEADERS.items():
            assert response.headers[name] == value

    def test_headers_on_error_responses(self) -> None:
        response = client.get("/api/v1/credentials")
        assert response.status_code == 401
        assert response.headers["Cache-Control"] == "no-store"

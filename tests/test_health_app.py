"""Tests for the FastAPI health and stats endpoints."""

from unittest.mock import AsyncMock, MagicMock

from fastapi.testclient import TestClient

from cryptodp.health.app import create_health_app


def _client(status: str) -> TestClient:
    platform = MagicMock()
    platform.health_check = AsyncMock(
        return_value={"status": status, "timestamp": "t", "issues": [], "stats": {}}
    )
    platform.get_stats.return_value = {"running": True, "agents": []}
    app = create_health_app()
    app.state.platform = platform
    return TestClient(app)


class TestHealthEndpoint:
    def test_healthy_returns_200(self) -> None:
        response = _client("healthy").get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_unhealthy_returns_503(self) -> None:
        response = _client("unhealthy").get("/health")

        assert response.status_code == 503
        assert response.json()["status"] == "unhealthy"


class TestStatsEndpoint:
    def test_returns_platform_stats(self) -> None:
        response = _client("healthy").get("/stats")

        assert response.status_code == 200
        assert response.json() == {"running": True, "agents": []}

"""Tests for the health and root endpoints."""

from unittest.mock import AsyncMock, patch

from src.core.container import get_container
from src.core.services import Services
from src.services.scheduler import CronJobManager
from src.version import __version__


class TestHealthEndpoint:
    def test_healthy(self, client):
        with patch("src.api.health.health_check", new_callable=AsyncMock, return_value=True):
            response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["service"] == "review-scheduler"
        assert body["version"] == __version__
        assert body["database"] == "connected"
        assert body["uptime_seconds"] >= 0

    def test_degraded_when_database_down(self, client):
        with patch("src.api.health.health_check", new_callable=AsyncMock, return_value=False):
            response = client.get("/health")

        assert response.json()["status"] == "degraded"
        assert response.json()["database"] == "disconnected"

    def test_database_error_is_degraded(self, client):
        with patch(
            "src.api.health.health_check",
            new_callable=AsyncMock,
            side_effect=OSError("disk gone"),
        ):
            response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "degraded"

    def test_cron_status(self, client):
        get_container().register_instance(Services.CRON_MANAGER, CronJobManager())
        with patch("src.api.health.health_check", new_callable=AsyncMock, return_value=True):
            response = client.get("/health")

        assert response.json()["cron"] == {
            "registered": True,
            "running": False,
            "jobs": 0,
            "failing_jobs": [],
        }

    def test_cron_not_registered(self, client):
        with patch("src.api.health.health_check", new_callable=AsyncMock, return_value=True):
            response = client.get("/health")

        assert response.json()["cron"]["registered"] is False


def test_root(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.json()["version"] == __version__


def test_request_id_echoed(client):
    response = client.get("/", headers={"X-Request-ID": "abc123"})
    assert response.headers["X-Request-ID"] == "abc123"

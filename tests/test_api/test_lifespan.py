"""Startup and shutdown behaviour of the application lifespan."""

from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from src.core import database
from src.core.config import Settings
from src.core.container import reset_container
from src.services.scheduler import reset_cron_manager


@pytest.fixture(autouse=True)
def _fresh_globals():
    reset_container()
    reset_cron_manager()
    yield
    reset_container()
    reset_cron_manager()


def _app():
    from src.main import create_app

    return create_app()


def _init_with(url):
    real_init = database.init_database

    async def _init(database_url=None):
        await real_init(url)

    return _init


def test_cron_jobs_started_when_enabled(tmp_path):
    settings = Settings(
        enable_cron=True,
        cron_secret_token="lifespan-secret",
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'app.db'}",
    )
    with (
        patch("src.lifecycle.get_settings", return_value=settings),
        patch("src.lifecycle.init_database", _init_with(settings.database_url)),
    ):
        with TestClient(_app()) as client:
            response = client.get("/admin/cron?secret=test-cron-secret")
            health = client.get("/health").json()

    assert response.status_code == 200
    body = response.json()
    assert body["running"] is True
    assert set(body["jobs"]) == {
        "check-due-cards",
        "process-notifications",
        "prune-grade-requests",
    }
    assert health["database"] == "connected"
    assert health["cron"]["running"] is True


def test_cron_not_started_in_development(tmp_path):
    settings = Settings(
        environment="development",
        enable_cron=False,
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'app.db'}",
    )
    with (
        patch("src.lifecycle.get_settings", return_value=settings),
        patch("src.lifecycle.init_database", _init_with(settings.database_url)),
    ):
        with TestClient(_app()) as client:
            health = client.get("/health").json()

    assert health["cron"]["running"] is False
    assert health["cron"]["jobs"] == 0


async def test_invalid_config_aborts_startup():
    from fastapi import FastAPI

    from src.lifecycle import lifespan

    settings = Settings(database_url="not-a-url")
    with patch("src.lifecycle.get_settings", return_value=settings):
        with pytest.raises(SystemExit):
            async with lifespan(FastAPI()):
                pass

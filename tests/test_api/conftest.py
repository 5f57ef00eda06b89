from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from src.core.config import Settings
from src.core.container import get_container, reset_container
from src.core.services import Services

CRON_SECRET = "test-cron-secret"


@pytest.fixture
def api_settings():
    return Settings(environment="production", cron_secret_token=CRON_SECRET)


@pytest.fixture
def services(api_settings):
    """Fake services registered in a fresh container."""
    reset_container()
    container = get_container()
    container.register_instance(Services.SETTINGS, api_settings)

    fakes = {
        Services.REVIEW_ENGINE: MagicMock(),
        Services.DUE_ITEM_TASK: MagicMock(),
        Services.NOTIFICATION_PREFERENCES: MagicMock(),
    }
    fakes[Services.DUE_ITEM_TASK].run = AsyncMock()
    for name, fake in fakes.items():
        container.register_instance(name, fake)
    yield fakes
    reset_container()


@pytest.fixture
def client(services):
    # Built without the lifespan context: no database or cron startup
    from src.main import create_app

    return TestClient(create_app(), raise_server_exceptions=False)

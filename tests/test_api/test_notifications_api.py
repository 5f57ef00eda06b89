"""Tests for the /notifications endpoints."""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest

from src.core.config import Settings
from src.core.container import get_container
from src.core.services import Services
from src.domain.errors import ValidationError
from src.domain.notifications import NotificationPreferences
from src.services.notifications import DueCheckSummary, SnoozeResult

CRON_SECRET = "test-cron-secret"

SNOOZED_UNTIL = datetime(2025, 3, 1, 13, 0, tzinfo=timezone.utc)


@pytest.fixture
def due_task(services):
    task = services[Services.DUE_ITEM_TASK]
    task.run = AsyncMock(
        return_value=DueCheckSummary(
            users_checked=2, notifications_sent=1, notifications_skipped=1, errors=0
        )
    )
    return task


@pytest.fixture
def preferences(services):
    return services[Services.NOTIFICATION_PREFERENCES]


class TestCheckDueCards:
    def test_requires_bearer_in_production(self, client, due_task):
        response = client.get("/notifications/cron/check-due-cards")
        assert response.status_code == 401
        due_task.run.assert_not_awaited()

    def test_wrong_bearer_rejected(self, client, due_task):
        response = client.get(
            "/notifications/cron/check-due-cards",
            headers={"Authorization": "Bearer wrong"},
        )
        assert response.status_code == 401

    def test_runs_task_with_bearer(self, client, due_task):
        response = client.get(
            "/notifications/cron/check-due-cards",
            headers={"Authorization": f"Bearer {CRON_SECRET}"},
        )

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "users_checked": 2,
            "notifications_sent": 1,
            "notifications_skipped": 1,
            "errors": 0,
        }
        due_task.run.assert_awaited_once()

    def test_development_bypass(self, client, due_task):
        get_container().register_instance(
            Services.SETTINGS, Settings(environment="development", cron_secret_token="")
        )

        response = client.get("/notifications/cron/check-due-cards")

        assert response.status_code == 200

    def test_debug_cron(self, client, due_task):
        due_task.cooldown = timedelta(hours=6)
        due_task.min_items = 1

        response = client.get(
            "/notifications/debug-cron",
            headers={"Authorization": f"Bearer {CRON_SECRET}"},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["cooldown_hours"] == 6
        assert body["summary"]["notifications_sent"] == 1


class TestSnooze:
    def test_snooze(self, client, preferences):
        preferences.snooze = AsyncMock(
            return_value=SnoozeResult(
                snoozed_until=SNOOZED_UNTIL, duration_seconds=3600, skipped_notifications=1
            )
        )

        response = client.post(
            "/notifications/snooze", json={"duration": 3600}, headers={"X-User-Id": "u1"}
        )

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "snoozed_until": SNOOZED_UNTIL.isoformat(),
            "duration": 3600,
            "skipped_notifications": 1,
        }
        preferences.snooze.assert_awaited_once_with("u1", 3600)

    def test_invalid_duration_is_400(self, client, preferences):
        preferences.snooze = AsyncMock(side_effect=ValidationError("out of range"))

        response = client.post(
            "/notifications/snooze", json={"duration": 10}, headers={"X-User-Id": "u1"}
        )
        assert response.status_code == 400

    def test_requires_session(self, client, preferences):
        response = client.post("/notifications/snooze", json={"duration": 3600})
        assert response.status_code == 401

    def test_get_preferences(self, client, preferences):
        preferences.get_preferences = AsyncMock(
            return_value=NotificationPreferences(user_id="u1", snoozed_until=SNOOZED_UNTIL)
        )

        response = client.get("/notifications/preferences", headers={"X-User-Id": "u1"})

        assert response.status_code == 200
        body = response.json()
        assert body["snoozed_until"] == SNOOZED_UNTIL.isoformat()
        assert body["card_due_enabled"] is True
        assert body["timezone"] == "UTC"
        assert body["quiet_hours_enabled"] is False

    def test_update_preferences(self, client, preferences):
        preferences.update_preferences = AsyncMock(
            return_value=NotificationPreferences(
                user_id="u1",
                timezone="Europe/Berlin",
                quiet_hours_enabled=True,
                quiet_hours_start="23:00",
            )
        )

        response = client.put(
            "/notifications/preferences",
            json={
                "timezone": "Europe/Berlin",
                "quiet_hours_enabled": True,
                "quiet_hours_start": "23:00",
            },
            headers={"X-User-Id": "u1"},
        )

        assert response.status_code == 200
        assert response.json()["timezone"] == "Europe/Berlin"
        # Only the fields sent in the body are forwarded
        preferences.update_preferences.assert_awaited_once_with(
            "u1",
            {
                "timezone": "Europe/Berlin",
                "quiet_hours_enabled": True,
                "quiet_hours_start": "23:00",
            },
        )

    def test_update_preferences_invalid_is_400(self, client, preferences):
        preferences.update_preferences = AsyncMock(
            side_effect=ValidationError("Unknown timezone 'Mars/Base'")
        )

        response = client.put(
            "/notifications/preferences",
            json={"timezone": "Mars/Base"},
            headers={"X-User-Id": "u1"},
        )

        assert response.status_code == 400

    def test_update_preferences_unknown_field_rejected(self, client, preferences):
        preferences.update_preferences = AsyncMock()

        response = client.put(
            "/notifications/preferences",
            json={"daily_reminder": True},
            headers={"X-User-Id": "u1"},
        )

        assert response.status_code == 422
        preferences.update_preferences.assert_not_awaited()


class TestClearCooldown:
    def test_with_cron_secret_header(self, client, preferences):
        preferences.clear_cooldown = AsyncMock(return_value=3)

        response = client.post(
            "/notifications/clear-cooldown", headers={"x-cron-secret": CRON_SECRET}
        )

        assert response.status_code == 200
        assert response.json() == {"success": True, "deleted": 3}

    def test_with_session(self, client, preferences):
        preferences.clear_cooldown = AsyncMock(return_value=0)

        response = client.post("/notifications/clear-cooldown", headers={"X-User-Id": "u1"})

        assert response.status_code == 200

    def test_without_credentials(self, client, preferences):
        preferences.clear_cooldown = AsyncMock(return_value=0)

        response = client.post(
            "/notifications/clear-cooldown", headers={"x-cron-secret": "wrong"}
        )

        assert response.status_code == 401
        preferences.clear_cooldown.assert_not_awaited()

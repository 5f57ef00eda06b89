"""Tests for database initialization and health check."""

import pytest
from sqlalchemy import inspect

from src.core import database


class TestDatabase:
    async def test_health_check_before_init(self):
        await database.close_database()
        assert await database.health_check() is False

    async def test_init_creates_tables(self, tmp_path):
        url = f"sqlite+aiosqlite:///{tmp_path / 'nested' / 'test.db'}"
        await database.init_database(url)
        try:
            assert (tmp_path / "nested" / "test.db").exists()
            assert await database.health_check() is True

            async with database.get_db_session() as session:
                tables = await session.run_sync(
                    lambda s: inspect(s.connection()).get_table_names()
                )
            assert {
                "learning_items",
                "card_reviews",
                "grade_requests",
                "scheduled_notifications",
                "user_notification_preferences",
            } <= set(tables)
        finally:
            await database.close_database()

    async def test_session_factory_requires_init(self):
        await database.close_database()
        with pytest.raises(RuntimeError):
            database.get_session_factory()

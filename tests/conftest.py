import logging
import os
from datetime import datetime, timezone

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Set test environment variables
os.environ["ENVIRONMENT"] = "test"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["LOG_TO_FILE"] = "false"
os.environ["ENABLE_CRON"] = "false"
os.environ["CRON_SECRET_TOKEN"] = "test-cron-secret"

from src.infrastructure.repositories import SqlAlchemyUnitOfWork  # noqa: E402
from src.models import Base, LearningItem  # noqa: E402

# Fixed clock for deterministic scheduling assertions
NOW = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def _strip_file_handlers():
    """Remove file handlers from root logger so tests never write to logs/app.log."""
    root = logging.getLogger()
    saved = [h for h in root.handlers if isinstance(h, logging.FileHandler)]
    for h in saved:
        root.removeHandler(h)
    yield
    for h in list(root.handlers):
        if isinstance(h, logging.FileHandler):
            root.removeHandler(h)
    for h in saved:
        root.addHandler(h)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
async def async_engine():
    """In-memory SQLite shared across connections, with all tables."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(async_engine):
    return async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def uow_factory(session_factory):
    return lambda: SqlAlchemyUnitOfWork(session_factory)


@pytest.fixture
def seed_items(session_factory):
    """Insert learning items: ``await seed_items(("c1", "u1", "flashcard"), ...)``."""

    async def _seed(*rows):
        async with session_factory() as session:
            for row in rows:
                item_id, user_id, kind = row[:3]
                folder_id = row[3] if len(row) > 3 else None
                session.add(
                    LearningItem(
                        id=item_id,
                        user_id=user_id,
                        kind=kind,
                        folder_id=folder_id,
                        title=f"Item {item_id}",
                    )
                )
            await session.commit()

    return _seed


class RecordingDispatcher:
    """NotificationDispatcher double that records every send."""

    def __init__(self, result=True, error=None):
        self.result = result
        self.error = error
        self.sent = []

    async def send(self, user_id, content):
        self.sent.append((user_id, content))
        if self.error is not None:
            raise self.error
        return self.result


@pytest.fixture
def dispatcher():
    return RecordingDispatcher()


@pytest.fixture
def dispatcher_factory():
    return RecordingDispatcher

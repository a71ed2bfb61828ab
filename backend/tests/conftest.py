from __future__ import annotations

import os
import time
from typing import TYPE_CHECKING

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine

from hr_portal.db import get_session
from hr_portal.main import app
from hr_portal.models import SQLModel
from hr_portal.services import notifications
from hr_portal.services.notifications import (
    InMemoryNotificationDispatcher,
    get_notification_dispatcher,
    set_notification_dispatcher,
)

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Iterator

    from sqlalchemy.ext.asyncio import AsyncEngine


@pytest.fixture(scope="session")
async def engine(tmp_path_factory: pytest.TempPathFactory) -> AsyncIterator[AsyncEngine]:
    """Create a session-scoped async engine and ensure tables exist.

    ``TEST_DATABASE_URL`` points the suite at a PostgreSQL database (CI runs
    Alembic migrations first, so create_all is a no-op there). Without it the
    suite runs against a throwaway SQLite file.
    """
    url = os.environ.get("TEST_DATABASE_URL")
    if not url:
        url = f"sqlite+aiosqlite:///{tmp_path_factory.mktemp('db') / 'hr_portal.db'}"
    _engine = create_async_engine(url)
    async with _engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield _engine
    async with _engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.drop_all)
    await _engine.dispose()


@pytest.fixture
async def db_session(engine: AsyncEngine) -> AsyncIterator[AsyncSession]:
    """Yield a database session wrapped in a transaction that rolls back after each test."""
    async with engine.connect() as conn:
        txn = await conn.begin()
        session = AsyncSession(bind=conn, expire_on_commit=False)
        yield session
        await session.close()
        await txn.rollback()


@pytest.fixture
async def async_client(db_session: AsyncSession) -> AsyncIterator[AsyncClient]:
    """Async HTTP client with the database session dependency overridden."""

    async def _override_get_session() -> AsyncIterator[AsyncSession]:
        yield db_session

    app.dependency_overrides[get_session] = _override_get_session
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
async def outbox() -> AsyncIterator[InMemoryNotificationDispatcher]:
    """Capture notifications; tests call ``notifications.drain()`` before asserting."""
    previous = get_notification_dispatcher()
    dispatcher = InMemoryNotificationDispatcher()
    set_notification_dispatcher(dispatcher)
    yield dispatcher
    await notifications.drain()
    set_notification_dispatcher(previous)


@pytest.fixture
def local_time_ahead_of_utc(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Run the process in UTC+14, where the local date runs ahead of the UTC date."""
    monkeypatch.setenv("TZ", "Etc/GMT-14")
    time.tzset()
    yield
    monkeypatch.undo()
    time.tzset()

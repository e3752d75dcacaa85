"""Pytest configuration and shared fixtures.

This module provides shared test fixtures for all escalation engine tests:
- isolated settings per test (SQLite, temporary log file, sweep disabled)
- db_engine / session: in-memory SQLite database via aiosqlite
- persist: helper that adds factory-built models to the session
- email_sender: AsyncMock standing in for the SMTP transport
- reject_notification_rows: SQLite trigger that makes notification writes fail
"""

from __future__ import annotations

from typing import TYPE_CHECKING
from unittest.mock import AsyncMock

import pytest
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import alert_escalation.models  # noqa: F401
from alert_escalation.core.config import get_settings
from alert_escalation.core.database import Base, enable_sqlite_savepoints
from alert_escalation.core.logging import set_correlation_id

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from sqlalchemy.ext.asyncio import AsyncEngine

    from alert_escalation.core.config import Settings

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch, tmp_path):
    """Point settings at test-only values and clear the settings cache."""
    monkeypatch.setenv("DATABASE_URL", TEST_DATABASE_URL)
    monkeypatch.setenv("LOG_FILE_PATH", str(tmp_path / "logs" / "escalation.log"))
    monkeypatch.setenv("ESCALATION_RUNTIME_ENV_PATH", str(tmp_path / "runtime.env"))
    monkeypatch.setenv("ESCALATION_SWEEP_ENABLED", "false")
    monkeypatch.setenv("PREFERENCES_TIMEZONE", "UTC")
    get_settings.cache_clear()
    set_correlation_id(None)
    yield
    get_settings.cache_clear()


@pytest.fixture
def settings() -> Settings:
    return get_settings()


@pytest.fixture
async def db_engine() -> AsyncGenerator[AsyncEngine]:
    engine = create_async_engine(TEST_DATABASE_URL, poolclass=StaticPool)
    enable_sqlite_savepoints(engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest.fixture
async def session(session_factory) -> AsyncGenerator[AsyncSession]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def persist(session):
    """Add model instances to the session and flush them."""

    async def _persist(*entities):
        session.add_all(entities)
        await session.flush()
        return entities

    return _persist


@pytest.fixture
def email_sender() -> AsyncMock:
    sender = AsyncMock()
    sender.send = AsyncMock(return_value=None)
    return sender


@pytest.fixture
def reject_notification_rows(session):
    """Install a SQLite trigger that makes the store reject matching notification writes."""

    async def _reject(column: str, value: str, operation: str = "INSERT") -> None:
        await session.execute(
            text(
                f"CREATE TRIGGER reject_{operation.lower()}_{column} "
                f"BEFORE {operation} ON alert_notifications "
                f"WHEN NEW.{column} = '{value}' "
                "BEGIN SELECT RAISE(ABORT, 'store rejected row'); END"
            )
        )

    return _reject

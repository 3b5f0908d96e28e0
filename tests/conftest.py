"""Pytest configuration and shared fixtures.

Organization:
    - Environment: keep tests off external infrastructure
    - Database Fixtures: in-memory SQLite engine and session factory
    - Queue Fixtures: recording fake of the job queue
    - Data Fixtures: task factories
"""

from __future__ import annotations

import os
from collections.abc import AsyncGenerator, Awaitable, Callable, Mapping
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any
from unittest.mock import AsyncMock

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

    from taskflow.features.tasks.models import Task

# Ensure tests run without external infrastructure
os.environ.setdefault("APP_ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("RABBIT_ENABLED", "false")
os.environ.setdefault("REDIS_URL", "")
os.environ.setdefault("LOG_FILE_ENABLED", "false")


@pytest.fixture(autouse=True)
def _clear_settings_cache():
    """Reload settings from the environment for every test."""
    from taskflow.core.settings import clear_all_caches

    clear_all_caches()
    yield
    clear_all_caches()


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture
async def db_engine() -> AsyncGenerator[AsyncEngine]:
    """Async engine on a fresh in-memory SQLite database with all tables.

    ``StaticPool`` keeps a single connection so every session sees the same
    in-memory database.
    """
    from taskflow.core.database.base import Base
    from taskflow.features.tasks import models  # noqa: F401

    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture
def session_factory(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory configured like the production one."""
    from taskflow.infra.database import build_session_factory

    return build_session_factory(db_engine)


@pytest.fixture
async def db_session(session_factory: async_sessionmaker[AsyncSession]) -> AsyncGenerator[AsyncSession]:
    async with session_factory() as session:
        yield session


# ============================================================================
# Queue Fixtures
# ============================================================================


class RecordingQueue:
    """In-process ``JobQueue`` that records submissions.

    Attributes:
        submitted: ``(kind, payload)`` pairs in submission order
        fail: When set, ``submit`` raises it instead of recording
    """

    def __init__(self) -> None:
        self.submitted: list[tuple[Any, dict[str, Any]]] = []
        self.fail: Exception | None = None
        self.handler: Callable[[Any], Awaitable[Any]] | None = None
        self._counter = 0

    async def submit(self, kind: Any, payload: Mapping[str, Any]) -> str:
        if self.fail is not None:
            raise self.fail
        self._counter += 1
        self.submitted.append((kind, dict(payload)))
        return f"job-{self._counter}"

    def register_consumer(self, handler: Callable[[Any], Awaitable[Any]]) -> None:
        self.handler = handler

    def kinds(self) -> list[Any]:
        return [kind for kind, _ in self.submitted]


@pytest.fixture
def job_queue() -> RecordingQueue:
    return RecordingQueue()


@pytest.fixture
def mock_queue() -> AsyncMock:
    """AsyncMock standing in for the queue when only call assertions matter."""
    queue = AsyncMock()
    queue.submit.return_value = "job-1"
    return queue


@pytest.fixture
def service(session_factory, job_queue):
    from taskflow.features.tasks.service import TaskLifecycleService

    return TaskLifecycleService(session_factory, job_queue)


# ============================================================================
# Data Fixtures
# ============================================================================


@pytest.fixture
def now() -> datetime:
    return datetime(2026, 10, 19, 12, 0, tzinfo=UTC)


@pytest.fixture
def make_task(service, job_queue):
    """Create a task through the service and forget the job it produced.

    Example:
        task = await make_task(title="Write report", due_date=yesterday)
    """

    async def _make(**fields: Any) -> Task:
        fields.setdefault("title", "Test task")
        task = await service.create(fields)
        job_queue.submitted.clear()
        return task

    return _make


@pytest.fixture
def past() -> datetime:
    """A due date that is overdue whatever the wall clock says."""
    return datetime(2020, 1, 1, tzinfo=UTC)


@pytest.fixture
def future() -> datetime:
    return datetime(2100, 1, 1, tzinfo=UTC)

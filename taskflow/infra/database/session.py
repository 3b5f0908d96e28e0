"""Database engine and session factory (psycopg3 async driver)."""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import TYPE_CHECKING

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from taskflow.core.database import Base
from taskflow.core.settings import get_app_settings, get_db_settings

if TYPE_CHECKING:
    from taskflow.core.settings import PostgresSettings

logger = logging.getLogger(__name__)


def build_engine(db_settings: PostgresSettings | None = None, *, echo: bool | None = None) -> AsyncEngine:
    """Create an async engine from database settings."""
    db_settings = db_settings or get_db_settings()
    kwargs = db_settings.sqlalchemy_engine_kwargs()
    if echo is not None:
        kwargs["echo"] = echo
    return create_async_engine(db_settings.get_sqlalchemy_url(), **kwargs)


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory used by the lifecycle service, scanner and worker.

    ``expire_on_commit=False`` keeps returned entities readable after the
    transaction that produced them has committed.
    """
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@lru_cache(maxsize=1)
def get_engine() -> AsyncEngine:
    """Process-wide engine built from environment settings."""
    return build_engine(echo=get_db_settings().echo or get_app_settings().debug)


@lru_cache(maxsize=1)
def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Process-wide session factory bound to ``get_engine()``."""
    return build_session_factory(get_engine())


async def init_database(engine: AsyncEngine | None = None) -> None:
    """Check connectivity with a ``SELECT 1``."""
    engine = engine or get_engine()
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        logger.error(
            "Failed to connect to database",
            extra={"url": engine.url.render_as_string(hide_password=True), "error": str(e)},
        )
        raise
    logger.info(
        "Database connection established successfully",
        extra={"url": engine.url.render_as_string(hide_password=True)},
    )


async def create_tables(engine: AsyncEngine | None = None) -> None:
    """Create all mapped tables that don't exist yet.

    Intended for local runs and tests; production schemas are managed by
    Alembic migrations.
    """
    # Register models on the metadata before create_all.
    import taskflow.features.tasks.models  # noqa: F401

    engine = engine or get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables ensured", extra={"tables": sorted(Base.metadata.tables)})


async def close_database(engine: AsyncEngine | None = None) -> None:
    """Dispose of the engine's connection pool."""
    logger.info("Closing database connection")
    await (engine or get_engine()).dispose()


__all__ = [
    "build_engine",
    "build_session_factory",
    "close_database",
    "create_tables",
    "get_engine",
    "get_session_factory",
    "init_database",
]

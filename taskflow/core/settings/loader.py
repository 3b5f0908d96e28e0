"""Cached settings loaders.

Each loader validates its settings class from the environment on first
use and returns the same frozen instance afterwards. Tests call
``clear_all_caches()`` after changing the environment, or build a settings
object directly (``TaskSettings(max_retries=0)``) and pass it in.
"""

from __future__ import annotations

from functools import lru_cache

from .app import AppSettings
from .logs import LoggingSettings
from .postgres import PostgresSettings
from .rabbit import RabbitSettings
from .redis import RedisSettings
from .tasks import TaskSettings


@lru_cache(maxsize=1)
def get_app_settings() -> AppSettings:
    return AppSettings()


@lru_cache(maxsize=1)
def get_db_settings() -> PostgresSettings:
    """Task store connection (``DATABASE_URL`` / ``DB_*``)."""
    return PostgresSettings()


@lru_cache(maxsize=1)
def get_rabbit_settings() -> RabbitSettings:
    """Job broker connection (``AMQP_URI`` / ``RABBIT_*``)."""
    return RabbitSettings()


@lru_cache(maxsize=1)
def get_redis_settings() -> RedisSettings:
    return RedisSettings()


@lru_cache(maxsize=1)
def get_task_settings() -> TaskSettings:
    """Queue, worker, scanner and dead-letter tuning (``TASK_*``)."""
    return TaskSettings()


@lru_cache(maxsize=1)
def get_logging_settings() -> LoggingSettings:
    return LoggingSettings()


_LOADERS = (
    get_app_settings,
    get_db_settings,
    get_rabbit_settings,
    get_redis_settings,
    get_task_settings,
    get_logging_settings,
)


def clear_all_caches() -> None:
    """Forget every cached settings instance."""
    for loader in _LOADERS:
        loader.cache_clear()

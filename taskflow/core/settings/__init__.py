"""Modular Pydantic Settings v2 configuration.

One frozen settings class per domain, each read from its own environment
prefix and exposed through an LRU-cached loader:

    from taskflow.core.settings import get_task_settings

    settings = get_task_settings()
    print(settings.queue_name)
"""

from __future__ import annotations

from .app import AppSettings
from .loader import (
    clear_all_caches,
    get_app_settings,
    get_db_settings,
    get_logging_settings,
    get_rabbit_settings,
    get_redis_settings,
    get_task_settings,
)
from .logs import LoggingSettings
from .postgres import PostgresSettings
from .rabbit import RabbitSettings
from .redis import RedisSettings
from .tasks import TaskSettings

__all__ = [
    "AppSettings",
    "LoggingSettings",
    "PostgresSettings",
    "RabbitSettings",
    "RedisSettings",
    "TaskSettings",
    "clear_all_caches",
    "get_app_settings",
    "get_db_settings",
    "get_logging_settings",
    "get_rabbit_settings",
    "get_redis_settings",
    "get_task_settings",
]

"""Database engine/session plumbing."""

from taskflow.infra.database.session import (
    build_engine,
    build_session_factory,
    close_database,
    create_tables,
    get_engine,
    get_session_factory,
    init_database,
)

__all__ = [
    "build_engine",
    "build_session_factory",
    "close_database",
    "create_tables",
    "get_engine",
    "get_session_factory",
    "init_database",
]

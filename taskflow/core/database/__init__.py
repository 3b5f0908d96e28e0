"""Database building blocks: declarative base, mixins, filters, repository."""

from taskflow.core.database.base import NAMING_CONVENTION, Base, TimestampMixin, UUIDPKMixin, utcnow
from taskflow.core.database.exceptions import NotFoundError, RepositoryError
from taskflow.core.database.filters import (
    BeforeAfter,
    EqualsFilter,
    LimitOffset,
    OrderBy,
    SearchFilter,
    StatementFilter,
)
from taskflow.core.database.repository import BaseRepository, SearchResult

__all__ = [
    "NAMING_CONVENTION",
    "Base",
    "BaseRepository",
    "BeforeAfter",
    "EqualsFilter",
    "LimitOffset",
    "NotFoundError",
    "OrderBy",
    "RepositoryError",
    "SearchFilter",
    "SearchResult",
    "StatementFilter",
    "TimestampMixin",
    "UUIDPKMixin",
    "utcnow",
]

"""Generic async repository.

Repositories take the session as an argument and never commit: the
service opens the transaction and decides when it ends.

    repo = TaskRepository()
    async with session_factory() as session, session.begin():
        task = await repo.get_for_update(session, task_id)
        task.status = TaskStatus.COMPLETED
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from sqlalchemy import Select, delete, func, select

from taskflow.core.database.exceptions import NotFoundError
from taskflow.core.database.filters import LimitOffset
from taskflow.infra.logging import get_lazy_logger

T = TypeVar("T")

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sqlalchemy.ext.asyncio import AsyncSession


@dataclass(slots=True, frozen=True)
class SearchResult(Generic[T]):
    """One page of rows plus the unpaginated ``total``."""

    items: Sequence[T]
    total: int
    limit: int
    offset: int

    @property
    def page(self) -> int:
        """1-based page number."""
        return self.offset // self.limit + 1 if self.limit > 0 else 1

    @property
    def pages(self) -> int:
        if self.limit <= 0:
            return 1
        return -(-self.total // self.limit)

    @property
    def has_next(self) -> bool:
        return self.offset + len(self.items) < self.total


class BaseRepository(Generic[T]):
    """Primary-key access, row locking, paginated search, insert and delete for one model."""

    __slots__ = ("model", "_logger", "_lazy")

    def __init__(self, model: type[T]) -> None:
        self.model = model
        name = f"repository.{model.__name__}"
        self._logger = logging.getLogger(name)
        self._lazy = get_lazy_logger(name)

    @property
    def _pk(self) -> Any:
        return self.model.id  # type: ignore[attr-defined]

    async def get(self, session: AsyncSession, id: Any) -> T | None:  # noqa: A002
        """Plain lookup through the identity map; no lock is taken."""
        instance = await session.get(self.model, id)
        self._lazy.debug(lambda: f"db.get {self.model.__name__}({id}) hit={instance is not None}")
        return instance

    async def get_or_raise(self, session: AsyncSession, id: Any) -> T:  # noqa: A002
        """Like ``get``; raises ``NotFoundError`` instead of returning ``None``."""
        instance = await self.get(session, id)
        if instance is None:
            raise NotFoundError(self.model.__name__, {"id": id})
        return instance

    async def get_for_update(self, session: AsyncSession, id: Any) -> T:  # noqa: A002
        """Load an entity holding an exclusive row lock until the transaction ends.

        Issues ``SELECT ... FOR UPDATE``. Must be called inside a transaction;
        concurrent callers for the same id block until the holder commits or
        rolls back, then read the committed row. ``populate_existing`` makes
        sure an instance already in the identity map is refreshed from that
        row. Backends without row locks (SQLite) ignore the clause.

        Raises:
            NotFoundError: If the entity doesn't exist
        """
        stmt = (
            select(self.model)
            .where(self._pk == id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        instance = (await session.execute(stmt)).scalar_one_or_none()
        if instance is None:
            raise NotFoundError(self.model.__name__, {"id": id})

        self._lazy.debug(lambda: f"db.get_for_update {self.model.__name__}({id}) locked")
        return instance

    async def search(
        self,
        session: AsyncSession,
        statement: Select[tuple[T]],
        *,
        limit: int = 50,
        offset: int = 0,
    ) -> SearchResult[T]:
        """Run ``statement`` for one page and count all of its rows."""
        total = (await session.execute(select(func.count()).select_from(statement.subquery()))).scalar_one()
        items = (await session.execute(LimitOffset(limit, offset).apply(statement))).scalars().all()

        self._lazy.debug(
            lambda: f"db.search {self.model.__name__} limit={limit} offset={offset} -> {len(items)} of {total}"
        )
        return SearchResult(items=items, total=total, limit=limit, offset=offset)

    async def create(self, session: AsyncSession, instance: T) -> T:
        """Insert and flush; the refresh loads server defaults and the initial revision."""
        session.add(instance)
        await session.flush()
        await session.refresh(instance)
        self._lazy.debug(lambda: f"db.create {self.model.__name__}(id={getattr(instance, 'id', None)})")
        return instance

    async def delete_by_id(self, session: AsyncSession, id: Any) -> int:  # noqa: A002
        """``DELETE ... WHERE id = :id``; returns the affected row count (0 or 1)."""
        result = await session.execute(delete(self.model).where(self._pk == id))
        deleted: int = result.rowcount or 0
        self._logger.info(
            "Row deleted" if deleted else "Delete matched no rows",
            extra={"entity": self.model.__name__, "id": str(id), "deleted": deleted, "operation": "db.delete"},
        )
        return deleted

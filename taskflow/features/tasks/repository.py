"""Repository for the tasks feature."""
from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import Select, select

from taskflow.core.database import (
    BaseRepository,
    BeforeAfter,
    EqualsFilter,
    OrderBy,
    SearchFilter,
    SearchResult,
)
from taskflow.features.tasks.models import Task, TaskStatus

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sqlalchemy.ext.asyncio import AsyncSession

    from taskflow.features.tasks.schemas import TaskFilter


class TaskRepository(BaseRepository[Task]):
    """Repository for Task.

    Inherits from BaseRepository:
        - get(session, id) -> Task | None
        - get_or_raise(session, id) -> Task
        - get_for_update(session, id) -> Task (exclusive row lock)
        - search(session, statement, limit, offset) -> SearchResult[Task]
        - create(session, instance) -> Task
        - delete_by_id(session, id) -> int

    Feature-specific methods below.
    """

    def __init__(self) -> None:
        super().__init__(Task)

    def build_search_statement(self, filters: TaskFilter) -> Select[tuple[Task]]:
        """Translate listing predicates into a statement, newest first."""
        stmt = select(Task)
        stmt = EqualsFilter(Task.status, filters.status).apply(stmt)
        stmt = EqualsFilter(Task.priority, filters.priority).apply(stmt)
        stmt = EqualsFilter(Task.user_id, filters.user_id).apply(stmt)
        stmt = SearchFilter([Task.title, Task.description], filters.search).apply(stmt)
        return OrderBy([Task.created_at, Task.id], "desc").apply(stmt)

    async def search_tasks(self, session: AsyncSession, filters: TaskFilter) -> SearchResult[Task]:
        """Filtered, paginated listing with total count."""
        return await self.search(
            session,
            self.build_search_statement(filters),
            limit=filters.limit,
            offset=filters.offset,
        )

    async def find_overdue(
        self,
        session: AsyncSession,
        *,
        as_of: datetime | None = None,
        task_id: UUID | None = None,
    ) -> Sequence[Task]:
        """Find PENDING tasks whose due date lies strictly before ``as_of``.

        Args:
            session: Database session
            as_of: Reference time (defaults to now, UTC)
            task_id: Restrict the lookup to a single task

        Returns:
            Overdue tasks ordered by due date
        """
        now = as_of or datetime.now(UTC)
        stmt = select(Task).where(Task.status == TaskStatus.PENDING, Task.due_date.is_not(None))
        stmt = BeforeAfter(Task.due_date, before=now).apply(stmt)
        stmt = EqualsFilter(Task.id, task_id).apply(stmt)
        stmt = OrderBy([Task.due_date, Task.id]).apply(stmt)

        items = (await session.execute(stmt)).scalars().all()

        if items:
            self._logger.info(
                "Found overdue tasks",
                extra={"count": len(items), "as_of": now.isoformat(), "operation": "db.find_overdue"},
            )
        else:
            self._lazy.debug(lambda: f"db.find_overdue(as_of={now.isoformat()}, task_id={task_id}) -> 0 items")
        return items


_task_repository: TaskRepository | None = None


def get_task_repository() -> TaskRepository:
    """Get the shared TaskRepository instance."""
    global _task_repository
    if _task_repository is None:
        _task_repository = TaskRepository()
    return _task_repository

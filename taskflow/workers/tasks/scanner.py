"""Periodic overdue scan.

Finds PENDING tasks past their due date and submits one
OVERDUE_NOTIFICATION job per task. The scan holds no locks and mutates
nothing; a task overlapping two scans may be notified twice.
"""
from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from taskflow.features.tasks.repository import TaskRepository, get_task_repository
from taskflow.infra.tasks.jobs import JobKind, JobQueue

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(slots=True, frozen=True)
class ScanResult:
    found: int
    enqueued: int
    failed: int
    as_of: datetime


class OverdueScanner:
    """Feeds overdue tasks into the job queue."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        queue: JobQueue,
        repository: TaskRepository | None = None,
        clock: Callable[[], datetime] | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._queue = queue
        self._repository = repository or get_task_repository()
        self._clock = clock or _utcnow
        self.logger = logger or logging.getLogger(self.__class__.__name__)

    async def scan_once(self, *, as_of: datetime | None = None) -> ScanResult:
        """Run one scan.

        A failed submit is logged and counted; the remaining tasks are still
        submitted. Errors reading the store propagate.
        """
        as_of = as_of or self._clock()
        async with self._session_factory() as session:
            tasks = list(await self._repository.find_overdue(session, as_of=as_of))

        enqueued = failed = 0
        for task in tasks:
            try:
                await self._queue.submit(JobKind.OVERDUE_NOTIFICATION, {"taskId": str(task.id)})
            except Exception as e:
                failed += 1
                self.logger.error(
                    "Failed to enqueue overdue notification",
                    extra={"task_id": str(task.id), "error": str(e), "operation": "scanner.scan_once"},
                )
            else:
                enqueued += 1

        self.logger.info(
            "Overdue scan finished",
            extra={
                "found": len(tasks),
                "enqueued": enqueued,
                "failed": failed,
                "as_of": as_of.isoformat(),
                "operation": "scanner.scan_once",
            },
        )
        return ScanResult(found=len(tasks), enqueued=enqueued, failed=failed, as_of=as_of)

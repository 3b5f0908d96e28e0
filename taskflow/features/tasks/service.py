"""Task lifecycle service.

Owns every mutation of a task and decides when a side-effect job must be
produced. Each operation runs in its own transaction obtained from the
session factory; jobs are submitted only after that transaction has
committed, and a queue outage never rolls a committed mutation back.
"""
from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any, TypeVar
from uuid import UUID

from pydantic import BaseModel, ValidationError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from taskflow.core.database import NotFoundError, SearchResult
from taskflow.core.exceptions import (
    AppException,
    BadRequestException,
    ConflictException,
    InternalServerException,
    NotFoundException,
)
from taskflow.core.services.base import BaseService
from taskflow.features.tasks.models import Task, TaskStatus
from taskflow.features.tasks.repository import TaskRepository, get_task_repository
from taskflow.features.tasks.schemas import (
    BatchItemResult,
    TaskCreate,
    TaskFilter,
    TaskRead,
    TaskUpdate,
)
from taskflow.infra.tasks.jobs import JobKind, JobQueue

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker


M = TypeVar("M", bound=BaseModel)

_NON_NULLABLE = frozenset({"title", "status", "priority"})


def _not_found(task_id: Any) -> NotFoundException:
    return NotFoundException(
        f"Task with ID {task_id} not found",
        type="task-not-found",
        extra={"task_id": str(task_id)},
    )


def coerce_task_id(task_id: UUID | str) -> UUID:
    """Parse a task id; a value that is not a UUID cannot name an existing task."""
    if isinstance(task_id, UUID):
        return task_id
    try:
        return UUID(str(task_id))
    except ValueError:
        raise _not_found(task_id) from None


def parse_status(status: TaskStatus | str) -> TaskStatus:
    """Validate a status value against ``TaskStatus``.

    Raises:
        BadRequestException: If the value is not a member
    """
    try:
        return TaskStatus(status)
    except ValueError:
        raise BadRequestException(
            f"Invalid status: {status}",
            type="invalid-status",
            extra={"allowed": [s.value for s in TaskStatus]},
        ) from None


@dataclass(slots=True, frozen=True)
class StatusChange:
    """Outcome of a status write; ``stale`` means the row had moved past the expected revision."""

    task: Task
    stale: bool = False


class TaskLifecycleService(BaseService):
    """Create, read, mutate and delete tasks; enqueue STATUS_UPDATE jobs.

    Example:
        service = TaskLifecycleService(session_factory, queue)
        task = await service.create(TaskCreate(title="Write report"))
        await service.update(task.id, {"status": "COMPLETED"})
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        queue: JobQueue,
        repository: TaskRepository | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        super().__init__(logger)
        self._session_factory = session_factory
        self._queue = queue
        self._repository = repository or get_task_repository()

    # ──────────────────────────────────────────────────────────────
    # Writes
    # ──────────────────────────────────────────────────────────────

    async def create(self, data: TaskCreate | Mapping[str, Any]) -> Task:
        """Insert a task and enqueue a STATUS_UPDATE job for its initial status."""
        payload = self._validate(TaskCreate, data)
        try:
            async with self._session_factory() as session, session.begin():
                task = await self._repository.create(session, Task(**payload.model_dump()))
        except SQLAlchemyError:
            self.logger.exception("Task creation failed", extra={"operation": "service.create"})
            raise InternalServerException("Failed to create task") from None

        self.logger.info(
            "Task created",
            extra={
                "task_id": str(task.id),
                "status": task.status.value,
                "priority": task.priority.value,
                "has_due_date": task.due_date is not None,
                "operation": "service.create",
            },
        )
        await self._dispatch_status_update(task)
        return task

    async def update(self, task_id: UUID | str, changes: TaskUpdate | Mapping[str, Any]) -> Task:
        """Apply a partial update under an exclusive row lock.

        Only fields explicitly present in ``changes`` are written. Exactly one
        STATUS_UPDATE job carrying the new status is enqueued after commit
        if, and only if, the status changed.

        Raises:
            NotFoundException: If no task has this id
            BadRequestException: If ``changes`` is not a valid partial update
            InternalServerException: On any store failure (cause logged)
        """
        tid = coerce_task_id(task_id)
        fields = self._validate(TaskUpdate, changes).model_dump(exclude_unset=True)
        required = sorted(name for name in _NON_NULLABLE if name in fields and fields[name] is None)
        if required:
            raise BadRequestException(
                f"Fields cannot be null: {', '.join(required)}",
                type="validation-error",
                extra={"fields": required},
            )

        try:
            async with self._session_factory() as session, session.begin():
                task = await self._repository.get_for_update(session, tid)
                previous = task.status
                for name, value in fields.items():
                    setattr(task, name, value)
                await session.flush()
        except NotFoundError:
            raise _not_found(tid) from None
        except SQLAlchemyError:
            self.logger.exception(
                "Task update failed",
                extra={"task_id": str(tid), "fields": sorted(fields), "operation": "service.update"},
            )
            raise InternalServerException("Failed to update task") from None

        self.logger.info(
            "Task updated",
            extra={
                "task_id": str(tid),
                "fields": sorted(fields),
                "revision": task.revision,
                "operation": "service.update",
            },
        )
        if task.status != previous:
            await self._dispatch_status_update(task, previous=previous)
        return task

    async def update_status(self, task_id: UUID | str, status: TaskStatus | str) -> Task:
        """Set the status of a task; enqueue STATUS_UPDATE only if it changed.

        Raises:
            BadRequestException: If ``status`` is not a TaskStatus value
            NotFoundException: If no task has this id
        """
        change = await self.apply_status(task_id, status)
        return change.task

    async def apply_status(
        self,
        task_id: UUID | str,
        status: TaskStatus | str,
        *,
        expected_revision: int | None = None,
    ) -> StatusChange:
        """Set the status of a task unless it has moved past ``expected_revision``.

        The revision is compared after the row lock is taken, so a mutation
        committed by another caller in the meantime is never overwritten.
        A stale call writes nothing and enqueues nothing.

        Raises:
            BadRequestException: If ``status`` is not a TaskStatus value
            NotFoundException: If no task has this id
        """
        new_status = parse_status(status)
        tid = coerce_task_id(task_id)

        try:
            async with self._session_factory() as session, session.begin():
                task = await self._repository.get_for_update(session, tid)
                if expected_revision is not None and task.revision > expected_revision:
                    self._lazy.debug(
                        lambda: f"service.update_status({tid}) -> stale, revision {task.revision} > {expected_revision}"
                    )
                    return StatusChange(task, stale=True)
                previous = task.status
                task.status = new_status
                await session.flush()
        except NotFoundError:
            raise _not_found(tid) from None
        except SQLAlchemyError:
            self.logger.exception(
                "Task status update failed",
                extra={"task_id": str(tid), "status": new_status.value, "operation": "service.update_status"},
            )
            raise InternalServerException("Failed to update task status") from None

        if previous == new_status:
            self._lazy.debug(lambda: f"service.update_status({tid}) -> unchanged {new_status.value}")
            return StatusChange(task)

        self.logger.info(
            "Task status changed",
            extra={
                "task_id": str(tid),
                "from_status": previous.value,
                "to_status": new_status.value,
                "operation": "service.update_status",
            },
        )
        await self._dispatch_status_update(task, previous=previous)
        return StatusChange(task)

    async def remove(self, task_id: UUID | str) -> None:
        """Delete a task. Not idempotent: a second call raises NotFound.

        Raises:
            NotFoundException: If no row was deleted
            ConflictException: If other records still reference the task
        """
        tid = coerce_task_id(task_id)
        try:
            async with self._session_factory() as session, session.begin():
                if not await self._repository.delete_by_id(session, tid):
                    raise NotFoundError("Task", {"id": tid})
        except NotFoundError:
            raise _not_found(tid) from None
        except IntegrityError:
            self.logger.warning(
                "Task delete blocked by references",
                extra={"task_id": str(tid), "operation": "service.remove"},
            )
            raise ConflictException(
                f"Task with ID {tid} is referenced by other records",
                type="task-in-use",
                extra={"task_id": str(tid)},
            ) from None
        except SQLAlchemyError:
            self.logger.exception("Task delete failed", extra={"task_id": str(tid), "operation": "service.remove"})
            raise InternalServerException("Failed to delete task") from None

        self.logger.info("Task removed", extra={"task_id": str(tid), "operation": "service.remove"})

    async def batch_apply(self, ids: Iterable[UUID | str], action: str) -> list[BatchItemResult]:
        """Apply ``action`` to every id, isolating failures per id.

        ``complete`` sets the status to COMPLETED, ``delete`` removes the task.
        The result list matches ``ids`` one-to-one and in order; the batch
        itself never raises.
        """
        operations: dict[str, Callable[[UUID | str], Awaitable[Any]]] = {
            "complete": self._complete_one,
            "delete": self._delete_one,
        }
        operation = operations.get(action)

        results: list[BatchItemResult] = []
        for raw_id in ids:
            key = str(raw_id)
            if operation is None:
                results.append(BatchItemResult(id=key, success=False, error=f"Unknown action: {action}"))
                continue
            try:
                outcome = await operation(raw_id)
            except AppException as e:
                results.append(BatchItemResult(id=key, success=False, error=e.detail))
            except Exception:
                self.logger.exception(
                    "Batch item failed unexpectedly",
                    extra={"task_id": key, "action": action, "operation": "service.batch_apply"},
                )
                results.append(BatchItemResult(id=key, success=False, error="Internal error"))
            else:
                results.append(BatchItemResult(id=key, success=True, result=outcome))

        failed = sum(1 for r in results if not r.success)
        self.logger.info(
            "Batch applied",
            extra={
                "action": action,
                "total": len(results),
                "failed": failed,
                "operation": "service.batch_apply",
            },
        )
        return results

    async def _complete_one(self, task_id: UUID | str) -> dict[str, Any]:
        task = await self.update_status(task_id, TaskStatus.COMPLETED)
        return TaskRead.model_validate(task).model_dump(mode="json")

    async def _delete_one(self, task_id: UUID | str) -> dict[str, Any]:
        await self.remove(task_id)
        return {"deleted": True}

    # ──────────────────────────────────────────────────────────────
    # Reads (no locks)
    # ──────────────────────────────────────────────────────────────

    async def find_all(self, filters: TaskFilter | Mapping[str, Any] | None = None) -> SearchResult[Task]:
        """List tasks matching ``filters``, newest first, with the total count."""
        criteria = self._validate(TaskFilter, filters or {})
        try:
            async with self._session_factory() as session:
                result = await self._repository.search_tasks(session, criteria)
        except SQLAlchemyError:
            self.logger.exception("Task listing failed", extra={"operation": "service.find_all"})
            raise InternalServerException("Failed to fetch tasks") from None

        self._lazy.debug(
            lambda: f"service.find_all({criteria.model_dump(exclude_defaults=True)}) -> {len(result.items)}/{result.total}"
        )
        return result

    async def find_one(self, task_id: UUID | str) -> Task:
        """Point lookup.

        Raises:
            NotFoundException: If no task has this id
        """
        tid = coerce_task_id(task_id)
        try:
            async with self._session_factory() as session:
                task = await self._repository.get_or_raise(session, tid)
        except NotFoundError:
            raise _not_found(tid) from None
        except SQLAlchemyError:
            self.logger.exception("Task lookup failed", extra={"task_id": str(tid), "operation": "service.find_one"})
            raise InternalServerException("Failed to fetch task") from None
        return task

    async def get_overdue_tasks(
        self,
        *,
        as_of: datetime | None = None,
        task_id: UUID | str | None = None,
    ) -> list[Task]:
        """PENDING tasks whose due date is before ``as_of`` (default now, UTC)."""
        tid = coerce_task_id(task_id) if task_id is not None else None
        try:
            async with self._session_factory() as session:
                tasks = await self._repository.find_overdue(session, as_of=as_of, task_id=tid)
        except SQLAlchemyError:
            self.logger.exception("Overdue lookup failed", extra={"operation": "service.get_overdue_tasks"})
            raise InternalServerException("Failed to fetch overdue tasks") from None
        return list(tasks)

    # ──────────────────────────────────────────────────────────────
    # Helpers
    # ──────────────────────────────────────────────────────────────

    def _validate(self, model: type[M], data: Any) -> M:
        if isinstance(data, model):
            return data
        try:
            return model.model_validate(data)
        except ValidationError as e:
            raise BadRequestException(
                f"Invalid {model.__name__} payload",
                type="validation-error",
                extra={"errors": e.errors(include_url=False, include_context=False)},
            ) from None

    async def _dispatch_status_update(self, task: Task, *, previous: TaskStatus | None = None) -> str | None:
        """Submit a STATUS_UPDATE job; failures are logged and dropped."""
        payload = {"taskId": str(task.id), "status": task.status.value, "revision": task.revision}
        try:
            job_id = await self._queue.submit(JobKind.STATUS_UPDATE, payload)
        except Exception as e:
            self.logger.error(
                "Failed to enqueue status update job",
                extra={
                    "task_id": str(task.id),
                    "status": task.status.value,
                    "error": str(e),
                    "error_type": type(e).__name__,
                    "operation": "service.dispatch_status_update",
                },
            )
            return None

        self.logger.info(
            "Status update job enqueued",
            extra={
                "task_id": str(task.id),
                "job_id": job_id,
                "from_status": previous.value if previous else None,
                "to_status": task.status.value,
                "operation": "service.dispatch_status_update",
            },
        )
        return job_id


__all__ = ["TaskLifecycleService", "coerce_task_id", "parse_status"]

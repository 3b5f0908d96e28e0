"""Job worker: routes delivered jobs to kind-specific handlers.

Handlers return a result mapping (``{"success": bool, ...}``) for every
expected outcome, including invalid payloads and vanished tasks. Only
unexpected failures are raised, so that the queue's retry policy applies
to them and not to jobs that can never succeed.
"""
from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from taskflow.core.exceptions import BadRequestException, NotFoundException
from taskflow.features.tasks.schemas import OverdueNotificationPayload, StatusUpdatePayload
from taskflow.infra.logging import get_lazy_logger
from taskflow.infra.tasks.jobs import Job, JobHandler, JobKind

if TYPE_CHECKING:
    from taskflow.features.tasks.models import Task
    from taskflow.features.tasks.notifications import OverdueNotifier
    from taskflow.features.tasks.service import TaskLifecycleService
    from taskflow.infra.tasks.dead_letter import DeadLetterStore

INVALID_JOB_DATA = "Invalid job data"
UNKNOWN_JOB_TYPE = "Unknown job type"


class JobWorker:
    """Consumes jobs with per-kind handlers and partial-failure isolation.

    Example:
        worker = JobWorker(service, LoggingOverdueNotifier(), dead_letters=store)
        queue.register_consumer(worker.process)
    """

    def __init__(
        self,
        service: TaskLifecycleService,
        notifier: OverdueNotifier,
        *,
        dead_letters: DeadLetterStore | None = None,
        logger: logging.Logger | None = None,
        concurrency: int = 10,
        register_builtin_handlers: bool = True,
    ) -> None:
        if concurrency < 1:
            msg = "concurrency must be at least 1"
            raise ValueError(msg)
        self.logger = logger or logging.getLogger(self.__class__.__name__)
        self._lazy = get_lazy_logger(self.logger)
        self._service = service
        self._notifier = notifier
        self._dead_letters = dead_letters
        self._concurrency = concurrency
        self._handlers: dict[JobKind, JobHandler] = {}

        if register_builtin_handlers:
            self.register(JobKind.STATUS_UPDATE, self.handle_status_update)
            self.register(JobKind.OVERDUE_NOTIFICATION, self.handle_overdue_notification)

    @property
    def registered_kinds(self) -> frozenset[JobKind]:
        return frozenset(self._handlers)

    def register(self, kind: JobKind | str, handler: JobHandler) -> None:
        """Register the handler for ``kind``.

        Raises:
            ValueError: If ``kind`` is not a JobKind or already has a handler
        """
        parsed = kind if isinstance(kind, JobKind) else JobKind.parse(kind)
        if parsed is None:
            msg = f"Unknown job kind: {kind!r}"
            raise ValueError(msg)
        if parsed in self._handlers:
            msg = f"A handler is already registered for {parsed.name}"
            raise ValueError(msg)
        self._handlers[parsed] = handler

    async def process(self, job: Job) -> dict[str, Any]:
        """Dispatch ``job`` to its handler and return the handler's result."""
        kind = JobKind.parse(job.kind)
        handler = self._handlers.get(kind) if kind is not None else None
        if handler is None:
            return await self._handle_unroutable(job)

        self._lazy.debug(lambda: f"worker.process: {job.kind} id={job.id} attempt={job.attempt} payload={dict(job.payload)}")
        result = await handler(job)
        self.logger.info(
            "Job processed",
            extra={
                "job_id": job.id,
                "job_kind": kind.name,
                "attempt": job.attempt,
                "success": result.get("success"),
                "operation": "worker.process",
            },
        )
        return result

    # ──────────────────────────────────────────────────────────────
    # STATUS_UPDATE
    # ──────────────────────────────────────────────────────────────

    async def handle_status_update(self, job: Job) -> dict[str, Any]:
        """Re-apply the payload status unless a later mutation superseded it."""
        try:
            payload = StatusUpdatePayload.model_validate(job.payload)
        except ValidationError:
            self.logger.warning(
                "Invalid status update job data",
                extra={"job_id": job.id, "payload": dict(job.payload), "operation": "worker.status_update"},
            )
            return {"success": False, "error": INVALID_JOB_DATA}

        task_id = str(payload.task_id)
        try:
            change = await self._service.apply_status(
                payload.task_id, payload.status, expected_revision=payload.revision
            )
        except (NotFoundException, BadRequestException) as e:
            self.logger.warning(
                "Status update job rejected",
                extra={"job_id": job.id, "task_id": task_id, "error": e.detail, "operation": "worker.status_update"},
            )
            return {"success": False, "taskId": task_id, "error": e.detail}
        except Exception:
            self.logger.exception(
                "Status update job failed",
                extra={"job_id": job.id, "task_id": task_id, "attempt": job.attempt, "operation": "worker.status_update"},
            )
            raise

        task = change.task
        if change.stale:
            self.logger.info(
                "Stale status update skipped",
                extra={
                    "job_id": job.id,
                    "task_id": task_id,
                    "job_revision": payload.revision,
                    "task_revision": task.revision,
                    "operation": "worker.status_update",
                },
            )
            return {"success": True, "stale": True, "taskId": task_id, "newStatus": task.status.value}
        return {"success": True, "taskId": task_id, "newStatus": task.status.value}

    # ──────────────────────────────────────────────────────────────
    # OVERDUE_NOTIFICATION
    # ──────────────────────────────────────────────────────────────

    async def handle_overdue_notification(self, job: Job) -> dict[str, Any]:
        """Notify for every task that is still overdue; failures are counted, not raised.

        With a ``taskId`` in the payload only that task is considered, and
        only while it is still PENDING and overdue. Without one, every
        overdue task is swept.
        """
        try:
            payload = OverdueNotificationPayload.model_validate(job.payload or {})
        except ValidationError:
            self.logger.warning(
                "Invalid overdue notification job data",
                extra={
                    "job_id": job.id,
                    "payload": dict(job.payload or {}),
                    "operation": "worker.overdue_notification",
                },
            )
            return {"success": False, "error": INVALID_JOB_DATA}

        tasks = await self._service.get_overdue_tasks(task_id=payload.task_id)
        semaphore = asyncio.Semaphore(self._concurrency)

        async def notify(task: Task) -> None:
            async with semaphore:
                await self._notifier.notify(task)

        outcomes = await asyncio.gather(*(notify(task) for task in tasks), return_exceptions=True)

        failed = 0
        for task, outcome in zip(tasks, outcomes, strict=True):
            if isinstance(outcome, BaseException):
                failed += 1
                self.logger.warning(
                    "Overdue notification failed",
                    exc_info=outcome,
                    extra={"job_id": job.id, "task_id": str(task.id), "operation": "worker.overdue_notification"},
                )

        self.logger.info(
            "Overdue notifications processed",
            extra={
                "job_id": job.id,
                "processed": len(tasks),
                "failed": failed,
                "operation": "worker.overdue_notification",
            },
        )
        return {"success": True, "processed": len(tasks), "failed": failed}

    # ──────────────────────────────────────────────────────────────
    # Unknown kinds
    # ──────────────────────────────────────────────────────────────

    async def _handle_unroutable(self, job: Job) -> dict[str, Any]:
        self.logger.error(
            "Unknown job type",
            extra={"job_id": job.id, "job_kind": job.kind, "operation": "worker.process"},
        )
        if self._dead_letters is not None:
            try:
                await self._dead_letters.record(job, UNKNOWN_JOB_TYPE)
            except Exception:
                self.logger.exception(
                    "Failed to dead-letter job",
                    extra={"job_id": job.id, "job_kind": job.kind, "operation": "worker.dead_letter"},
                )
        return {"success": False, "error": UNKNOWN_JOB_TYPE}

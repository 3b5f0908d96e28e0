"""Worker process wiring.

Run a worker with:

    taskiq worker taskflow.workers.tasks.runtime:broker

The consumer is registered at import time so that the taskiq receiver
knows the queue's task name; the database engine, the service and the
dead-letter store are built on worker startup (or on the first job when
the in-memory broker runs jobs inside the producing process).
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from taskiq import TaskiqEvents, TaskiqState

from taskflow.core.settings import TaskSettings, get_task_settings
from taskflow.features.tasks.notifications import LoggingOverdueNotifier
from taskflow.features.tasks.service import TaskLifecycleService
from taskflow.infra.database import build_engine, build_session_factory
from taskflow.infra.logging import setup_logging
from taskflow.infra.tasks.broker import create_broker
from taskflow.infra.tasks.dead_letter import DeadLetterStore, RedisDeadLetterStore, create_dead_letter_store
from taskflow.infra.tasks.queue import TaskiqJobQueue
from taskflow.workers.tasks.worker import JobWorker

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

    from taskflow.infra.tasks.jobs import Job, JobQueue

logger = logging.getLogger(__name__)


def build_worker(
    session_factory: async_sessionmaker[AsyncSession],
    queue: JobQueue,
    *,
    dead_letters: DeadLetterStore | None = None,
    task_settings: TaskSettings | None = None,
) -> JobWorker:
    """Assemble a JobWorker with the default notifier."""
    task_settings = task_settings or get_task_settings()
    service = TaskLifecycleService(session_factory, queue)
    return JobWorker(
        service,
        LoggingOverdueNotifier(),
        dead_letters=dead_letters,
        concurrency=task_settings.notification_concurrency,
    )


class WorkerRuntime:
    """Owns the worker's long-lived resources."""

    def __init__(self, queue: JobQueue, task_settings: TaskSettings | None = None) -> None:
        self.queue = queue
        self.task_settings = task_settings or get_task_settings()
        self.worker: JobWorker | None = None
        self._engine: AsyncEngine | None = None
        self._dead_letters: RedisDeadLetterStore | None = None
        self._lock = asyncio.Lock()

    async def start(self) -> JobWorker:
        async with self._lock:
            if self.worker is not None:
                return self.worker
            self._engine = build_engine()
            self._dead_letters = create_dead_letter_store(task_settings=self.task_settings)
            self.worker = build_worker(
                build_session_factory(self._engine),
                self.queue,
                dead_letters=self._dead_letters,
                task_settings=self.task_settings,
            )
            logger.info(
                "Job worker started",
                extra={"kinds": sorted(k.name for k in self.worker.registered_kinds)},
            )
            return self.worker

    async def stop(self) -> None:
        async with self._lock:
            if self._dead_letters is not None:
                await self._dead_letters.close()
                self._dead_letters = None
            if self._engine is not None:
                await self._engine.dispose()
                self._engine = None
            self.worker = None
        logger.info("Job worker stopped")

    async def handle(self, job: Job) -> dict[str, Any]:
        worker = self.worker or await self.start()
        return await worker.process(job)


_task_settings = get_task_settings()
broker = create_broker(task_settings=_task_settings)
queue = TaskiqJobQueue(
    broker,
    queue_name=_task_settings.queue_name,
    max_retries=_task_settings.max_retries,
)
runtime = WorkerRuntime(queue, _task_settings)
queue.register_consumer(runtime.handle)


@broker.on_event(TaskiqEvents.WORKER_STARTUP)
async def _on_worker_startup(state: TaskiqState) -> None:
    setup_logging()
    await runtime.start()


@broker.on_event(TaskiqEvents.WORKER_SHUTDOWN)
async def _on_worker_shutdown(state: TaskiqState) -> None:
    await runtime.stop()

"""Taskiq-backed job queue.

The queue name doubles as the taskiq task name. Producers kick messages by
name through ``AsyncKicker`` so they never import the consumer; the worker
process registers exactly one taskiq task under that name which rebuilds a
``Job`` and hands it to the registered handler.

Retries are owned by taskiq's ``SimpleRetryMiddleware``: a handler that
raises is redelivered up to ``max_retries`` times with an incremented
``_retries`` label.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from taskiq import AsyncBroker, Context, TaskiqDepends
from taskiq.kicker import AsyncKicker

from taskflow.core.exceptions import DispatchException
from taskflow.infra.logging import get_lazy_logger, log_context
from taskflow.infra.tasks.jobs import Job, JobHandler, JobKind

logger = logging.getLogger(__name__)
_lazy = get_lazy_logger(__name__)

DEFAULT_QUEUE_NAME = "task-processing"


def attempt_from_labels(labels: Mapping[str, Any] | None) -> int:
    """1-based delivery attempt derived from the retry middleware's label."""
    try:
        return int((labels or {}).get("_retries", 0)) + 1
    except (TypeError, ValueError):
        return 1


class TaskiqJobQueue:
    """``JobQueue`` implementation on top of a taskiq broker.

    Example:
        queue = TaskiqJobQueue(broker, queue_name="task-processing", max_retries=3)
        job_id = await queue.submit(JobKind.STATUS_UPDATE, {"taskId": str(task.id), "status": "PENDING"})
    """

    def __init__(
        self,
        broker: AsyncBroker,
        *,
        queue_name: str = DEFAULT_QUEUE_NAME,
        max_retries: int = 3,
    ) -> None:
        self.broker = broker
        self.queue_name = queue_name
        self.max_retries = max_retries
        self._consumer_registered = False

    @property
    def _labels(self) -> dict[str, Any]:
        return {"retry_on_error": self.max_retries > 0, "max_retries": self.max_retries}

    async def submit(self, kind: JobKind, payload: Mapping[str, Any]) -> str:
        """Kick a ``(kind, payload)`` message to the queue.

        Raises:
            DispatchException: If the broker rejected the message
        """
        kind = JobKind(kind)
        kicker: AsyncKicker[Any, Any] = AsyncKicker(
            task_name=self.queue_name,
            broker=self.broker,
            labels=self._labels,
        )
        try:
            task = await kicker.kiq(kind=kind.value, payload=dict(payload))
        except Exception as e:
            raise DispatchException(
                f"Failed to enqueue {kind.name} job",
                extra={"queue": self.queue_name, "kind": kind.value, "error": str(e)},
            ) from e

        _lazy.debug(lambda: f"queue.submit: {kind.name} -> {task.task_id} payload={dict(payload)}")
        return task.task_id

    def register_consumer(self, handler: JobHandler) -> None:
        """Register ``handler`` as the taskiq task behind ``queue_name``.

        Raises:
            RuntimeError: If a consumer is already registered on this queue
        """
        if self._consumer_registered:
            msg = f"A consumer is already registered for queue {self.queue_name!r}"
            raise RuntimeError(msg)

        async def consume(
            kind: str,
            payload: dict[str, Any] | None = None,
            context: Context = TaskiqDepends(),  # noqa: B008
        ) -> Any:
            job = Job(
                id=context.message.task_id,
                kind=kind,
                payload=payload or {},
                attempt=attempt_from_labels(context.message.labels),
            )
            with log_context(job_id=job.id, job_kind=job.kind, job_attempt=job.attempt):
                return await handler(job)

        self.broker.register_task(consume, task_name=self.queue_name, **self._labels)
        self._consumer_registered = True
        logger.info(
            "Job consumer registered",
            extra={"queue": self.queue_name, "max_retries": self.max_retries, "operation": "queue.register_consumer"},
        )

"""Job vocabulary shared by producers and the worker.

A job is an asynchronous unit of side-effect work produced by a task
mutation or by the overdue scan. Producers only know ``JobQueue.submit``;
the worker only sees ``Job`` instances handed to its consumer.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol, runtime_checkable


class JobKind(str, Enum):
    """Closed set of job kinds understood by the worker."""

    STATUS_UPDATE = "task-status-update"
    OVERDUE_NOTIFICATION = "overdue-tasks-notification"

    @classmethod
    def parse(cls, raw: str) -> JobKind | None:
        """Map a wire value (or member name) to a kind, ``None`` if unknown."""
        try:
            return cls(raw)
        except ValueError:
            return cls.__members__.get(raw)


@dataclass(slots=True, frozen=True)
class Job:
    """A delivered job.

    ``kind`` keeps the raw wire string so that messages produced by a newer
    or misconfigured producer still reach the worker and can be
    dead-lettered instead of failing deserialization.

    Attributes:
        id: Queue-assigned job id
        kind: Raw kind string
        payload: Task id plus the fields relevant to the kind (camelCase keys)
        attempt: 1-based delivery attempt
    """

    id: str
    kind: str
    payload: Mapping[str, Any] = field(default_factory=dict)
    attempt: int = 1


JobHandler = Callable[[Job], Awaitable[Any]]


@runtime_checkable
class JobQueue(Protocol):
    """Durable at-least-once hand-off from producers to the worker.

    No ordering is guaranteed between jobs, including jobs about the same
    task.
    """

    async def submit(self, kind: JobKind, payload: Mapping[str, Any]) -> str:
        """Enqueue a job and return its id.

        Raises:
            DispatchException: If the job could not be handed to the queue
        """
        ...

    def register_consumer(self, handler: JobHandler) -> None:
        """Register the single consumer of this queue."""
        ...

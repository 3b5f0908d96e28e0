"""Overdue notification seam.

Channel implementations (email, SMS, push) live outside this package; the
worker only depends on the ``OverdueNotifier`` protocol.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from taskflow.features.tasks.models import Task


class OverdueNotifier(Protocol):
    """Delivers one overdue notification; raising marks the attempt failed."""

    async def notify(self, task: Task) -> None: ...


class LoggingOverdueNotifier:
    """Default notifier: emits a structured ``TASK OVERDUE`` warning record."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self.logger = logger or logging.getLogger(self.__class__.__name__)

    async def notify(self, task: Task) -> None:
        self.logger.warning(
            "TASK OVERDUE",
            extra={
                "task_id": str(task.id),
                "title": task.title[:50],
                "user_id": str(task.user_id) if task.user_id else None,
                "due_date": task.due_date.isoformat() if task.due_date else None,
                "notified_at": datetime.now(UTC).isoformat(),
                "operation": "notify.overdue",
            },
        )

"""Pydantic schemas for the tasks feature."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from taskflow.features.tasks.models import TaskPriority, TaskStatus

BatchAction = Literal["complete", "delete"]


class TaskBase(BaseModel):
    """Shared attributes for task payloads."""

    title: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    priority: TaskPriority = TaskPriority.MEDIUM
    due_date: datetime | None = None
    user_id: UUID | None = None


class TaskCreate(TaskBase):
    """Payload used when creating a task."""

    status: TaskStatus = TaskStatus.PENDING


class TaskUpdate(BaseModel):
    """Partial update; only explicitly set fields are applied."""

    model_config = ConfigDict(extra="forbid")

    title: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    status: TaskStatus | None = None
    priority: TaskPriority | None = None
    due_date: datetime | None = None
    user_id: UUID | None = None


class TaskFilter(BaseModel):
    """Lock-free listing predicates and pagination."""

    status: TaskStatus | None = None
    priority: TaskPriority | None = None
    user_id: UUID | None = None
    search: str | None = Field(default=None, description="Case-insensitive match on title or description")
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1, le=100)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


class TaskRead(TaskBase):
    """Serialized task, e.g. for CLI output or job results."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    status: TaskStatus
    revision: int
    created_at: datetime
    updated_at: datetime


class BatchItemResult(BaseModel):
    """Outcome of a batch action for a single id."""

    id: str
    success: bool
    result: Any = None
    error: str | None = None


# ──────────────────────────────────────────────────────────────
# Job payloads (camelCase on the wire)
# ──────────────────────────────────────────────────────────────


class StatusUpdatePayload(BaseModel):
    """Payload of a STATUS_UPDATE job.

    ``status`` stays a plain string here: an out-of-range value is a
    handler-level failure, not malformed job data.
    """

    model_config = ConfigDict(populate_by_name=True)

    task_id: UUID = Field(alias="taskId")
    status: str
    revision: int | None = None


class OverdueNotificationPayload(BaseModel):
    """Payload of an OVERDUE_NOTIFICATION job; without ``taskId`` it sweeps all."""

    model_config = ConfigDict(populate_by_name=True)

    task_id: UUID | None = Field(default=None, alias="taskId")

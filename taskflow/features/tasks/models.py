"""SQLAlchemy models for the tasks feature."""
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID

from sqlalchemy import DateTime, Index, Integer, String, Text
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column

from taskflow.core.database import Base, TimestampMixin, UUIDPKMixin


class TaskStatus(str, Enum):
    """Lifecycle state of a task."""

    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"


class TaskPriority(str, Enum):
    """Relative importance of a task."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


def _enum_values(enum_cls: type[Enum]) -> list[str]:
    return [member.value for member in enum_cls]


class Task(Base, UUIDPKMixin, TimestampMixin):
    """Unit of work tracked by the system.

    ``status`` only changes through ``TaskLifecycleService``. ``revision``
    is the ORM version counter: it starts at 1 and is bumped on every
    persisted UPDATE, which lets job handlers recognise payloads produced
    before a later mutation.

    ``user_id`` is a weak reference to an account in the external user
    subsystem; there is no foreign key.
    """

    __tablename__ = "tasks"

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text(), nullable=True)
    status: Mapped[TaskStatus] = mapped_column(
        SAEnum(
            TaskStatus,
            name="task_status",
            native_enum=False,
            length=20,
            values_callable=_enum_values,
            validate_strings=True,
        ),
        default=TaskStatus.PENDING,
        nullable=False,
    )
    priority: Mapped[TaskPriority] = mapped_column(
        SAEnum(
            TaskPriority,
            name="task_priority",
            native_enum=False,
            length=20,
            values_callable=_enum_values,
            validate_strings=True,
        ),
        default=TaskPriority.MEDIUM,
        nullable=False,
    )
    due_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    user_id: Mapped[UUID | None] = mapped_column(nullable=True, index=True)
    revision: Mapped[int] = mapped_column(Integer(), nullable=False)

    __mapper_args__: dict[str, Any] = {"version_id_col": revision}

    __table_args__ = (
        # Overdue scan: WHERE status = 'PENDING' AND due_date < :as_of
        Index("ix_tasks_status_due_date", "status", "due_date"),
    )

    def __repr__(self) -> str:
        return f"Task(id={self.id!s}, status={self.status.value}, revision={self.revision})"

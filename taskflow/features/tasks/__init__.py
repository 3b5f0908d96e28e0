"""Tasks feature: model, repository and lifecycle service."""

from taskflow.features.tasks.models import Task, TaskPriority, TaskStatus
from taskflow.features.tasks.service import TaskLifecycleService

__all__ = ["Task", "TaskLifecycleService", "TaskPriority", "TaskStatus"]

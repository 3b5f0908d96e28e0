"""Job dispatch infrastructure: job vocabulary, taskiq queue, scheduler, dead letters."""

from taskflow.infra.tasks.jobs import Job, JobHandler, JobKind, JobQueue

__all__ = ["Job", "JobHandler", "JobKind", "JobQueue"]

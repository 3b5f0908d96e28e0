"""End-to-end job flow on taskiq's in-memory broker.

Producers submit through ``TaskiqJobQueue``; with ``await_inplace`` the
broker runs the worker before ``submit`` returns, so every assertion below
sees the effects of the jobs already.
"""

from __future__ import annotations

import logging

import pytest
from taskiq import InMemoryBroker

from taskflow.features.tasks.models import TaskStatus
from taskflow.features.tasks.service import TaskLifecycleService
from taskflow.infra.tasks.jobs import Job
from taskflow.infra.tasks.queue import TaskiqJobQueue
from taskflow.workers.tasks.runtime import build_worker
from taskflow.workers.tasks.scanner import OverdueScanner


@pytest.fixture
async def pipeline(session_factory):
    """Broker, queue, service and worker wired like the worker process."""
    broker = InMemoryBroker(await_inplace=True)
    queue = TaskiqJobQueue(broker, queue_name="task-processing", max_retries=0)
    worker = build_worker(session_factory, queue)
    results: list[tuple[Job, dict]] = []

    async def consume(job: Job) -> dict:
        result = await worker.process(job)
        results.append((job, result))
        return result

    queue.register_consumer(consume)
    await broker.startup()
    try:
        yield TaskLifecycleService(session_factory, queue), queue, results
    finally:
        await broker.shutdown()


@pytest.mark.integration
class TestJobFlow:
    @pytest.mark.asyncio
    async def test_create_and_complete(self, pipeline) -> None:
        service, _, results = pipeline

        task = await service.create({"title": "Ship it"})
        completed = await service.update(task.id, {"status": "COMPLETED"})
        await service.update(task.id, {"status": "COMPLETED"})

        assert [job.kind for job, _ in results] == ["task-status-update", "task-status-update"]
        assert [result for _, result in results] == [
            {"success": True, "taskId": str(task.id), "newStatus": "PENDING"},
            {"success": True, "taskId": str(task.id), "newStatus": "COMPLETED"},
        ]
        current = await service.find_one(task.id)
        assert current.status is TaskStatus.COMPLETED
        assert current.revision == completed.revision

    @pytest.mark.asyncio
    async def test_overdue_scan_notifies(self, pipeline, session_factory, past, caplog) -> None:
        service, queue, results = pipeline
        task = await service.create({"title": "Late report", "due_date": past})
        results.clear()

        with caplog.at_level(logging.WARNING):
            scan = await OverdueScanner(session_factory, queue).scan_once()

        assert (scan.found, scan.enqueued) == (1, 1)
        assert results[0][0].payload == {"taskId": str(task.id)}
        assert results[0][1] == {"success": True, "processed": 1, "failed": 0}
        assert "TASK OVERDUE" in caplog.text

"""Tests for JobWorker."""

from __future__ import annotations

import asyncio
import logging
import uuid
from unittest.mock import AsyncMock, MagicMock

import pytest

from taskflow.features.tasks.models import TaskStatus
from taskflow.features.tasks.service import TaskLifecycleService
from taskflow.infra.tasks.jobs import Job, JobKind
from taskflow.workers.tasks.worker import INVALID_JOB_DATA, UNKNOWN_JOB_TYPE, JobWorker


class RecordingNotifier:
    """Notifier that fails for the titles it is told to."""

    def __init__(self, failing_titles: set[str] | None = None) -> None:
        self.failing_titles = failing_titles or set()
        self.notified: list[str] = []

    async def notify(self, task) -> None:
        if task.title in self.failing_titles:
            raise ConnectionError(f"cannot reach {task.title}")
        self.notified.append(task.title)


def _job(kind: JobKind | str, payload: dict, attempt: int = 1) -> Job:
    raw = kind.value if isinstance(kind, JobKind) else kind
    return Job(id=f"job-{uuid.uuid4().hex[:8]}", kind=raw, payload=payload, attempt=attempt)


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def dead_letters() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def worker(service, notifier, dead_letters) -> JobWorker:
    return JobWorker(service, notifier, dead_letters=dead_letters, concurrency=2)


@pytest.mark.unit
class TestRegistry:
    def test_builtin_handlers_registered(self, worker) -> None:
        assert worker.registered_kinds == frozenset(JobKind)

    def test_duplicate_registration_rejected(self, worker) -> None:
        with pytest.raises(ValueError, match="already registered"):
            worker.register(JobKind.STATUS_UPDATE, AsyncMock())

    def test_unknown_kind_rejected(self, service, notifier) -> None:
        worker = JobWorker(service, notifier, register_builtin_handlers=False)

        with pytest.raises(ValueError, match="Unknown job kind"):
            worker.register("send-email", AsyncMock())

    @pytest.mark.asyncio
    async def test_custom_handler_by_wire_name(self, service, notifier) -> None:
        worker = JobWorker(service, notifier, register_builtin_handlers=False)
        handler = AsyncMock(return_value={"success": True})
        worker.register("overdue-tasks-notification", handler)
        job = _job(JobKind.OVERDUE_NOTIFICATION, {})

        assert await worker.process(job) == {"success": True}
        handler.assert_awaited_once_with(job)

    def test_concurrency_must_be_positive(self, service, notifier) -> None:
        with pytest.raises(ValueError):
            JobWorker(service, notifier, concurrency=0)


@pytest.mark.unit
class TestStatusUpdate:
    @pytest.mark.asyncio
    async def test_reapplies_status(self, worker, make_task) -> None:
        task = await make_task()

        result = await worker.process(
            _job(JobKind.STATUS_UPDATE, {"taskId": str(task.id), "status": "PENDING", "revision": 1})
        )

        assert result == {"success": True, "taskId": str(task.id), "newStatus": "PENDING"}

    @pytest.mark.asyncio
    async def test_applies_new_status_without_revision(self, worker, service, make_task) -> None:
        task = await make_task()

        result = await worker.process(_job(JobKind.STATUS_UPDATE, {"taskId": str(task.id), "status": "IN_PROGRESS"}))

        assert result["newStatus"] == "IN_PROGRESS"
        assert (await service.find_one(task.id)).status is TaskStatus.IN_PROGRESS

    @pytest.mark.asyncio
    async def test_stale_revision_is_acknowledged_without_mutation(self, worker, service, job_queue, make_task) -> None:
        task = await make_task()
        await service.update_status(task.id, TaskStatus.COMPLETED)
        job_queue.submitted.clear()

        result = await worker.process(
            _job(JobKind.STATUS_UPDATE, {"taskId": str(task.id), "status": "PENDING", "revision": 1})
        )

        assert result == {"success": True, "stale": True, "taskId": str(task.id), "newStatus": "COMPLETED"}
        current = await service.find_one(task.id)
        assert current.status is TaskStatus.COMPLETED
        assert current.revision == 2
        assert job_queue.submitted == []

    @pytest.mark.asyncio
    async def test_update_committed_after_dispatch_is_not_reverted(
        self, session_factory, job_queue, notifier, make_task
    ) -> None:
        class InterleavingService(TaskLifecycleService):
            """Commits a user update just before the first status write takes its lock."""

            interleaved = False

            async def apply_status(self, task_id, status, *, expected_revision=None):
                if not self.interleaved:
                    self.interleaved = True
                    await self.update(task_id, {"status": "COMPLETED"})
                return await super().apply_status(task_id, status, expected_revision=expected_revision)

        task = await make_task()
        service = InterleavingService(session_factory, job_queue)
        worker = JobWorker(service, notifier)

        result = await worker.process(
            _job(JobKind.STATUS_UPDATE, {"taskId": str(task.id), "status": "IN_PROGRESS", "revision": 1})
        )

        assert result == {"success": True, "stale": True, "taskId": str(task.id), "newStatus": "COMPLETED"}
        assert job_queue.submitted == [
            (JobKind.STATUS_UPDATE, {"taskId": str(task.id), "status": "COMPLETED", "revision": 2})
        ]

        kind, payload = job_queue.submitted[0]
        follow_up = await worker.process(_job(kind, payload))

        assert follow_up == {"success": True, "taskId": str(task.id), "newStatus": "COMPLETED"}
        current = await service.find_one(task.id)
        assert current.status is TaskStatus.COMPLETED
        assert current.revision == 2

    @pytest.mark.parametrize(
        "payload",
        [
            {},
            {"status": "PENDING"},
            {"taskId": "not-a-uuid", "status": "PENDING"},
            {"taskId": str(uuid.uuid4())},
        ],
    )
    @pytest.mark.asyncio
    async def test_invalid_payload_is_handled_failure(self, worker, payload) -> None:
        result = await worker.process(_job(JobKind.STATUS_UPDATE, payload))

        assert result == {"success": False, "error": INVALID_JOB_DATA}

    @pytest.mark.asyncio
    async def test_vanished_task(self, worker) -> None:
        task_id = str(uuid.uuid4())

        result = await worker.process(_job(JobKind.STATUS_UPDATE, {"taskId": task_id, "status": "COMPLETED"}))

        assert result["success"] is False
        assert result["taskId"] == task_id
        assert "not found" in result["error"]

    @pytest.mark.asyncio
    async def test_status_outside_enum(self, worker, make_task) -> None:
        task = await make_task()

        result = await worker.process(_job(JobKind.STATUS_UPDATE, {"taskId": str(task.id), "status": "ARCHIVED"}))

        assert result == {"success": False, "taskId": str(task.id), "error": "Invalid status: ARCHIVED"}

    @pytest.mark.asyncio
    async def test_unexpected_error_is_reraised(self, notifier, caplog) -> None:
        service = MagicMock()
        service.apply_status = AsyncMock(side_effect=RuntimeError("connection reset"))
        worker = JobWorker(service, notifier)

        with pytest.raises(RuntimeError):
            await worker.process(_job(JobKind.STATUS_UPDATE, {"taskId": str(uuid.uuid4()), "status": "PENDING"}))

        assert "Status update job failed" in caplog.text


@pytest.mark.unit
class TestOverdueNotification:
    @pytest.mark.asyncio
    async def test_partial_failure_still_succeeds(self, service, make_task, past) -> None:
        for title in ("one", "two", "three"):
            await make_task(title=title, due_date=past)
        notifier = RecordingNotifier(failing_titles={"two"})
        worker = JobWorker(service, notifier)

        result = await worker.process(_job(JobKind.OVERDUE_NOTIFICATION, {}))

        assert result == {"success": True, "processed": 3, "failed": 1}
        assert sorted(notifier.notified) == ["one", "three"]

    @pytest.mark.asyncio
    async def test_single_task_payload(self, worker, notifier, make_task, past) -> None:
        target = await make_task(title="target", due_date=past)
        await make_task(title="other", due_date=past)

        result = await worker.process(_job(JobKind.OVERDUE_NOTIFICATION, {"taskId": str(target.id)}))

        assert result == {"success": True, "processed": 1, "failed": 0}
        assert notifier.notified == ["target"]

    @pytest.mark.asyncio
    async def test_task_no_longer_overdue_is_skipped(self, worker, service, notifier, make_task, past) -> None:
        task = await make_task(due_date=past)
        await service.update_status(task.id, TaskStatus.COMPLETED)

        result = await worker.process(_job(JobKind.OVERDUE_NOTIFICATION, {"taskId": str(task.id)}))

        assert result == {"success": True, "processed": 0, "failed": 0}
        assert notifier.notified == []

    @pytest.mark.asyncio
    async def test_invalid_task_id(self, worker) -> None:
        result = await worker.process(_job(JobKind.OVERDUE_NOTIFICATION, {"taskId": "nope"}))

        assert result == {"success": False, "error": INVALID_JOB_DATA}

    @pytest.mark.asyncio
    async def test_invalid_payload_is_logged(self, worker, notifier, caplog) -> None:
        with caplog.at_level(logging.WARNING):
            await worker.process(_job(JobKind.OVERDUE_NOTIFICATION, {"taskId": "nope"}))

        record = next(r for r in caplog.records if r.getMessage() == "Invalid overdue notification job data")
        assert record.levelno == logging.WARNING
        assert record.payload == {"taskId": "nope"}
        assert notifier.notified == []

    @pytest.mark.asyncio
    async def test_concurrency_is_bounded(self) -> None:
        tasks = [MagicMock(id=uuid.uuid4(), title=str(i)) for i in range(6)]
        service = MagicMock()
        service.get_overdue_tasks = AsyncMock(return_value=tasks)
        in_flight = peak = 0

        class SlowNotifier:
            async def notify(self, task) -> None:
                nonlocal in_flight, peak
                in_flight += 1
                peak = max(peak, in_flight)
                await asyncio.sleep(0.01)
                in_flight -= 1

        worker = JobWorker(service, SlowNotifier(), concurrency=2)

        result = await worker.process(_job(JobKind.OVERDUE_NOTIFICATION, {}))

        assert result == {"success": True, "processed": 6, "failed": 0}
        assert peak == 2
        service.get_overdue_tasks.assert_awaited_once_with(task_id=None)


@pytest.mark.unit
class TestUnknownKind:
    @pytest.mark.asyncio
    async def test_dead_lettered_and_not_raised(self, worker, dead_letters) -> None:
        job = _job("send-email", {"to": "x"})

        result = await worker.process(job)

        assert result == {"success": False, "error": UNKNOWN_JOB_TYPE}
        dead_letters.record.assert_awaited_once_with(job, UNKNOWN_JOB_TYPE)

    @pytest.mark.asyncio
    async def test_without_dead_letter_store(self, service, notifier) -> None:
        worker = JobWorker(service, notifier)

        assert await worker.process(_job("send-email", {})) == {"success": False, "error": UNKNOWN_JOB_TYPE}

    @pytest.mark.asyncio
    async def test_dead_letter_failure_is_logged(self, worker, dead_letters, caplog) -> None:
        dead_letters.record.side_effect = ConnectionError("redis down")

        result = await worker.process(_job("send-email", {}))

        assert result["success"] is False
        assert "Failed to dead-letter job" in caplog.text

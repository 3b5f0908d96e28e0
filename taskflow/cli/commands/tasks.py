"""Task and job queue commands.

Jobs are produced through the same broker the workers consume from; with
RabbitMQ disabled they run inside this process.
"""

from __future__ import annotations

import json
import sys
from datetime import datetime

import click

from taskflow.cli.utils import coro, error, header, info, print_table, success, warning


@click.group(name="tasks")
def tasks() -> None:
    """Task lifecycle and job commands."""


@tasks.command(name="list")
@click.option("--status", type=click.Choice(["PENDING", "IN_PROGRESS", "COMPLETED"]), default=None)
@click.option("--priority", type=click.Choice(["LOW", "MEDIUM", "HIGH"]), default=None)
@click.option("--search", default=None, help="Match title or description")
@click.option("--page", type=int, default=1, show_default=True)
@click.option("--limit", type=int, default=10, show_default=True)
@coro
async def list_tasks(status: str | None, priority: str | None, search: str | None, page: int, limit: int) -> None:
    """List tasks, newest first."""
    from taskflow.features.tasks.schemas import TaskFilter
    from taskflow.features.tasks.service import TaskLifecycleService
    from taskflow.infra.database import close_database, get_session_factory
    from taskflow.workers.tasks.runtime import queue

    service = TaskLifecycleService(get_session_factory(), queue)
    try:
        result = await service.find_all(
            TaskFilter(status=status, priority=priority, search=search, page=page, limit=limit)
        )
    except Exception as e:
        error(f"Failed to list tasks: {e}")
        sys.exit(1)
    finally:
        await close_database()

    header(f"Tasks (page {result.page}/{max(result.pages, 1)}, total {result.total})")
    if not result.items:
        info("No tasks found")
        return
    print_table(
        ["ID", "STATUS", "PRIORITY", "DUE", "TITLE"],
        (
            [
                task.id,
                task.status.value,
                task.priority.value,
                task.due_date.isoformat() if task.due_date else "-",
                task.title,
            ]
            for task in result.items
        ),
    )


@tasks.command(name="scan-overdue")
@click.option(
    "--as-of",
    type=click.DateTime(formats=["%Y-%m-%dT%H:%M:%S%z", "%Y-%m-%dT%H:%M:%S"]),
    default=None,
    help="Reference time (default: now, UTC)",
)
@coro
async def scan_overdue(as_of: datetime | None) -> None:
    """Run one overdue scan and enqueue notification jobs."""
    from datetime import UTC

    from taskflow.infra.database import close_database, get_session_factory
    from taskflow.infra.tasks.broker import start_broker, stop_broker
    from taskflow.workers.tasks.runtime import broker, queue
    from taskflow.workers.tasks.scanner import OverdueScanner

    if as_of is not None and as_of.tzinfo is None:
        as_of = as_of.replace(tzinfo=UTC)

    await start_broker(broker)
    try:
        result = await OverdueScanner(get_session_factory(), queue).scan_once(as_of=as_of)
    except Exception as e:
        error(f"Overdue scan failed: {e}")
        sys.exit(1)
    finally:
        await stop_broker(broker)
        await close_database()

    info(f"Overdue tasks found: {result.found}")
    success(f"Jobs enqueued: {result.enqueued}")
    if result.failed:
        warning(f"Jobs failed to enqueue: {result.failed}")


@tasks.command(name="submit")
@click.argument("kind")
@click.option("--payload", default="{}", help="JSON payload")
@coro
async def submit(kind: str, payload: str) -> None:
    """Submit a raw job (KIND is a job name such as overdue-tasks-notification)."""
    from taskflow.infra.tasks.broker import start_broker, stop_broker
    from taskflow.infra.tasks.jobs import JobKind
    from taskflow.workers.tasks.runtime import broker, queue

    parsed = JobKind.parse(kind)
    if parsed is None:
        error(f"Unknown job kind: {kind}")
        sys.exit(1)
    try:
        data = json.loads(payload)
    except json.JSONDecodeError as e:
        error(f"Invalid JSON payload: {e}")
        sys.exit(1)

    await start_broker(broker)
    try:
        job_id = await queue.submit(parsed, data)
    except Exception as e:
        error(f"Failed to submit job: {e}")
        sys.exit(1)
    finally:
        await stop_broker(broker)
    success(f"Submitted {parsed.value} job {job_id}")

"""APScheduler integration for the overdue scan.

The scanner itself has no timer; APScheduler decides WHEN ``scan_once``
runs and the scan feeds the job queue, whose workers decide HOW the
resulting jobs are executed.

Architecture:
    APScheduler (cron) → OverdueScanner.scan_once() → JobQueue.submit() → Taskiq worker
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from apscheduler.schedulers.asyncio import AsyncIOScheduler  # type: ignore[import-untyped]
from apscheduler.triggers.cron import CronTrigger  # type: ignore[import-untyped]

from taskflow.core.settings import TaskSettings, get_task_settings

if TYPE_CHECKING:
    from taskflow.workers.tasks.scanner import OverdueScanner

logger = logging.getLogger(__name__)

OVERDUE_SCAN_JOB_ID = "overdue_task_scan"


def create_scheduler() -> AsyncIOScheduler:
    """Build an AsyncIOScheduler with conservative job defaults."""
    return AsyncIOScheduler(
        timezone="UTC",
        job_defaults={
            "coalesce": True,  # Combine multiple pending executions into one
            "max_instances": 1,  # Only one instance of each job at a time
            "misfire_grace_time": 60,
        },
    )


def setup_scheduled_jobs(
    scheduler: AsyncIOScheduler,
    scanner: OverdueScanner,
    task_settings: TaskSettings | None = None,
) -> bool:
    """Register the overdue scan on ``scheduler``.

    Returns:
        True if the job was registered, False if the scan is disabled
    """
    task_settings = task_settings or get_task_settings()
    if not task_settings.overdue_scan_enabled:
        logger.warning("Overdue scan disabled, skipping job scheduling")
        return False

    scheduler.add_job(
        func=_run_scan,
        args=[scanner],
        trigger=CronTrigger.from_crontab(task_settings.overdue_scan_cron, timezone="UTC"),
        id=OVERDUE_SCAN_JOB_ID,
        name="Scan for overdue tasks",
        replace_existing=True,
        coalesce=True,
        max_instances=1,
    )
    logger.info(
        "Overdue scan scheduled",
        extra={"cron": task_settings.overdue_scan_cron, "job_id": OVERDUE_SCAN_JOB_ID},
    )
    return True


async def _run_scan(scanner: OverdueScanner) -> None:
    try:
        await scanner.scan_once()
    except Exception:
        logger.exception("Scheduled overdue scan failed", extra={"job_id": OVERDUE_SCAN_JOB_ID})
        raise


def start_scheduler(scheduler: AsyncIOScheduler) -> None:
    """Start the scheduler; must be called with a running event loop."""
    if scheduler.running:
        logger.warning("APScheduler is already running")
        return
    scheduler.start()
    logger.info("APScheduler started", extra={"jobs": len(scheduler.get_jobs())})


def stop_scheduler(scheduler: AsyncIOScheduler) -> None:
    """Stop the scheduler gracefully."""
    if scheduler.running:
        scheduler.shutdown(wait=True)
        logger.info("APScheduler stopped")
    else:
        logger.debug("APScheduler is not running")


def get_job_status(scheduler: AsyncIOScheduler) -> list[dict[str, Any]]:
    """Describe the registered jobs (id, name, next run)."""
    return [
        {
            "id": job.id,
            "name": job.name,
            "next_run_time": job.next_run_time.isoformat() if getattr(job, "next_run_time", None) else None,
            "trigger": str(job.trigger),
        }
        for job in scheduler.get_jobs()
    ]

"""Scheduler commands."""

from __future__ import annotations

import asyncio
import json
import signal

import click

from taskflow.cli.utils import coro, header, info, success, warning


@click.group(name="scheduler")
def scheduler() -> None:
    """Scheduled job management commands."""


@scheduler.command(name="run")
@coro
async def run() -> None:
    """Run the overdue-scan scheduler until interrupted."""
    from taskflow.infra.database import close_database, get_session_factory
    from taskflow.infra.tasks.broker import start_broker, stop_broker
    from taskflow.infra.tasks.scheduler import (
        create_scheduler,
        setup_scheduled_jobs,
        start_scheduler,
        stop_scheduler,
    )
    from taskflow.workers.tasks.runtime import broker, queue
    from taskflow.workers.tasks.scanner import OverdueScanner

    apscheduler = create_scheduler()
    if not setup_scheduled_jobs(apscheduler, OverdueScanner(get_session_factory(), queue)):
        warning("Overdue scan is disabled (TASK_OVERDUE_SCAN_ENABLED=false)")
        return

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop.set)

    await start_broker(broker)
    start_scheduler(apscheduler)
    success("Scheduler running, press Ctrl+C to stop")
    try:
        await stop.wait()
    finally:
        stop_scheduler(apscheduler)
        await stop_broker(broker)
        await close_database()
    info("Scheduler stopped")


@scheduler.command(name="list")
def list_jobs() -> None:
    """Show the jobs the scheduler would run."""
    from taskflow.infra.database import get_session_factory
    from taskflow.infra.tasks.scheduler import create_scheduler, get_job_status, setup_scheduled_jobs
    from taskflow.workers.tasks.runtime import queue
    from taskflow.workers.tasks.scanner import OverdueScanner

    apscheduler = create_scheduler()
    setup_scheduled_jobs(apscheduler, OverdueScanner(get_session_factory(), queue))
    header("Scheduled Jobs")
    jobs = get_job_status(apscheduler)
    if not jobs:
        info("No scheduled jobs found")
        return
    click.echo(json.dumps(jobs, indent=2))

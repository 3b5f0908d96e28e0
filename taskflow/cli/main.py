"""Main CLI entry point for taskflow management commands."""

import click

from taskflow import __version__
from taskflow.cli.commands import db, dlq, scheduler, tasks
from taskflow.infra.logging import setup_logging


@click.group()
@click.version_option(version=__version__, prog_name="taskflow")
@click.pass_context
def cli(ctx: click.Context) -> None:
    """Taskflow CLI - management commands for the task service.

    \b
    Command Groups:
      db         Database migrations and management
      tasks      Task listing and job submission
      scheduler  Periodic overdue scan
      dlq        Dead-lettered jobs

    \b
    Quick Start:
      taskflow db upgrade            # Apply migrations
      taskflow tasks scan-overdue    # Enqueue overdue notifications once
      taskflow scheduler run         # Scan on the configured cron
      taskiq worker taskflow.workers.tasks.runtime:broker
    """
    ctx.ensure_object(dict)


cli.add_command(db.db)
cli.add_command(tasks.tasks)
cli.add_command(scheduler.scheduler)
cli.add_command(dlq.dlq)

# One scan cycle is also exposed at the top level
cli.add_command(tasks.scan_overdue)


def main() -> None:
    """Entry point for CLI."""
    setup_logging()
    cli(obj={})


if __name__ == "__main__":
    main()

"""Dead-letter inspection commands."""

from __future__ import annotations

import json
import sys

import click

from taskflow.cli.utils import coro, error, header, info, print_table, warning


@click.group(name="dlq")
def dlq() -> None:
    """Inspect jobs the worker could not route."""


@dlq.command(name="list")
@click.option("--limit", type=int, default=50, show_default=True, help="Number of entries (newest first)")
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["table", "json"]),
    default="table",
    help="Output format",
)
@coro
async def list_entries(limit: int, output_format: str) -> None:
    """List dead-lettered jobs."""
    from taskflow.infra.tasks.dead_letter import create_dead_letter_store

    store = create_dead_letter_store()
    if store is None:
        warning("Dead-letter store is not configured (set REDIS_URL)")
        return
    try:
        entries = await store.list_entries(limit)
        total = await store.count()
    except Exception as e:
        error(f"Failed to read dead letters: {e}")
        sys.exit(1)
    finally:
        await store.close()

    if output_format == "json":
        click.echo(
            json.dumps(
                [
                    {
                        "job_id": entry.job_id,
                        "kind": entry.kind,
                        "payload": entry.payload,
                        "attempt": entry.attempt,
                        "reason": entry.reason,
                        "failed_at": entry.failed_at.isoformat(),
                    }
                    for entry in entries
                ],
                indent=2,
            )
        )
        return

    header(f"Dead letters ({len(entries)} of {total})")
    if not entries:
        info("No dead-lettered jobs")
        return
    print_table(
        ["FAILED AT", "JOB ID", "KIND", "ATTEMPT", "REASON"],
        ([e.failed_at.isoformat(), e.job_id, e.kind, e.attempt, e.reason] for e in entries),
    )

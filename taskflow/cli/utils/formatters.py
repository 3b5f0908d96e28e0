"""Console output for CLI commands.

Status lines carry a symbol and colour. Errors go to stderr, which keeps
stdout clean for the commands that emit machine-readable output, such as
``dlq list --format json``.
"""

from collections.abc import Iterable, Sequence

import click

_STATUS = {
    "success": ("✓", "green"),
    "error": ("✗", "red"),
    "warning": ("⚠", "yellow"),
    "info": ("ℹ", "blue"),
}


def _status(kind: str, message: str) -> None:
    symbol, colour = _STATUS[kind]
    click.secho(f"{symbol} {message}", fg=colour, err=kind == "error")


def success(message: str) -> None:
    _status("success", message)


def error(message: str) -> None:
    _status("error", message)


def warning(message: str) -> None:
    _status("warning", message)


def info(message: str) -> None:
    _status("info", message)


def header(message: str) -> None:
    click.secho(f"\n{message}", fg="cyan", bold=True)


def print_table(columns: Sequence[str], rows: Iterable[Sequence[object]]) -> None:
    """Print ``rows`` left-aligned under ``columns``; the last column is not padded."""
    cells = [[str(value) for value in row] for row in rows]
    widths = [max([len(name), *(len(row[i]) for row in cells)]) for i, name in enumerate(columns)]

    def line(values: Sequence[str]) -> str:
        padded = [value.ljust(width) for value, width in zip(values[:-1], widths[:-1], strict=True)]
        return "  ".join([*padded, values[-1]])

    click.secho(line(columns), bold=True)
    for row in cells:
        click.echo(line(row))

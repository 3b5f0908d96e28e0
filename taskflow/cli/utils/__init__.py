"""Helpers shared by the CLI commands."""

from taskflow.cli.utils.async_runner import coro
from taskflow.cli.utils.formatters import error, header, info, print_table, success, warning

__all__ = ["coro", "error", "header", "info", "print_table", "success", "warning"]

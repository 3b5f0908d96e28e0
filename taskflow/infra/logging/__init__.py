"""Logging infrastructure.

Structured logging with:
- JSONL format for Loki/Elasticsearch ingestion
- Automatic context injection (job_id, task_id, ...)
- QueueHandler + QueueListener for non-blocking I/O
- Lazy evaluation for expensive debug output
- OpenTelemetry trace correlation

Basic usage:
    import logging

    from taskflow.infra.logging import log_context, setup_logging

    setup_logging()
    logger = logging.getLogger(__name__)

    with log_context(job_id="abc-123"):
        logger.info("Processing job")  # includes job_id
"""

from taskflow.infra.logging.config import configure_logging, setup_logging, shutdown
from taskflow.infra.logging.context import (
    ContextInjectingFilter,
    clear_log_context,
    get_log_context,
    log_context,
    remove_from_log_context,
    set_log_context,
)
from taskflow.infra.logging.formatters import JSONFormatter
from taskflow.infra.logging.lazy import LazyLoggerAdapter, get_lazy_logger

__all__ = [
    "ContextInjectingFilter",
    "JSONFormatter",
    "LazyLoggerAdapter",
    "clear_log_context",
    "configure_logging",
    "get_lazy_logger",
    "get_log_context",
    "log_context",
    "remove_from_log_context",
    "set_log_context",
    "setup_logging",
    "shutdown",
]

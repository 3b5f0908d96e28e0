"""Process-wide logging setup.

The root logger gets a single ``QueueHandler``; the console and file
handlers sit behind a ``QueueListener`` thread so that a slow stderr or
disk never stalls the worker's event loop.
"""

from __future__ import annotations

import atexit
import logging
import logging.config
from logging.handlers import QueueHandler, QueueListener, RotatingFileHandler
from queue import SimpleQueue
from typing import TYPE_CHECKING

from taskflow.infra.logging.context import ContextInjectingFilter
from taskflow.infra.logging.formatters import JSONFormatter

if TYPE_CHECKING:
    from taskflow.core.settings.logs import LoggingSettings

TEXT_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"

_listener: QueueListener | None = None
_queue_handler: QueueHandler | None = None
_configured = False


def setup_logging(settings: LoggingSettings | None = None, *, force: bool = False) -> None:
    """Configure logging once per process; later calls are no-ops unless ``force``."""
    global _configured

    if _configured and not force:
        return
    if settings is None:
        from taskflow.core.settings import get_logging_settings

        settings = get_logging_settings()
    configure_logging(settings)
    _configured = True


def configure_logging(settings: LoggingSettings) -> None:
    """(Re)build the handler chain described by ``settings``."""
    shutdown()
    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "root": {"level": settings.level, "handlers": []},
        }
    )
    logging.captureWarnings(settings.capture_warnings)

    formatter: logging.Formatter
    if settings.json_logs:
        formatter = JSONFormatter(static={"service": settings.service_name})
    else:
        formatter = logging.Formatter(TEXT_FORMAT)

    handlers: list[logging.Handler] = []
    if settings.console_enabled:
        handlers.append(logging.StreamHandler())
    if (path := settings.effective_file_path) is not None:
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            RotatingFileHandler(
                path,
                maxBytes=settings.file_max_bytes,
                backupCount=settings.file_backup_count,
                encoding="utf-8",
            )
        )
    for handler in handlers:
        handler.setFormatter(formatter)

    if handlers:
        _install_queue(handlers, include_context=settings.include_context)


def _install_queue(handlers: list[logging.Handler], *, include_context: bool) -> None:
    global _listener, _queue_handler

    records: SimpleQueue[logging.LogRecord] = SimpleQueue()
    _listener = QueueListener(records, *handlers, respect_handler_level=True)
    _listener.start()
    atexit.register(shutdown)

    _queue_handler = QueueHandler(records)
    # Handler filters run in the calling thread, where the contextvars are visible.
    if include_context:
        _queue_handler.addFilter(ContextInjectingFilter())
    logging.getLogger().addHandler(_queue_handler)


def shutdown() -> None:
    """Flush and detach the queue; safe to call repeatedly."""
    global _listener, _queue_handler

    if _listener is not None:
        _listener.stop()
        _listener = None
    if _queue_handler is not None:
        logging.getLogger().removeHandler(_queue_handler)
        _queue_handler = None

"""JSON Lines formatter with OpenTelemetry trace correlation."""
from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from typing import Any

from opentelemetry import trace

# Attributes every LogRecord has; anything else arrived through ``extra=``
# or the log context filter and is copied into the payload.
_STANDARD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime", "taskName"}


class JSONFormatter(logging.Formatter):
    """One JSON object per record, UTC millisecond timestamps.

    The payload holds ``timestamp``, ``level``, ``logger`` and ``message``,
    the static fields, ``trace_id``/``span_id`` while a span is active,
    and every ``extra=`` field (``operation``, ``task_id``, ``job_id`` ...).

    Example output:
        {"timestamp": "2026-10-19T12:00:00.123Z", "level": "INFO", "logger": "JobWorker",
         "message": "Job processed", "job_id": "abc", "operation": "worker.process"}
    """

    def __init__(self, static: dict[str, Any] | None = None) -> None:
        super().__init__()
        self.static = dict(static or {})

    def format(self, record: logging.LogRecord) -> str:
        data: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC)
            .isoformat(timespec="milliseconds")
            .replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        span_context = trace.get_current_span().get_span_context()
        if span_context.is_valid:
            data["trace_id"] = format(span_context.trace_id, "032x")
            data["span_id"] = format(span_context.span_id, "016x")

        if record.exc_info:
            data["exception"] = self.formatException(record.exc_info)
        if record.stack_info:
            data["stack_trace"] = self.formatStack(record.stack_info)

        data.update(self.static)
        for key, value in vars(record).items():
            if key not in _STANDARD_ATTRS and key not in data:
                data[key] = value

        # json.dumps escapes embedded newlines, keeping one record per line.
        return json.dumps(data, ensure_ascii=False, default=str)

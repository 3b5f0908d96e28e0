"""Tests for the logging infrastructure."""

from __future__ import annotations

import json
import logging
from logging.handlers import QueueHandler
from unittest.mock import MagicMock

import pytest

from taskflow.core.settings.logs import LoggingSettings
from taskflow.infra.logging import (
    ContextInjectingFilter,
    clear_log_context,
    configure_logging,
    get_lazy_logger,
    get_log_context,
    log_context,
    remove_from_log_context,
    set_log_context,
    shutdown,
)
from taskflow.infra.logging.formatters import JSONFormatter


def _record(msg: str = "hello", **extra) -> logging.LogRecord:
    record = logging.LogRecord("taskflow.test", logging.INFO, __file__, 10, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.fixture(autouse=True)
def _reset_context():
    clear_log_context()
    yield
    clear_log_context()


@pytest.mark.unit
class TestLogContext:
    def test_set_and_remove(self) -> None:
        set_log_context(job_id="j1", task_id="t1")
        remove_from_log_context("task_id")

        assert get_log_context() == {"job_id": "j1"}

    def test_context_manager_restores_previous(self) -> None:
        set_log_context(service="worker")

        with log_context(job_id="j2"):
            assert get_log_context() == {"service": "worker", "job_id": "j2"}

        assert get_log_context() == {"service": "worker"}

    def test_filter_injects_without_overwriting(self) -> None:
        record = _record(job_id="explicit")

        with log_context(job_id="from-context", job_kind="STATUS_UPDATE"):
            assert ContextInjectingFilter().filter(record) is True

        assert record.job_id == "explicit"
        assert record.job_kind == "STATUS_UPDATE"


@pytest.mark.unit
class TestJSONFormatter:
    def test_format_includes_extra_and_static(self) -> None:
        formatter = JSONFormatter(static={"service": "taskflow"})

        data = json.loads(formatter.format(_record("Job processed", job_id="abc", attempt=2)))

        assert data["message"] == "Job processed"
        assert data["level"] == "INFO"
        assert data["logger"] == "taskflow.test"
        assert data["service"] == "taskflow"
        assert data["job_id"] == "abc"
        assert data["attempt"] == 2
        assert data["timestamp"].endswith("Z")
        assert "trace_id" not in data

    def test_non_serializable_extra_is_stringified(self) -> None:
        data = json.loads(JSONFormatter().format(_record(payload={1, 2})))

        assert isinstance(data["payload"], str)


@pytest.mark.unit
class TestLazyLogger:
    def test_callable_not_evaluated_when_disabled(self) -> None:
        base = logging.getLogger("taskflow.test.lazy")
        base.setLevel(logging.INFO)
        expensive = MagicMock(return_value="never")

        get_lazy_logger(base).debug(expensive)

        expensive.assert_not_called()

    def test_callable_evaluated_when_enabled(self, caplog) -> None:
        logger = get_lazy_logger("taskflow.test.lazy_enabled", component="worker")

        with caplog.at_level(logging.DEBUG, logger="taskflow.test.lazy_enabled"):
            logger.debug(lambda: "computed", extra={"job_id": "j"})

        record = caplog.records[-1]
        assert record.getMessage() == "computed"
        assert record.component == "worker"
        assert record.job_id == "j"


@pytest.mark.unit
class TestConfigureLogging:
    def test_installs_queue_handler_and_shutdown_removes_it(self) -> None:
        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        try:
            configure_logging(LoggingSettings(level="WARNING", capture_warnings=False))

            queue_handlers = [h for h in root.handlers if isinstance(h, QueueHandler)]
            assert len(queue_handlers) == 1
            assert any(isinstance(f, ContextInjectingFilter) for f in queue_handlers[0].filters)
            assert root.level == logging.WARNING

            shutdown()

            assert not any(isinstance(h, QueueHandler) for h in root.handlers)
        finally:
            shutdown()
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)

"""Deferred log messages.

Job payload dumps and row reprs are only worth building when DEBUG is on,
so callers hand the adapter a zero-argument callable instead of a string.
"""

from __future__ import annotations

import logging
from collections.abc import MutableMapping
from typing import Any


def _resolve(value: Any) -> Any:
    return value() if callable(value) else value


class LazyLoggerAdapter(logging.LoggerAdapter):
    """Adapter that resolves callable messages and args once the level is enabled.

    Fields passed at construction are bound to every record and merged with
    the per-call ``extra``; per-call keys win.

    Example:
        lazy = get_lazy_logger(__name__, component="worker")
        lazy.debug(lambda: f"payload={dict(job.payload)}")
    """

    def log(self, level: int, msg: Any, *args: Any, **kwargs: Any) -> None:
        if not self.isEnabledFor(level):
            return
        super().log(level, _resolve(msg), *(_resolve(arg) for arg in args), **kwargs)

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> tuple[Any, MutableMapping[str, Any]]:
        if self.extra:
            kwargs["extra"] = {**self.extra, **(kwargs.get("extra") or {})}
        return msg, kwargs


def get_lazy_logger(name: str | logging.Logger, **context: Any) -> LazyLoggerAdapter:
    """Wrap ``name`` (a logger or logger name) in a ``LazyLoggerAdapter``."""
    logger = name if isinstance(name, logging.Logger) else logging.getLogger(name)
    return LazyLoggerAdapter(logger, context)

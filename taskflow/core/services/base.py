"""Base service class for business logic."""

from __future__ import annotations

import logging

from taskflow.infra.logging import get_lazy_logger


class BaseService:
    """Base class for service classes.

    Loggers:
        - self.logger: Standard logger for INFO/WARNING/ERROR
        - self._lazy: Lazy logger for DEBUG (zero overhead when DEBUG disabled)

    Both wrap the logger passed at construction, falling back to one named
    after the class.
    """

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self.logger = logger or logging.getLogger(self.__class__.__name__)
        self._lazy = get_lazy_logger(self.logger)

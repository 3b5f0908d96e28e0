"""Store-layer errors; the service translates them before they reach callers."""
from __future__ import annotations

from typing import Any


class RepositoryError(Exception):
    """A repository operation failed."""


class NotFoundError(RepositoryError):
    """No row matched ``identifier``."""

    def __init__(self, model_name: str, identifier: dict[str, Any]) -> None:
        self.model_name = model_name
        self.identifier = identifier
        keys = ", ".join(f"{k}={v!r}" for k, v in identifier.items())
        super().__init__(f"{model_name} not found with {keys}")


__all__ = ["NotFoundError", "RepositoryError"]

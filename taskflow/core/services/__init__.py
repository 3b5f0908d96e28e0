"""Service layer base classes."""

from taskflow.core.services.base import BaseService

__all__ = ["BaseService"]

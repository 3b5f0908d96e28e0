"""Application exception taxonomy.

Every error that crosses a component boundary (lifecycle service, job
queue, worker) is an ``AppException`` subclass carrying RFC 7807-style
problem fields. Callers map them to their own transport; no HTTP status is
attached here.
"""

from __future__ import annotations

from typing import Any


class AppException(Exception):
    """Base application exception.

    Attributes:
        detail: Human-readable error message.
        type: Error type identifier (RFC 7807 ``type``).
        title: Short, human-readable summary of the problem type.
        extra: Additional context-specific information about the error.

    Example:
        raise NotFoundException(
            detail="Task with ID abc123 not found",
            type="task-not-found",
            extra={"task_id": "abc123"},
        )
    """

    default_title = "Error"
    default_type = "about:blank"

    def __init__(
        self,
        detail: str,
        type: str | None = None,
        title: str | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        self.detail = detail
        self.type = type or self.default_type
        self.title = title or self.default_title
        self.extra = extra or {}
        super().__init__(detail)

    def to_problem(self) -> dict[str, Any]:
        """Render as an RFC 7807 problem mapping (without status)."""
        return {"type": self.type, "title": self.title, "detail": self.detail, **self.extra}


class NotFoundException(AppException):
    """A referenced resource does not exist."""

    default_title = "Not Found"
    default_type = "not-found"


class ConflictException(AppException):
    """The operation conflicts with the current state (e.g. referential constraints)."""

    default_title = "Conflict"
    default_type = "conflict"


class BadRequestException(AppException):
    """An argument is outside its allowed domain."""

    default_title = "Bad Request"
    default_type = "bad-request"


class InternalServerException(AppException):
    """An unexpected store failure.

    The detail is deliberately generic; the cause is logged where it is caught
    and never exposed to the caller.
    """

    default_title = "Internal Server Error"
    default_type = "internal-error"


class DispatchException(AppException):
    """A job could not be handed to the queue."""

    default_title = "Dispatch Failed"
    default_type = "dispatch-failed"

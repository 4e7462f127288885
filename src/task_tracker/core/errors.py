# src/task_tracker/core/errors.py

"""
Error taxonomy shared by the REST client and the data provider.

- ValidationError   400, never retried, shown to the user (with field issues)
- ConflictError     409, duplicate name (read-repaired) or in-use entity
- NotFoundError     404, benign for update/delete
- UnavailableError  network failure or 5xx
"""

from __future__ import annotations

from typing import Any


class TrackerError(Exception):
    """Base class for all task tracker errors."""


class BackendError(TrackerError):
    def __init__(self, status: int, message: str, body: Any = None) -> None:
        super().__init__(message)
        self.status = status
        self.message = message
        self.body = body

    def __repr__(self) -> str:
        return f"{type(self).__name__}(status={self.status}, message={self.message!r})"


class ValidationError(BackendError):
    @property
    def issues(self) -> list[dict[str, Any]]:
        if isinstance(self.body, dict) and isinstance(self.body.get("issues"), list):
            return [i for i in self.body["issues"] if isinstance(i, dict)]
        return []


class NotFoundError(BackendError):
    pass


class ConflictError(BackendError):
    @property
    def count(self) -> int | None:
        """Number of referencing tasks for in-use conflicts; None for duplicates."""
        if isinstance(self.body, dict) and self.body.get("count") is not None:
            try:
                return int(self.body["count"])
            except (TypeError, ValueError):
                return None
        return None


class UnavailableError(BackendError):
    """Transport failure (status 0) or a 5xx / unexpected response."""


class TaskValidationError(TrackerError):
    """Client-side validation failure; nothing was sent to the backend."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(message)
        self.field = field


class ResolutionError(TrackerError):
    """A name could not be resolved to an entity id."""

    def __init__(self, kind: str, name: str, message: str) -> None:
        super().__init__(message)
        self.kind = kind
        self.name = name


def error_for_status(status: int, message: str, body: Any = None) -> BackendError:
    if status == 400:
        return ValidationError(status, message, body)
    if status == 404:
        return NotFoundError(status, message, body)
    if status == 409:
        return ConflictError(status, message, body)
    return UnavailableError(status, message, body)


def friendly_error_message(err: BaseException) -> str:
    if isinstance(err, ValidationError):
        details = [
            f"{'.'.join(str(p) for p in i.get('path') or []) or 'input'}: {i.get('message')}"
            for i in err.issues
            if i.get("message")
        ]
        if details:
            return f"{err.message} ({'; '.join(details)})"
        return err.message
    if isinstance(err, ConflictError):
        if err.count is not None:
            noun = "task" if err.count == 1 else "tasks"
            return f"{err.message}: referenced by {err.count} {noun}."
        return err.message
    if isinstance(err, UnavailableError):
        if err.status == 0:
            return "Backend is unreachable. Check TASK_TRACKER_API_BASE_URL and try again."
        return f"Backend error: {err.message}"
    msg = str(err).strip()
    return msg or "Unknown error"

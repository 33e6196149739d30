# src/assignflow/core/errors.py

"""
Error kinds raised by the lifecycle engine.

Transport-agnostic: the surrounding service decides how to render them
(HTTP status, console text, ...). Every error carries a short `kind` tag and,
where it applies, the offending field name.
"""

from __future__ import annotations


class EngineError(Exception):
    kind = "error"
    retryable = False

    def __init__(self, message: str, *, field: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.field = field

    def __str__(self) -> str:
        if self.field:
            return f"{self.message} (field={self.field})"
        return self.message


class ValidationError(EngineError):
    """Malformed or missing input, or a transition refused by the task's status."""

    kind = "validation_error"


class NotFound(EngineError):
    kind = "not_found"


class Unauthorized(EngineError):
    kind = "unauthorized"


class Conflict(EngineError):
    """Stored task changed between load and save."""

    kind = "conflict"


class InternalError(EngineError):
    """Repository or collaborator failure; the only kind worth retrying."""

    kind = "internal_error"
    retryable = True

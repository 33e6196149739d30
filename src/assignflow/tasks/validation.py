# src/assignflow/tasks/validation.py

from __future__ import annotations

from datetime import date, datetime, time
from typing import Any

from ..core.clock import as_utc
from ..core.errors import ValidationError


def require_text(value: Any, field: str) -> str:
    """Return `value` trimmed; reject missing, non-string and blank input."""
    if value is None:
        raise ValidationError(f"{field} is required", field=field)
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be text", field=field)
    text = value.strip()
    if not text:
        raise ValidationError(f"{field} cannot be empty", field=field)
    return text


def require_task_id(raw: Any) -> int:
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise ValidationError("Invalid task ID format", field="task_id") from None


def parse_deadline(value: Any) -> datetime:
    """
    Accept a datetime, a date (midnight UTC) or an ISO-8601 string.
    Naive values are taken as UTC.
    """
    if value is None or value == "":
        raise ValidationError("deadline is required", field="deadline")

    if isinstance(value, datetime):
        return as_utc(value)

    if isinstance(value, date):
        return as_utc(datetime.combine(value, time.min))

    if isinstance(value, str):
        raw = value.strip()
        if raw.endswith("Z"):
            raw = raw[:-1] + "+00:00"
        try:
            return as_utc(datetime.fromisoformat(raw))
        except ValueError:
            raise ValidationError("Invalid deadline format", field="deadline") from None

    raise ValidationError("Invalid deadline format", field="deadline")


def require_future(deadline: datetime, now: datetime) -> datetime:
    if deadline <= now:
        raise ValidationError("Deadline must be in the future", field="deadline")
    return deadline

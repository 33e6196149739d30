# src/assignflow/core/clock.py

from __future__ import annotations

from datetime import datetime, timezone


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(ts: datetime) -> datetime:
    """Treat naive datetimes as UTC; convert aware ones."""
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


def from_epoch(ts: float | None) -> datetime | None:
    if ts is None:
        return None
    return datetime.fromtimestamp(float(ts), tz=timezone.utc)


def to_epoch(ts: datetime | None) -> float | None:
    if ts is None:
        return None
    return as_utc(ts).timestamp()


class SystemClock:
    def now(self) -> datetime:
        return utc_now()

# src/assignflow/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the lifecycle engine.

The engine depends on Protocols instead of concrete implementations.
This keeps storage and identity providers swappable and makes testing easier.
"""

from collections.abc import Callable
from datetime import datetime
from typing import Protocol

from ..tasks.task_models import Milestone, Task, User

TaskPredicate = Callable[[Task], bool]


class Clock(Protocol):
    """Source of "now" (aware UTC). Tests inject a fixed clock."""
    def now(self) -> datetime: ...


class UserDirectory(Protocol):
    def resolve_user(self, user_id: str) -> User | None: ...


class TaskRepo(Protocol):
    """
    Task persistence.

    save():
    - id is None  -> insert, repository assigns the id
    - otherwise   -> update; must raise Conflict if the stored version moved on
    Returns the stored snapshot (with the new version).
    """

    def load(self, task_id: int) -> Task | None: ...
    def save(self, task: Task) -> Task: ...
    def query(self, predicate: TaskPredicate | None = None) -> list[Task]: ...
    def delete(self, task_id: int) -> bool: ...


class MilestoneRepo(Protocol):
    def add_milestone(self, *, milestone: str, created_by: str, created_at: datetime) -> Milestone: ...
    def list_milestones(self) -> list[Milestone]: ...

# src/assignflow/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any


class TaskStatus(StrEnum):
    """
    Task lifecycle status.

    Values match the wire format of the assigner/receiver API
    ("inProgress" is camelCase on purpose).
    """

    PENDING = "pending"
    IN_PROGRESS = "inProgress"
    COMPLETED = "completed"
    APPROVED = "approved"

    @classmethod
    def from_db(cls, raw: str | None) -> TaskStatus:
        if not raw:
            return cls.PENDING
        try:
            return cls(raw)
        except ValueError:
            return cls.PENDING


class Action(StrEnum):
    CREATE = "create"
    ACCEPT = "accept"
    EDIT = "edit"
    REASSIGN = "reassign"
    MARK_COMPLETE = "markComplete"
    APPROVE_COMPLETION = "approveCompletion"
    DELETE = "delete"
    ADD_COMMENT = "addComment"
    READ_COMMENTS = "readComments"
    VIEW = "view"
    CREATE_MILESTONE = "createMilestone"


@dataclass(frozen=True, slots=True)
class User:
    id: str
    name: str
    email: str
    role: str


@dataclass(frozen=True, slots=True)
class Comment:
    content: str
    commented_by: str
    timestamp: datetime

    # Display fields, filled in when the directory resolves the commenter.
    commenter_name: str | None = None
    commenter_email: str | None = None


@dataclass(frozen=True, slots=True)
class Task:
    id: int | None
    title: str
    description: str
    assigner: str
    receiver: str
    deadline: datetime
    status: TaskStatus
    created_at: datetime
    updated_at: datetime

    remark: str | None = None
    completed_at: datetime | None = None
    comments: tuple[Comment, ...] = field(default_factory=tuple)

    # Bumped by the repository on every successful save.
    version: int = 0


@dataclass(frozen=True, slots=True)
class Milestone:
    id: int | None
    milestone: str
    created_by: str
    created_at: datetime

    staff_name: str | None = None


def _iso(ts: datetime | None) -> str | None:
    return ts.isoformat() if ts is not None else None


def comment_to_dict(c: Comment) -> dict[str, Any]:
    d: dict[str, Any] = {
        "content": c.content,
        "commentedBy": c.commented_by,
        "timestamp": _iso(c.timestamp),
    }
    if c.commenter_name is not None or c.commenter_email is not None:
        d["commentedBy"] = {
            "id": c.commented_by,
            "name": c.commenter_name,
            "email": c.commenter_email,
        }
    return d


def to_dict(task: Task) -> dict[str, Any]:
    """JSON-friendly view of a task (camelCase keys, ISO timestamps)."""
    return {
        "id": task.id,
        "title": task.title,
        "description": task.description,
        "assigner": task.assigner,
        "receiver": task.receiver,
        "deadline": _iso(task.deadline),
        "status": task.status.value,
        "remark": task.remark,
        "comments": [comment_to_dict(c) for c in task.comments],
        "completedAt": _iso(task.completed_at),
        "createdAt": _iso(task.created_at),
        "updatedAt": _iso(task.updated_at),
    }


def milestone_to_dict(m: Milestone) -> dict[str, Any]:
    d: dict[str, Any] = {
        "id": m.id,
        "milestone": m.milestone,
        "createdBy": m.created_by,
        "createdAt": _iso(m.created_at),
    }
    if m.staff_name is not None:
        d["staffName"] = m.staff_name
    return d

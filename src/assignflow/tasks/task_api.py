# src/assignflow/tasks/task_api.py

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from typing import Any

from ..core.state import AppState
from . import guard
from .task_models import Action, Comment, Task, TaskStatus, User
from .validation import require_text

logger = logging.getLogger(__name__)


def _resolve_names(state: AppState, user_ids: set[str]) -> dict[str, User]:
    out: dict[str, User] = {}
    for uid in user_ids:
        user = state.users.resolve_user(uid)
        if user is not None:
            out[uid] = user
    return out


def _with_commenter(c: Comment, users: dict[str, User]) -> Comment:
    user = users.get(c.commented_by)
    if user is None:
        return c
    return replace(c, commenter_name=user.name, commenter_email=user.email)


# ---- comments ----


def add_comment(state: AppState, actor: User, task_id: int, content: Any) -> Comment:
    """
    Append a comment to a task and return the new entry.

    Only the assigner or receiver may comment. Comments are never edited or removed.
    """
    text = require_text(content, "content")
    task = state.lifecycle.load(task_id)
    guard.check(actor, Action.ADD_COMMENT, task, staff_role=state.staff_role)

    now = state.clock.now()
    comment = Comment(content=text, commented_by=actor.id, timestamp=now)
    saved = state.task_store.save(
        replace(task, comments=(*task.comments, comment), updated_at=now)
    )
    logger.info("Comment added task_id=%s by=%s total=%d", saved.id, actor.id, len(saved.comments))

    added = saved.comments[-1]
    return _with_commenter(added, _resolve_names(state, {actor.id}))


def get_comments(state: AppState, actor: User, task_id: int) -> list[Comment]:
    """All comments of a task, in insertion order, with commenter display fields."""
    task = state.lifecycle.load(task_id)
    guard.check(actor, Action.READ_COMMENTS, task, staff_role=state.staff_role)
    users = _resolve_names(state, {c.commented_by for c in task.comments})
    return [_with_commenter(c, users) for c in task.comments]


# ---- queries ----


def get_task(state: AppState, actor: User, task_id: int) -> Task:
    task = state.lifecycle.load(task_id)
    guard.check(actor, Action.VIEW, task, staff_role=state.staff_role)
    return task


def tasks_for_user(state: AppState, actor: User) -> list[Task]:
    """Tasks the actor assigned or received, newest first."""
    tasks = state.task_store.query(lambda t: actor.id in (t.assigner, t.receiver))
    return sorted(tasks, key=lambda t: t.created_at, reverse=True)


def accepted_tasks(state: AppState, actor: User) -> list[Task]:
    """Tasks the actor has accepted and is working on, newest first."""
    tasks = state.task_store.query(
        lambda t: t.receiver == actor.id and t.status is TaskStatus.IN_PROGRESS
    )
    return sorted(tasks, key=lambda t: t.created_at, reverse=True)


def _completed_key(t: Task) -> datetime:
    return t.completed_at or t.updated_at


def my_completed_tasks(state: AppState, actor: User) -> list[Task]:
    tasks = state.task_store.query(
        lambda t: t.receiver == actor.id
        and t.status is TaskStatus.COMPLETED
        and t.completed_at is not None
    )
    return sorted(tasks, key=_completed_key, reverse=True)


def all_completed_tasks(state: AppState) -> list[Task]:
    tasks = state.task_store.query(lambda t: t.status is TaskStatus.COMPLETED)
    return sorted(tasks, key=_completed_key, reverse=True)


def assigned_tasks(state: AppState, actor: User) -> list[Task]:
    """Tasks the actor handed out, latest deadline first."""
    tasks = state.task_store.query(lambda t: t.assigner == actor.id)
    return sorted(tasks, key=lambda t: t.deadline, reverse=True)


def to_summary(state: AppState, task: Task) -> dict[str, Any]:
    """Flat listing row: {task_id, title, deadline, status, to, from}."""
    users = _resolve_names(state, {task.assigner, task.receiver})
    to_user = users.get(task.receiver)
    from_user = users.get(task.assigner)
    return {
        "task_id": task.id,
        "title": task.title,
        "deadline": task.deadline.date().isoformat(),
        "status": task.status.value,
        "to": to_user.name if to_user else "Unknown",
        "from": from_user.name if from_user else "Unknown",
    }

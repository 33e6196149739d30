# src/assignflow/tasks/lifecycle.py

from __future__ import annotations

"""
Task state machine.

Every call follows the same shape:
- load the task (NotFound if missing),
- ask the guard whether the actor may act (Unauthorized otherwise),
- validate the payload (ValidationError),
- compute the next snapshot and hand it to the repository.

Nothing is persisted until all checks have passed. Transitions are gated by
the actor's relationship to the task, not by the current status, except:
- accept refuses an approved task,
- edit refuses an approved task,
- markComplete on an already completed task is a no-op (completed_at kept).

Rejection (approve_completion with approved=False) sends the task back to
pending, so the receiver has to accept it again.
"""

import logging
from collections.abc import Mapping
from dataclasses import replace
from datetime import datetime
from typing import Any

from ..core.clock import SystemClock
from ..core.errors import NotFound, ValidationError
from ..core.ports import Clock, TaskRepo, UserDirectory
from . import guard
from .task_models import Action, Task, TaskStatus, User
from .validation import parse_deadline, require_future, require_task_id, require_text

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("title", "description", "remark", "deadline")

# Resulting status per lifecycle action. None = status unchanged.
# approveCompletion depends on the verdict and is resolved in next_status().
TRANSITIONS: dict[Action, TaskStatus | None] = {
    Action.CREATE: TaskStatus.PENDING,
    Action.ACCEPT: TaskStatus.IN_PROGRESS,
    Action.EDIT: None,
    Action.REASSIGN: TaskStatus.PENDING,
    Action.MARK_COMPLETE: TaskStatus.COMPLETED,
}


def next_status(action: Action, current: TaskStatus, *, approved: bool | None = None) -> TaskStatus:
    """Pure transition function: status after `action` is applied to `current`."""
    if action is Action.APPROVE_COMPLETION:
        if approved is None:
            raise ValidationError("isApproved is required", field="isApproved")
        if not isinstance(approved, bool):
            raise ValidationError("isApproved must be true or false", field="isApproved")
        return TaskStatus.APPROVED if approved else TaskStatus.PENDING

    if action not in TRANSITIONS:
        raise ValueError(f"{action.value} is not a status transition")

    target = TRANSITIONS[action]
    if target is None:
        return current

    if action is Action.ACCEPT and current is TaskStatus.APPROVED:
        raise ValidationError("Task is already approved", field="status")

    return target


class TaskLifecycle:
    """Lifecycle actions over a TaskRepo, with explicit actors on every call."""

    def __init__(
        self,
        tasks: TaskRepo,
        users: UserDirectory,
        clock: Clock | None = None,
        *,
        staff_role: str = guard.STAFF_ROLE,
    ) -> None:
        self.tasks = tasks
        self.users = users
        self.clock: Clock = clock or SystemClock()
        self.staff_role = staff_role

    # ---- helpers ----

    def load(self, task_id: int) -> Task:
        task = self.tasks.load(require_task_id(task_id))
        if task is None:
            raise NotFound("Task not found", field="task_id")
        return task

    def _load_for(self, actor: User, action: Action, task_id: int) -> Task:
        task = self.load(task_id)
        guard.check(actor, action, task, staff_role=self.staff_role)
        return task

    def _require_user(self, user_id: Any, field: str) -> User:
        uid = require_text(user_id, field)
        user = self.users.resolve_user(uid)
        if user is None:
            raise NotFound("Receiver not found", field=field)
        return user

    def _now(self) -> datetime:
        return self.clock.now()

    def _persist(self, task: Task, action: Action, actor: User) -> Task:
        saved = self.tasks.save(task)
        logger.info(
            "Task %s %s by %s -> %s",
            saved.id,
            action.value,
            actor.id,
            saved.status.value,
        )
        return saved

    # ---- actions ----

    def create(
        self,
        actor: User,
        *,
        title: Any,
        description: Any,
        receiver_id: Any,
        deadline: Any,
        remark: Any = None,
    ) -> Task:
        guard.check(actor, Action.CREATE, None, staff_role=self.staff_role)

        clean_title = require_text(title, "title")
        clean_description = require_text(description, "description")
        due = parse_deadline(deadline)
        receiver = self._require_user(receiver_id, "receiver_id")

        now = self._now()
        require_future(due, now)

        clean_remark = (remark.strip() or None) if isinstance(remark, str) else None

        task = Task(
            id=None,
            title=clean_title,
            description=clean_description,
            assigner=actor.id,
            receiver=receiver.id,
            deadline=due,
            status=next_status(Action.CREATE, TaskStatus.PENDING),
            created_at=now,
            updated_at=now,
            remark=clean_remark,
        )
        return self._persist(task, Action.CREATE, actor)

    def accept(self, actor: User, task_id: int) -> Task:
        task = self._load_for(actor, Action.ACCEPT, task_id)
        status = next_status(Action.ACCEPT, task.status)
        if task.status is status:
            return task
        return self._persist(replace(task, status=status, updated_at=self._now()), Action.ACCEPT, actor)

    def edit(self, actor: User, task_id: int, changes: Mapping[str, Any]) -> Task:
        """
        Field-level update of title/description/remark/deadline.

        Unknown keys are ignored. Text is trimmed and must stay non-empty.
        A supplied deadline must parse and lie in the future.
        """
        task = self._load_for(actor, Action.EDIT, task_id)
        if task.status is TaskStatus.APPROVED:
            raise ValidationError("Approved tasks can no longer be edited", field="status")

        updates: dict[str, Any] = {}
        for name in EDITABLE_FIELDS:
            if changes.get(name) is None:
                continue
            if name == "deadline":
                updates[name] = require_future(parse_deadline(changes[name]), self._now())
            else:
                updates[name] = require_text(changes[name], name)

        if not updates:
            raise ValidationError(
                "Nothing to update; allowed fields: " + ", ".join(EDITABLE_FIELDS)
            )

        return self._persist(replace(task, **updates, updated_at=self._now()), Action.EDIT, actor)

    def reassign(self, actor: User, task_id: int, new_receiver_id: Any) -> Task:
        task = self._load_for(actor, Action.REASSIGN, task_id)
        receiver = self._require_user(new_receiver_id, "new_receiver_id")

        updated = replace(
            task,
            receiver=receiver.id,
            status=next_status(Action.REASSIGN, task.status),
            updated_at=self._now(),
        )
        logger.debug("Task %s receiver %s -> %s", task.id, task.receiver, receiver.id)
        return self._persist(updated, Action.REASSIGN, actor)

    def mark_complete(self, actor: User, task_id: int) -> Task:
        task = self._load_for(actor, Action.MARK_COMPLETE, task_id)
        if task.status is TaskStatus.COMPLETED:
            logger.debug("Task %s already completed; keeping completed_at", task.id)
            return task

        now = self._now()
        updated = replace(
            task,
            status=next_status(Action.MARK_COMPLETE, task.status),
            completed_at=now,
            updated_at=now,
        )
        return self._persist(updated, Action.MARK_COMPLETE, actor)

    def approve_completion(
        self,
        actor: User,
        task_id: int,
        *,
        approved: bool | None,
        remark: Any = None,
    ) -> Task:
        task = self._load_for(actor, Action.APPROVE_COMPLETION, task_id)
        if remark is not None and not isinstance(remark, str):
            raise ValidationError("remark must be text", field="remark")

        updated = replace(
            task,
            status=next_status(Action.APPROVE_COMPLETION, task.status, approved=approved),
            remark=(remark or "").strip() or None,
            updated_at=self._now(),
        )
        return self._persist(updated, Action.APPROVE_COMPLETION, actor)

    def delete(self, actor: User, task_id: int) -> None:
        task = self._load_for(actor, Action.DELETE, task_id)
        if not self.tasks.delete(task.id):
            raise NotFound("Task not found", field="task_id")
        logger.info("Task %s delete by %s", task.id, actor.id)

# src/assignflow/tasks/guard.py

from __future__ import annotations

"""
Authorization guard.

Who may do what is a table: each Action maps to the relationship the actor
must hold. Checks are pure functions of (actor, task) and never touch storage.

Relationships:
- ASSIGNER     actor created the task
- RECEIVER     actor is currently responsible for the task
- PARTICIPANT  assigner or receiver
- ANYONE       any authenticated user (no task relationship needed)
- STAFF        coarse role check, independent of any task
"""

import logging
from enum import Enum

from ..core.errors import Unauthorized
from .task_models import Action, Task, User

logger = logging.getLogger(__name__)

STAFF_ROLE = "staff"


class Relationship(str, Enum):
    ASSIGNER = "assigner"
    RECEIVER = "receiver"
    PARTICIPANT = "participant"
    ANYONE = "anyone"
    STAFF = "staff"


PERMISSIONS: dict[Action, Relationship] = {
    Action.CREATE: Relationship.ANYONE,
    Action.ACCEPT: Relationship.RECEIVER,
    Action.MARK_COMPLETE: Relationship.RECEIVER,
    Action.EDIT: Relationship.ASSIGNER,
    Action.REASSIGN: Relationship.ASSIGNER,
    Action.APPROVE_COMPLETION: Relationship.ASSIGNER,
    Action.DELETE: Relationship.ASSIGNER,
    Action.ADD_COMMENT: Relationship.PARTICIPANT,
    Action.READ_COMMENTS: Relationship.PARTICIPANT,
    Action.VIEW: Relationship.PARTICIPANT,
    Action.CREATE_MILESTONE: Relationship.STAFF,
}

_DENIED_MESSAGES = {
    Relationship.ASSIGNER: "Only the task assigner can do this",
    Relationship.RECEIVER: "Only the task receiver can do this",
    Relationship.PARTICIPANT: "Only the task assigner or receiver can do this",
    Relationship.STAFF: "Only staff can do this",
}


def holds(actor: User, required: Relationship, task: Task | None, *, staff_role: str = STAFF_ROLE) -> bool:
    if required is Relationship.ANYONE:
        return bool(actor.id)
    if required is Relationship.STAFF:
        return actor.role == staff_role
    if task is None:
        return False
    if required is Relationship.ASSIGNER:
        return task.assigner == actor.id
    if required is Relationship.RECEIVER:
        return task.receiver == actor.id
    if required is Relationship.PARTICIPANT:
        return actor.id in (task.assigner, task.receiver)
    return False


def is_allowed(actor: User, action: Action, task: Task | None = None, *, staff_role: str = STAFF_ROLE) -> bool:
    return holds(actor, PERMISSIONS[action], task, staff_role=staff_role)


def check(actor: User, action: Action, task: Task | None = None, *, staff_role: str = STAFF_ROLE) -> None:
    """Raise Unauthorized unless `actor` may perform `action` on `task`."""
    required = PERMISSIONS[action]
    if holds(actor, required, task, staff_role=staff_role):
        return
    logger.info(
        "Denied action=%s actor=%s task_id=%s required=%s",
        action.value,
        actor.id,
        getattr(task, "id", None),
        required.value,
    )
    raise Unauthorized(_DENIED_MESSAGES.get(required, "Unauthorized"))


def permitted_actions(actor: User, task: Task, *, staff_role: str = STAFF_ROLE) -> set[Action]:
    """Task-scoped actions the actor may perform right now (ignores CREATE/milestones)."""
    return {
        action
        for action, required in PERMISSIONS.items()
        if required not in (Relationship.ANYONE, Relationship.STAFF)
        and holds(actor, required, task, staff_role=staff_role)
    }

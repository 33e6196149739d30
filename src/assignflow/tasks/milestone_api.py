# src/assignflow/tasks/milestone_api.py

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any

from ..core.state import AppState
from . import guard
from .task_models import Action, Milestone, User
from .validation import require_text

logger = logging.getLogger(__name__)


def create_milestone(state: AppState, actor: User, milestone: Any) -> Milestone:
    """Staff-only: store an organization-wide milestone note."""
    guard.check(actor, Action.CREATE_MILESTONE, None, staff_role=state.staff_role)
    text = require_text(milestone, "milestone")

    saved = state.milestones.add_milestone(
        milestone=text,
        created_by=actor.id,
        created_at=state.clock.now(),
    )
    logger.info("Milestone %s created by %s", saved.id, actor.id)
    return saved


def list_milestones(state: AppState) -> list[Milestone]:
    """Newest first, with the creator's name when the directory knows them."""
    out: list[Milestone] = []
    for m in state.milestones.list_milestones():
        creator = state.users.resolve_user(m.created_by)
        out.append(replace(m, staff_name=creator.name) if creator else m)
    return out

# src/assignflow/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires concrete stores and the lifecycle engine into AppState.
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..core.clock import SystemClock
from ..core.ports import Clock
from ..core.state import AppState
from ..tasks.lifecycle import TaskLifecycle
from ..tasks.task_store import TaskStore
from ..users.user_store import UserStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.tasks_db_path.parent.mkdir(parents=True, exist_ok=True)
    settings.users_db_path.parent.mkdir(parents=True, exist_ok=True)


def create_initial_state(*, settings=None, clock: Clock | None = None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    clock = clock or SystemClock()
    users = UserStore(settings.users_db_path)
    task_store = TaskStore(settings.tasks_db_path)
    lifecycle = TaskLifecycle(
        task_store,
        users,
        clock,
        staff_role=getattr(settings, "staff_role", "staff"),
    )

    logger.debug("State wired tasks_db=%s users_db=%s", settings.tasks_db_path, settings.users_db_path)
    return AppState(
        settings=settings,
        users=users,
        task_store=task_store,
        milestones=task_store,
        clock=clock,
        lifecycle=lifecycle,
    )

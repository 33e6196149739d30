# src/assignflow/core/state.py

from __future__ import annotations

from dataclasses import dataclass

from ..tasks.lifecycle import TaskLifecycle
from .ports import Clock, MilestoneRepo, TaskRepo, UserDirectory


@dataclass
class AppState:
    # Store Settings on the state for easy access in other modules later.
    settings: object

    users: UserDirectory
    task_store: TaskRepo
    milestones: MilestoneRepo
    clock: Clock
    lifecycle: TaskLifecycle

    @property
    def staff_role(self) -> str:
        return str(getattr(self.settings, "staff_role", "staff"))

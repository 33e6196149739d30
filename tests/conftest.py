# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from assignflow.cli.bootstrap import create_initial_state
from assignflow.core.state import AppState
from assignflow.tasks.lifecycle import TaskLifecycle
from assignflow.tasks.task_models import User

from .fakes import FakeTaskRepo, FakeUserDirectory, FixedClock

ALICE = User(id="alice", name="Alice", email="alice@example.com", role="staff")
BOB = User(id="bob", name="Bob", email="bob@example.com", role="student")
CAROL = User(id="carol", name="Carol", email="carol@example.com", role="student")
MALLORY = User(id="mallory", name="Mallory", email="mallory@example.com", role="student")


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and bootstrap.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="assignflow-test",
        log_level="DEBUG",
        data_dir=tmp_path,
        tasks_db_path=tmp_path / "tasks.sqlite3",
        users_db_path=tmp_path / "users.sqlite3",
        staff_role="staff",
        list_limit=50,
    )


@pytest.fixture()
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture()
def repo() -> FakeTaskRepo:
    return FakeTaskRepo()


@pytest.fixture()
def engine(repo: FakeTaskRepo, clock: FixedClock) -> TaskLifecycle:
    """Lifecycle over in-memory fakes: pure transition logic, no SQLite."""
    return TaskLifecycle(repo, FakeUserDirectory([ALICE, BOB, CAROL, MALLORY]), clock)


@pytest.fixture()
def state(settings: SimpleNamespace, clock: FixedClock) -> AppState:
    """
    AppState wired with the real SQLite stores and a fixed clock.

    NOTE: We keep real SQLite stores here because their correctness
    (versioning, comment ordering) is part of what we want to test.
    """
    st = create_initial_state(settings=settings, clock=clock)
    for u in (ALICE, BOB, CAROL, MALLORY):
        st.users.add_user(name=u.name, email=u.email, role=u.role, user_id=u.id)  # type: ignore[attr-defined]
    return st

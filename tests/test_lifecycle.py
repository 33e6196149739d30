# tests/test_lifecycle.py

from __future__ import annotations

from datetime import timedelta

import pytest

from assignflow.core.errors import Conflict, NotFound, Unauthorized, ValidationError
from assignflow.tasks.lifecycle import TaskLifecycle, next_status
from assignflow.tasks.task_models import Action, Task, TaskStatus

from .conftest import ALICE, BOB, CAROL, MALLORY
from .fakes import FakeTaskRepo, FixedClock


def _create(engine: TaskLifecycle, clock: FixedClock, **overrides) -> Task:
    fields = {
        "title": "Write report",
        "description": "Quarterly numbers",
        "receiver_id": BOB.id,
        "deadline": clock.now() + timedelta(days=7),
    }
    fields.update(overrides)
    return engine.create(ALICE, **fields)


# ---- create ----


def test_create_yields_pending_task_owned_by_actor(engine, clock) -> None:
    task = _create(engine, clock, title="  Write report  ", remark=" first draft ")

    assert task.id is not None
    assert task.status is TaskStatus.PENDING
    assert task.assigner == ALICE.id
    assert task.receiver == BOB.id
    assert task.title == "Write report"
    assert task.remark == "first draft"
    assert task.created_at == clock.now()
    assert task.comments == ()
    assert task.completed_at is None


def test_create_accepts_iso_deadline_string(engine, clock) -> None:
    task = _create(engine, clock, deadline="2026-02-01")
    assert task.deadline.isoformat() == "2026-02-01T00:00:00+00:00"


@pytest.mark.parametrize(
    "overrides, field",
    [
        ({"title": "   "}, "title"),
        ({"description": ""}, "description"),
        ({"receiver_id": None}, "receiver_id"),
        ({"deadline": None}, "deadline"),
        ({"deadline": "next tuesday"}, "deadline"),
    ],
)
def test_create_rejects_bad_input(engine, clock, repo: FakeTaskRepo, overrides, field) -> None:
    with pytest.raises(ValidationError) as exc:
        _create(engine, clock, **overrides)
    assert exc.value.field == field
    assert repo.saves == 0


def test_create_rejects_past_or_current_deadline(engine, clock, repo: FakeTaskRepo) -> None:
    with pytest.raises(ValidationError):
        _create(engine, clock, deadline=clock.now())
    with pytest.raises(ValidationError):
        _create(engine, clock, deadline=clock.now() - timedelta(days=1))
    assert repo.saves == 0


def test_create_requires_existing_receiver(engine, clock, repo: FakeTaskRepo) -> None:
    with pytest.raises(NotFound):
        _create(engine, clock, receiver_id="ghost")
    assert repo.saves == 0


def test_self_assignment_is_allowed(engine, clock) -> None:
    task = _create(engine, clock, receiver_id=ALICE.id)
    assert task.assigner == task.receiver == ALICE.id


# ---- accept ----


def test_accept_by_receiver_moves_to_in_progress(engine, clock) -> None:
    task = _create(engine, clock)
    accepted = engine.accept(BOB, task.id)
    assert accepted.status is TaskStatus.IN_PROGRESS


@pytest.mark.parametrize("actor", [ALICE, CAROL, MALLORY])
def test_accept_by_non_receiver_is_unauthorized(engine, clock, repo: FakeTaskRepo, actor) -> None:
    task = _create(engine, clock)
    with pytest.raises(Unauthorized):
        engine.accept(actor, task.id)
    assert repo.load(task.id).status is TaskStatus.PENDING


def test_accept_refuses_approved_task(engine, clock) -> None:
    task = _create(engine, clock)
    engine.mark_complete(BOB, task.id)
    engine.approve_completion(ALICE, task.id, approved=True, remark="ok")

    with pytest.raises(ValidationError) as exc:
        engine.accept(BOB, task.id)
    assert exc.value.field == "status"


def test_unknown_task_is_not_found(engine) -> None:
    with pytest.raises(NotFound):
        engine.accept(BOB, 999)
    with pytest.raises(NotFound):
        engine.delete(ALICE, 999)


@pytest.mark.parametrize("raw", ["abc", "", None, "7x"])
def test_malformed_task_id_is_validation_error(engine, clock, repo: FakeTaskRepo, raw) -> None:
    _create(engine, clock)
    saves = repo.saves

    for call in (
        lambda: engine.accept(BOB, raw),
        lambda: engine.mark_complete(BOB, raw),
        lambda: engine.delete(ALICE, raw),
    ):
        with pytest.raises(ValidationError) as exc:
            call()
        assert exc.value.field == "task_id"
    assert repo.saves == saves


def test_numeric_string_task_id_is_accepted(engine, clock) -> None:
    task = _create(engine, clock)
    assert engine.accept(BOB, str(task.id)).status is TaskStatus.IN_PROGRESS


# ---- edit ----


def test_edit_updates_fields_and_keeps_status(engine, clock) -> None:
    task = _create(engine, clock)
    engine.accept(BOB, task.id)
    new_deadline = clock.now() + timedelta(days=30)

    edited = engine.edit(
        ALICE,
        task.id,
        {"title": " Final report ", "remark": "add charts", "deadline": new_deadline, "bogus": "x"},
    )

    assert edited.title == "Final report"
    assert edited.remark == "add charts"
    assert edited.deadline == new_deadline
    assert edited.description == task.description
    assert edited.status is TaskStatus.IN_PROGRESS
    assert edited.assigner == ALICE.id


def test_edit_by_receiver_is_unauthorized(engine, clock) -> None:
    task = _create(engine, clock)
    with pytest.raises(Unauthorized):
        engine.edit(BOB, task.id, {"title": "mine now"})


@pytest.mark.parametrize(
    "changes, field",
    [
        ({"title": "   "}, "title"),
        ({"description": ""}, "description"),
        ({"deadline": "31/12/2030"}, "deadline"),
        ({"deadline": "2020-01-01"}, "deadline"),
        ({"title": 42}, "title"),
    ],
)
def test_edit_rejects_invalid_values_without_mutation(engine, clock, repo: FakeTaskRepo, changes, field) -> None:
    task = _create(engine, clock)
    saves = repo.saves
    with pytest.raises(ValidationError) as exc:
        engine.edit(ALICE, task.id, {"remark": "valid", **changes})
    assert exc.value.field == field
    assert repo.saves == saves
    assert repo.load(task.id).remark is None


def test_edit_with_nothing_to_update_is_rejected(engine, clock) -> None:
    task = _create(engine, clock)
    with pytest.raises(ValidationError):
        engine.edit(ALICE, task.id, {"status": "approved"})


def test_edit_refuses_approved_task(engine, clock) -> None:
    task = _create(engine, clock)
    engine.approve_completion(ALICE, task.id, approved=True)
    with pytest.raises(ValidationError):
        engine.edit(ALICE, task.id, {"title": "late change"})


# ---- reassign ----


@pytest.mark.parametrize("prior", ["pending", "inProgress", "completed", "approved"])
def test_reassign_always_resets_to_pending(engine, clock, prior) -> None:
    task = _create(engine, clock)
    if prior == "inProgress":
        engine.accept(BOB, task.id)
    elif prior == "completed":
        engine.mark_complete(BOB, task.id)
    elif prior == "approved":
        engine.approve_completion(ALICE, task.id, approved=True)

    moved = engine.reassign(ALICE, task.id, CAROL.id)

    assert moved.status is TaskStatus.PENDING
    assert moved.receiver == CAROL.id
    assert moved.assigner == ALICE.id


def test_reassign_checks_actor_and_target(engine, clock, repo: FakeTaskRepo) -> None:
    task = _create(engine, clock)
    with pytest.raises(Unauthorized):
        engine.reassign(BOB, task.id, CAROL.id)
    with pytest.raises(NotFound):
        engine.reassign(ALICE, task.id, "ghost")
    with pytest.raises(ValidationError):
        engine.reassign(ALICE, task.id, "  ")
    assert repo.load(task.id).receiver == BOB.id


def test_old_receiver_loses_rights_after_reassign(engine, clock) -> None:
    task = _create(engine, clock)
    engine.reassign(ALICE, task.id, CAROL.id)
    with pytest.raises(Unauthorized):
        engine.accept(BOB, task.id)
    assert engine.accept(CAROL, task.id).status is TaskStatus.IN_PROGRESS


# ---- mark complete ----


def test_mark_complete_sets_completed_at_once(engine, clock, repo: FakeTaskRepo) -> None:
    task = _create(engine, clock)
    clock.advance(hours=3)

    done = engine.mark_complete(BOB, task.id)
    assert done.status is TaskStatus.COMPLETED
    assert done.completed_at == clock.now()
    assert done.completed_at >= done.created_at

    saves = repo.saves
    clock.advance(hours=1)
    again = engine.mark_complete(BOB, task.id)
    assert again.status is TaskStatus.COMPLETED
    assert again.completed_at == done.completed_at
    assert repo.saves == saves


def test_mark_complete_without_accept_is_permitted(engine, clock) -> None:
    task = _create(engine, clock)
    assert engine.mark_complete(BOB, task.id).status is TaskStatus.COMPLETED


def test_mark_complete_by_assigner_is_unauthorized(engine, clock) -> None:
    task = _create(engine, clock)
    with pytest.raises(Unauthorized):
        engine.mark_complete(ALICE, task.id)


# ---- approve / reject ----


@pytest.mark.parametrize("prior", ["pending", "inProgress", "completed"])
def test_rejection_always_yields_pending(engine, clock, prior) -> None:
    task = _create(engine, clock)
    if prior == "inProgress":
        engine.accept(BOB, task.id)
    elif prior == "completed":
        engine.mark_complete(BOB, task.id)

    rejected = engine.approve_completion(ALICE, task.id, approved=False, remark=" redo section 2 ")
    assert rejected.status is TaskStatus.PENDING
    assert rejected.remark == "redo section 2"


@pytest.mark.parametrize("verdict", [None, "yes", 1])
def test_missing_or_non_boolean_verdict_is_rejected(engine, clock, repo: FakeTaskRepo, verdict) -> None:
    task = _create(engine, clock)
    engine.mark_complete(BOB, task.id)
    before = repo.load(task.id)

    with pytest.raises(ValidationError) as exc:
        engine.approve_completion(ALICE, task.id, approved=verdict, remark="ok")
    assert exc.value.field == "isApproved"

    after = repo.load(task.id)
    assert after.status is TaskStatus.COMPLETED
    assert after.version == before.version


def test_approval_by_receiver_is_unauthorized(engine, clock) -> None:
    task = _create(engine, clock)
    engine.mark_complete(BOB, task.id)
    with pytest.raises(Unauthorized):
        engine.approve_completion(BOB, task.id, approved=True)


# ---- delete ----


def test_delete_by_assigner_removes_task(engine, clock, repo: FakeTaskRepo) -> None:
    task = _create(engine, clock)
    with pytest.raises(Unauthorized):
        engine.delete(BOB, task.id)
    assert repo.load(task.id) is not None

    engine.delete(ALICE, task.id)
    assert repo.load(task.id) is None
    with pytest.raises(NotFound):
        engine.load(task.id)


# ---- concurrency ----


def test_stale_snapshot_save_conflicts(engine, clock, repo: FakeTaskRepo) -> None:
    task = _create(engine, clock)
    stale = repo.load(task.id)
    engine.accept(BOB, task.id)

    with pytest.raises(Conflict):
        repo.save(stale)


# ---- end to end ----


def test_full_approval_flow(engine, clock) -> None:
    task = _create(engine, clock)
    clock.advance(hours=1)
    engine.accept(BOB, task.id)
    clock.advance(days=2)
    engine.mark_complete(BOB, task.id)
    clock.advance(hours=1)
    final = engine.approve_completion(ALICE, task.id, approved=True, remark="Great work")

    assert final.status is TaskStatus.APPROVED
    assert final.completed_at is not None
    assert final.remark == "Great work"
    assert final.assigner == ALICE.id


def test_reassign_while_in_progress_flow(engine, clock) -> None:
    task = _create(engine, clock)
    engine.accept(BOB, task.id)
    moved = engine.reassign(ALICE, task.id, CAROL.id)
    assert moved.status is TaskStatus.PENDING
    assert moved.receiver == CAROL.id


# ---- transition table ----


def test_next_status_table() -> None:
    for current in TaskStatus:
        assert next_status(Action.REASSIGN, current) is TaskStatus.PENDING
        assert next_status(Action.MARK_COMPLETE, current) is TaskStatus.COMPLETED
        assert next_status(Action.EDIT, current) is current
        assert next_status(Action.APPROVE_COMPLETION, current, approved=False) is TaskStatus.PENDING
        assert next_status(Action.APPROVE_COMPLETION, current, approved=True) is TaskStatus.APPROVED

    with pytest.raises(ValueError):
        next_status(Action.DELETE, TaskStatus.PENDING)
    with pytest.raises(ValidationError):
        next_status(Action.APPROVE_COMPLETION, TaskStatus.COMPLETED)

"""
Task service tests — diffing, audit rows, permissions and atomicity.
"""

from datetime import date

import pytest
from sqlalchemy import func, select

from taskhub.core.exceptions import (
    NoChangesError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from taskhub.models import db
from taskhub.models.audit import TaskHistory
from taskhub.models.task import Comment, Task
from taskhub.services import task_service


def _history_count(task_id=None):
    stmt = select(func.count()).select_from(TaskHistory)
    if task_id is not None:
        stmt = stmt.where(TaskHistory.task_id == task_id)
    return db.session.execute(stmt).scalar()


def _history(task_id):
    return db.session.execute(
        select(TaskHistory).where(TaskHistory.task_id == task_id).order_by(TaskHistory.id)
    ).scalars().all()


@pytest.fixture()
def alpha(make_user, make_project, add_member, make_task):
    """Owner alice, editor bob, viewer carol and one todo task."""
    alice = make_user(name="Alice")
    bob = make_user(name="Bob")
    carol = make_user(name="Carol")
    project = make_project(alice, name="Alpha")
    add_member(project, bob, role="member", can_edit=True, can_delete=False)
    add_member(project, carol, role="viewer", can_edit=False, can_delete=False)
    task = make_task(project, alice, title="Write docs")
    return {"alice": alice, "bob": bob, "carol": carol, "project": project, "task": task}


# ═══════════════════════════════════════════════════════════════
# Diffing + audit
# ═══════════════════════════════════════════════════════════════

def test_update_writes_one_history_row_per_changed_field(alpha):
    task, bob = alpha["task"], alpha["bob"]

    updated, diffs = task_service.update_task(
        task.id, {"status": "doing", "priority": "high", "title": "Write docs"}, bob
    )

    assert {d.field for d in diffs} == {"status", "priority"}
    assert updated.status == "doing"
    assert updated.priority == "high"

    rows = _history(task.id)
    assert [(r.field_name, r.old_value, r.new_value) for r in rows] == [
        ("status", "todo", "doing"),
        ("priority", "medium", "high"),
    ]
    assert all(r.changed_by == bob.id for r in rows)
    assert all(r.changed_at is not None for r in rows)


def test_resubmitting_same_values_raises_no_changes(alpha):
    task, bob = alpha["task"], alpha["bob"]
    task_service.update_task(task.id, {"status": "doing"}, bob)
    before = _history_count(task.id)

    with pytest.raises(NoChangesError):
        task_service.update_task(task.id, {"status": "doing"}, bob)

    assert _history_count(task.id) == before


@pytest.mark.parametrize("changes", [
    {},
    {"unknown": "x", "project_id": 42},
    {"title": "  Write docs  "},
    {"description": None},
])
def test_empty_diff_raises_no_changes(alpha, changes):
    with pytest.raises(NoChangesError) as exc:
        task_service.update_task(alpha["task"].id, changes, alpha["bob"])
    assert str(exc.value) == "No valid updates provided"
    assert _history_count() == 0


def test_clearing_assignee_records_null(alpha):
    task, alice, bob = alpha["task"], alpha["alice"], alpha["bob"]
    task_service.update_task(task.id, {"assigned_to": bob.id}, alice)

    updated, diffs = task_service.update_task(task.id, {"assigned_to": None}, alice)

    assert updated.assigned_to is None
    assert diffs[0].old_value == bob.id
    last = _history(task.id)[-1]
    assert (last.field_name, last.old_value, last.new_value) == ("assigned_to", str(bob.id), None)


def test_due_date_is_parsed_and_stored_as_iso(alpha):
    task, alice = alpha["task"], alpha["alice"]

    updated, _ = task_service.update_task(task.id, {"due_date": "2025-03-01"}, alice)

    assert updated.due_date == date(2025, 3, 1)
    row = _history(task.id)[-1]
    assert row.old_value is None
    assert row.new_value == "2025-03-01"


# ═══════════════════════════════════════════════════════════════
# Validation + permissions (nothing written)
# ═══════════════════════════════════════════════════════════════

def test_invalid_fields_are_reported_together(alpha):
    task = alpha["task"]

    with pytest.raises(ValidationError) as exc:
        task_service.update_task(
            task.id, {"status": "blocked", "priority": "urgent", "title": ""}, alpha["alice"]
        )

    assert set(exc.value.details) == {"status", "priority", "title"}
    db.session.expire_all()
    assert db.session.get(Task, task.id).status == "todo"
    assert _history_count() == 0


def test_assignee_without_project_access_is_rejected(alpha, make_user):
    outsider = make_user(name="Outsider")
    task = alpha["task"]

    with pytest.raises(ValidationError) as exc:
        task_service.update_task(
            task.id, {"assigned_to": outsider.id, "status": "doing"}, alpha["alice"]
        )

    assert "assigned_to" in exc.value.details
    db.session.expire_all()
    fresh = db.session.get(Task, task.id)
    assert fresh.assigned_to is None
    assert fresh.status == "todo"
    assert _history_count() == 0


def test_viewer_cannot_update(alpha):
    with pytest.raises(PermissionDeniedError) as exc:
        task_service.update_task(alpha["task"].id, {"status": "done"}, alpha["carol"])
    assert exc.value.reason == "project_edit"
    assert _history_count() == 0


def test_non_member_cannot_update(alpha, make_user):
    with pytest.raises(PermissionDeniedError) as exc:
        task_service.update_task(alpha["task"].id, {"status": "done"}, make_user())
    assert exc.value.reason == "project_access"


def test_missing_task_raises_not_found(alpha):
    with pytest.raises(NotFoundError):
        task_service.update_task(9999, {"status": "done"}, alpha["alice"])


def test_audit_failure_rolls_back_field_changes(alpha, monkeypatch):
    task = alpha["task"]

    def _boom(**kwargs):
        raise RuntimeError("audit store unavailable")

    monkeypatch.setattr(task_service, "record_task_changes", _boom)

    with pytest.raises(RuntimeError):
        task_service.update_task(task.id, {"status": "done", "title": "Ship it"}, alpha["alice"])

    db.session.expire_all()
    fresh = db.session.get(Task, task.id)
    assert fresh.status == "todo"
    assert fresh.title == "Write docs"
    assert _history_count() == 0


# ═══════════════════════════════════════════════════════════════
# Advance / create / delete / comments
# ═══════════════════════════════════════════════════════════════

def test_advance_cycles_through_statuses(alpha):
    task, bob = alpha["task"], alpha["bob"]
    seen = []
    for _ in range(3):
        updated, _ = task_service.advance_task_status(task.id, bob)
        seen.append(updated.status)

    assert seen == ["doing", "done", "todo"]
    assert _history_count(task.id) == 3


def test_create_task_defaults_and_creator(alpha):
    task = task_service.create_task(
        alpha["project"].id, {"title": "  New  ", "assigned_to": alpha["bob"].id}, alpha["carol"]
    )
    assert task.title == "New"
    assert task.status == "todo"
    assert task.priority == "medium"
    assert task.created_by == alpha["carol"].id
    assert task.assigned_to == alpha["bob"].id


def test_create_task_requires_title(alpha):
    with pytest.raises(ValidationError) as exc:
        task_service.create_task(alpha["project"].id, {"description": "x"}, alpha["alice"])
    assert "title" in exc.value.details


def test_create_task_requires_project_access(alpha, make_user):
    with pytest.raises(PermissionDeniedError):
        task_service.create_task(alpha["project"].id, {"title": "x"}, make_user())


def test_delete_requires_can_delete(alpha):
    with pytest.raises(PermissionDeniedError) as exc:
        task_service.delete_task(alpha["task"].id, alpha["bob"])
    assert exc.value.reason == "project_delete"
    assert db.session.get(Task, alpha["task"].id) is not None


def test_delete_cascades_history_and_comments(alpha):
    task, alice = alpha["task"], alpha["alice"]
    task_service.update_task(task.id, {"status": "doing"}, alice)
    task_service.add_comment(task.id, "On it", alpha["bob"])
    task_id = task.id

    task_service.delete_task(task_id, alice)

    db.session.expire_all()
    assert db.session.get(Task, task_id) is None
    assert _history_count(task_id) == 0
    assert db.session.execute(
        select(func.count()).select_from(Comment).where(Comment.task_id == task_id)
    ).scalar() == 0


def test_add_comment_validates_length(alpha):
    with pytest.raises(ValidationError):
        task_service.add_comment(alpha["task"].id, "   ", alpha["bob"])
    with pytest.raises(ValidationError):
        task_service.add_comment(alpha["task"].id, "x" * 501, alpha["bob"])


def test_viewer_can_comment_and_read(alpha):
    comment = task_service.add_comment(alpha["task"].id, " Looks good ", alpha["carol"])
    assert comment.content == "Looks good"

    detail = task_service.get_task_detail(alpha["task"].id, alpha["carol"])
    assert detail["task"]["id"] == alpha["task"].id
    assert [c["content"] for c in detail["comments"]] == ["Looks good"]


def test_list_project_tasks_filters(alpha, make_task):
    project, alice, bob = alpha["project"], alpha["alice"], alpha["bob"]
    make_task(project, alice, title="Assigned", assigned_to=bob.id, status="doing")

    assert [t.title for t in task_service.list_project_tasks(project.id, status="doing")] == ["Assigned"]
    assert [t.title for t in task_service.list_project_tasks(project.id, assigned_to=str(bob.id))] == ["Assigned"]
    assert len(task_service.list_project_tasks(project.id)) == 2
    with pytest.raises(ValidationError):
        task_service.list_project_tasks(project.id, status="nope")

"""
User service tests — registration, login and the admin lifecycle.
"""

from datetime import date, timedelta

import pytest
from sqlalchemy import select

from taskhub.core.exceptions import (
    AuthenticationError,
    ConflictError,
    PermissionDeniedError,
    ValidationError,
)
from taskhub.models import db
from taskhub.models.auth import User
from taskhub.models.project import Project, ProjectMember
from taskhub.models.task import Task
from taskhub.services import user_service


# ═══════════════════════════════════════════════════════════════
# Registration + login
# ═══════════════════════════════════════════════════════════════

def test_register_normalizes_email_and_hashes_password():
    user = user_service.register_user(email="  Dana@Example.COM ", password="secret1", name=" Dana ")

    assert user.email == "dana@example.com"
    assert user.name == "Dana"
    assert user.role == "user"
    assert user.is_active is True
    assert user.password_hash != "secret1"


def test_register_reports_all_invalid_fields():
    with pytest.raises(ValidationError) as exc:
        user_service.register_user(email="nope", password="123", name="X")
    assert set(exc.value.details) == {"email", "password", "name"}


def test_register_duplicate_email_conflicts(make_user):
    make_user(email="dup@example.com")
    with pytest.raises(ConflictError):
        user_service.register_user(email="DUP@example.com", password="secret1", name="Dup")


def test_authenticate_valid_and_invalid(make_user):
    user = make_user(email="erin@example.com")

    assert user_service.authenticate_user("erin@example.com", "password123").id == user.id

    with pytest.raises(AuthenticationError) as exc:
        user_service.authenticate_user("erin@example.com", "wrong-pass")
    assert exc.value.reason == "invalid_credentials"

    with pytest.raises(AuthenticationError):
        user_service.authenticate_user("ghost@example.com", "password123")


def test_inactive_user_cannot_log_in(make_user):
    make_user(email="off@example.com", is_active=False)

    with pytest.raises(PermissionDeniedError) as exc:
        user_service.authenticate_user("off@example.com", "password123")
    assert exc.value.reason == "account_inactive"


def test_search_is_case_insensitive_and_escapes_wildcards(make_user):
    make_user(name="Zoe Adams", email="zoe@example.com")
    make_user(name="Yann 100%", email="yann@example.com")

    assert [u.name for u in user_service.search_users("ZOE")] == ["Zoe Adams"]
    assert [u.name for u in user_service.search_users("100%")] == ["Yann 100%"]
    assert [u.name for u in user_service.search_users("%")] == ["Yann 100%"]


def test_user_stats_self_or_admin(make_user, make_project, make_task):
    owner = make_user()
    admin = make_user(role="admin")
    other = make_user()
    project = make_project(owner)
    yesterday = date.today() - timedelta(days=1)
    make_task(project, owner, title="a", assigned_to=owner.id, status="todo", due_date=yesterday)
    make_task(project, owner, title="b", assigned_to=owner.id, status="doing")
    make_task(project, owner, title="c", assigned_to=owner.id, status="done", due_date=yesterday)

    stats = user_service.get_user_stats(owner.id, owner)
    assert stats == {
        "total_tasks": 3,
        "todo_tasks": 1,
        "doing_tasks": 1,
        "done_tasks": 1,
        "overdue_tasks": 1,
    }
    assert user_service.get_user_stats(owner.id, admin) == stats
    with pytest.raises(PermissionDeniedError):
        user_service.get_user_stats(owner.id, other)


# ═══════════════════════════════════════════════════════════════
# Admin lifecycle
# ═══════════════════════════════════════════════════════════════

def test_change_role_respects_escalation_rules(make_user):
    admin = make_user(role="admin")
    root = make_user(role="super_admin")
    target = make_user()

    assert user_service.change_user_role(target.id, "admin", admin).role == "admin"
    with pytest.raises(PermissionDeniedError):
        user_service.change_user_role(target.id, "super_admin", admin)
    with pytest.raises(PermissionDeniedError):
        user_service.change_user_role(root.id, "user", admin)
    assert user_service.change_user_role(target.id, "super_admin", root).role == "super_admin"


def test_toggle_status_flips_is_active(make_user):
    admin = make_user(role="admin")
    target = make_user()

    assert user_service.toggle_user_status(target.id, admin).is_active is False
    assert user_service.toggle_user_status(target.id, admin).is_active is True


def test_set_password_allows_new_login(make_user):
    admin = make_user(role="admin")
    target = make_user(email="reset@example.com")

    user_service.set_user_password(target.id, "brand-new", admin)

    assert user_service.authenticate_user("reset@example.com", "brand-new").id == target.id
    with pytest.raises(ValidationError) as exc:
        user_service.set_user_password(target.id, "123", admin)
    assert "new_password" in exc.value.details


def test_delete_user_reassigns_projects_and_unassigns_tasks(
    make_user, make_project, add_member, make_task,
):
    admin = make_user(role="admin")
    leaving = make_user()
    bystander = make_user()
    owned = make_project(leaving, name="Owned")
    other = make_project(bystander, name="Other")
    add_member(owned, admin, role="viewer", can_edit=False)
    add_member(other, leaving)
    task = make_task(other, bystander, assigned_to=leaving.id)
    owned_id, other_id, task_id, leaving_id = owned.id, other.id, task.id, leaving.id

    user_service.delete_user(leaving_id, admin)

    db.session.expire_all()
    assert db.session.get(User, leaving_id) is None
    assert db.session.get(Project, owned_id).owner_id == admin.id
    assert db.session.get(Project, other_id) is not None
    assert db.session.get(Task, task_id).assigned_to is None
    members = db.session.execute(select(ProjectMember)).scalars().all()
    assert members == []


def test_cannot_delete_self(make_user):
    admin = make_user(role="admin")
    with pytest.raises(ValidationError) as exc:
        user_service.delete_user(admin.id, admin)
    assert str(exc.value) == "Cannot delete your own account"
    assert db.session.get(User, admin.id) is not None

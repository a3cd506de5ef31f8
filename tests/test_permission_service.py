"""
Permission resolution tests.

Covers:
  - owner wins over any membership row
  - member flags come from the membership row
  - non-members are denied with reason ``project_access``
  - global role change matrix (user / admin / super_admin)
"""

import pytest

from taskhub.core.exceptions import NotFoundError, PermissionDeniedError, ValidationError
from taskhub.services.permission_service import (
    can_access_project,
    check_role_change,
    resolve_project_permission,
)


# ═══════════════════════════════════════════════════════════════
# Project permission
# ═══════════════════════════════════════════════════════════════

def test_owner_gets_full_permission(make_user, make_project):
    owner = make_user()
    project = make_project(owner)

    perm = resolve_project_permission(owner.id, project.id)

    assert perm.is_owner is True
    assert perm.role == "owner"
    assert perm.can_edit is True
    assert perm.can_delete is True


def test_owner_wins_over_restrictive_membership_row(make_user, make_project, add_member):
    owner = make_user()
    project = make_project(owner)
    add_member(project, owner, role="viewer", can_edit=False, can_delete=False)

    perm = resolve_project_permission(owner.id, project.id)

    assert perm.is_owner is True
    assert perm.role == "owner"
    assert perm.can_edit is True
    assert perm.can_delete is True


def test_member_permission_comes_from_membership(make_user, make_project, add_member):
    owner, bob = make_user(), make_user()
    project = make_project(owner)
    add_member(project, bob, role="viewer", can_edit=False, can_delete=False)

    perm = resolve_project_permission(bob.id, project.id)

    assert perm.to_dict() == {
        "project_id": project.id,
        "user_id": bob.id,
        "is_owner": False,
        "role": "viewer",
        "can_edit": False,
        "can_delete": False,
    }
    with pytest.raises(PermissionDeniedError) as exc:
        perm.require_edit()
    assert exc.value.reason == "project_edit"
    with pytest.raises(PermissionDeniedError) as exc:
        perm.require_delete()
    assert exc.value.reason == "project_delete"


def test_non_member_is_denied(make_user, make_project):
    owner, stranger = make_user(), make_user()
    project = make_project(owner)

    with pytest.raises(PermissionDeniedError) as exc:
        resolve_project_permission(stranger.id, project.id)

    assert exc.value.reason == "project_access"
    assert can_access_project(stranger.id, project.id) is False
    assert can_access_project(owner.id, project.id) is True


def test_other_projects_membership_does_not_leak(make_user, make_project, add_member):
    owner, bob = make_user(), make_user()
    alpha = make_project(owner, name="Alpha")
    beta = make_project(owner, name="Beta")
    add_member(alpha, bob)

    assert can_access_project(bob.id, alpha.id) is True
    assert can_access_project(bob.id, beta.id) is False


def test_missing_project_raises_not_found(make_user):
    user = make_user()
    with pytest.raises(NotFoundError):
        resolve_project_permission(user.id, 9999)
    assert can_access_project(user.id, 9999) is False


def test_require_owner_rejects_members(make_user, make_project, add_member):
    owner, bob = make_user(), make_user()
    project = make_project(owner)
    add_member(project, bob, role="admin", can_edit=True, can_delete=True)

    with pytest.raises(PermissionDeniedError) as exc:
        resolve_project_permission(bob.id, project.id).require_owner()
    assert exc.value.reason == "project_owner"


# ═══════════════════════════════════════════════════════════════
# Global role changes
# ═══════════════════════════════════════════════════════════════

@pytest.mark.parametrize("actor, target, new_role", [
    ("admin", "user", "admin"),
    ("admin", "admin", "user"),
    ("super_admin", "user", "super_admin"),
    ("super_admin", "super_admin", "user"),
    ("super_admin", "admin", "admin"),
])
def test_role_change_allowed(actor, target, new_role):
    check_role_change(actor, target, new_role)


@pytest.mark.parametrize("actor, target, new_role", [
    ("admin", "user", "super_admin"),
    ("admin", "super_admin", "user"),
    ("admin", "super_admin", "admin"),
])
def test_admin_cannot_touch_super_admin(actor, target, new_role):
    with pytest.raises(PermissionDeniedError) as exc:
        check_role_change(actor, target, new_role)
    assert exc.value.reason == "role_escalation"


def test_plain_user_cannot_change_roles():
    with pytest.raises(PermissionDeniedError) as exc:
        check_role_change("user", "user", "admin")
    assert exc.value.reason == "global_role"


def test_unknown_role_is_rejected():
    with pytest.raises(ValidationError):
        check_role_change("super_admin", "user", "owner")

"""
Admin API tests — global roles, user lifecycle, task logs and project membership.
"""

import pytest

from taskhub.models import db
from taskhub.models.auth import User
from taskhub.models.project import Project
from taskhub.services import task_service


@pytest.fixture()
def people(make_user):
    return {
        "root": make_user(name="Root", email="root@example.com", role="super_admin"),
        "admin": make_user(name="Admin", email="admin@example.com", role="admin"),
        "plain": make_user(name="Plain", email="plain@example.com"),
    }


# ═══════════════════════════════════════════════════════════════
# Access control
# ═══════════════════════════════════════════════════════════════

@pytest.mark.parametrize("path", [
    "/api/v1/admin/users",
    "/api/v1/admin/tasks",
    "/api/v1/admin/tasks/logs",
    "/api/v1/admin/projects",
])
def test_plain_user_is_forbidden(client, people, auth_headers, path):
    res = client.get(path, headers=auth_headers(people["plain"]))
    assert res.status_code == 403
    assert res.get_json()["code"] == "ERR_FORBIDDEN_GLOBAL_ROLE"


def test_anonymous_is_unauthorized(client):
    assert client.get("/api/v1/admin/users").status_code == 401


def test_admin_lists_users(client, people, auth_headers):
    res = client.get("/api/v1/admin/users", headers=auth_headers(people["admin"]))
    assert res.status_code == 200
    users = res.get_json()["data"]["users"]
    assert {u["email"] for u in users} == {"root@example.com", "admin@example.com", "plain@example.com"}
    assert all("is_active" in u for u in users)


# ═══════════════════════════════════════════════════════════════
# Roles
# ═══════════════════════════════════════════════════════════════

def test_admin_promotes_user_to_admin(client, people, auth_headers):
    res = client.put(
        f"/api/v1/admin/users/{people['plain'].id}/role",
        headers=auth_headers(people["admin"]),
        json={"role": "admin"},
    )
    assert res.status_code == 200
    assert res.get_json()["data"]["user"]["role"] == "admin"


def test_admin_cannot_grant_super_admin(client, people, auth_headers):
    res = client.put(
        f"/api/v1/admin/users/{people['plain'].id}/role",
        headers=auth_headers(people["admin"]),
        json={"role": "super_admin"},
    )
    assert res.status_code == 403
    assert res.get_json()["code"] == "ERR_FORBIDDEN_ROLE_ESCALATION"


def test_admin_cannot_demote_super_admin(client, people, auth_headers):
    res = client.put(
        f"/api/v1/admin/users/{people['root'].id}/role",
        headers=auth_headers(people["admin"]),
        json={"role": "user"},
    )
    assert res.status_code == 403
    db.session.expire_all()
    assert db.session.get(User, people["root"].id).role == "super_admin"


def test_invalid_role_is_400(client, people, auth_headers):
    res = client.put(
        f"/api/v1/admin/users/{people['plain'].id}/role",
        headers=auth_headers(people["root"]),
        json={"role": "wizard"},
    )
    assert res.status_code == 400


# ═══════════════════════════════════════════════════════════════
# Super-admin lifecycle
# ═══════════════════════════════════════════════════════════════

@pytest.mark.parametrize("method, suffix, body", [
    ("put", "/password", {"new_password": "another1"}),
    ("put", "/toggle-status", None),
    ("delete", "", None),
])
def test_lifecycle_endpoints_need_super_admin(client, people, auth_headers, method, suffix, body):
    url = f"/api/v1/admin/users/{people['plain'].id}{suffix}"
    res = getattr(client, method)(url, headers=auth_headers(people["admin"]), json=body)
    assert res.status_code == 403


def test_toggle_status_blocks_login(client, people, auth_headers):
    res = client.put(
        f"/api/v1/admin/users/{people['plain'].id}/toggle-status",
        headers=auth_headers(people["root"]),
    )
    assert res.status_code == 200
    assert res.get_json()["data"]["user"]["is_active"] is False
    assert res.get_json()["message"] == "User deactivated successfully"

    login = client.post("/api/v1/auth/login", json={
        "email": "plain@example.com", "password": "password123",
    })
    assert login.status_code == 403


def test_password_reset(client, people, auth_headers):
    res = client.put(
        f"/api/v1/admin/users/{people['plain'].id}/password",
        headers=auth_headers(people["root"]),
        json={"new_password": "another1"},
    )
    assert res.status_code == 200

    login = client.post("/api/v1/auth/login", json={
        "email": "plain@example.com", "password": "another1",
    })
    assert login.status_code == 200


def test_delete_user_reassigns_projects_to_actor(client, people, make_project, auth_headers):
    project_id = make_project(people["plain"], name="Orphan").id
    plain_id = people["plain"].id

    res = client.delete(f"/api/v1/admin/users/{plain_id}", headers=auth_headers(people["root"]))
    assert res.status_code == 200

    db.session.expire_all()
    assert db.session.get(User, plain_id) is None
    assert db.session.get(Project, project_id).owner_id == people["root"].id


def test_super_admin_cannot_delete_self(client, people, auth_headers):
    res = client.delete(
        f"/api/v1/admin/users/{people['root'].id}", headers=auth_headers(people["root"])
    )
    assert res.status_code == 400
    assert res.get_json()["message"] == "Cannot delete your own account"


# ═══════════════════════════════════════════════════════════════
# Tasks + logs
# ═══════════════════════════════════════════════════════════════

def test_admin_task_listing_and_logs(client, people, make_project, make_task, auth_headers):
    owner = people["plain"]
    alpha = make_project(owner, name="Alpha")
    beta = make_project(owner, name="Beta")
    task = make_task(alpha, owner, title="A1")
    make_task(beta, owner, title="B1", status="done")
    task_service.update_task(task.id, {"status": "doing", "priority": "high"}, owner)
    headers = auth_headers(people["admin"])

    tasks = client.get("/api/v1/admin/tasks", headers=headers).get_json()["data"]["tasks"]
    assert {(t["title"], t["project_name"]) for t in tasks} == {("A1", "Alpha"), ("B1", "Beta")}

    filtered = client.get(f"/api/v1/admin/tasks?project_id={beta.id}", headers=headers)
    assert [t["title"] for t in filtered.get_json()["data"]["tasks"]] == ["B1"]

    bad = client.get("/api/v1/admin/tasks?project_id=abc", headers=headers)
    assert bad.status_code == 400

    logs = client.get("/api/v1/admin/tasks/logs?limit=1", headers=headers).get_json()["data"]["logs"]
    assert len(logs) == 1

    task_logs = client.get(f"/api/v1/admin/tasks/{task.id}/logs", headers=headers)
    assert {log["field_name"] for log in task_logs.get_json()["data"]["logs"]} == {"status", "priority"}

    assert client.get("/api/v1/admin/tasks/9999/logs", headers=headers).status_code == 404


# ═══════════════════════════════════════════════════════════════
# Projects + membership
# ═══════════════════════════════════════════════════════════════

def test_admin_project_overview_counts(client, people, make_project, make_task, add_member, auth_headers):
    project = make_project(people["plain"], name="Counted")
    add_member(project, people["admin"])
    make_task(project, people["plain"])
    make_task(project, people["plain"], title="Second")

    res = client.get("/api/v1/admin/projects", headers=auth_headers(people["admin"]))
    [row] = res.get_json()["data"]["projects"]
    assert (row["name"], row["member_count"], row["task_count"]) == ("Counted", 1, 2)


def test_admin_manages_membership_without_being_member(client, people, make_project, auth_headers):
    project = make_project(people["root"], name="Managed")
    headers = auth_headers(people["admin"])
    url = f"/api/v1/admin/projects/{project.id}/members"

    added = client.post(url, headers=headers, json={"userId": people["plain"].id, "role": "viewer"})
    assert added.status_code == 201
    assert added.get_json()["data"]["member"]["role"] == "viewer"

    dup = client.post(url, headers=headers, json={"user_id": people["plain"].id})
    assert dup.status_code == 409

    owner = client.post(url, headers=headers, json={"user_id": people["root"].id})
    assert owner.status_code == 409

    bad = client.post(url, headers=headers, json={"user_id": "x"})
    assert bad.status_code == 400

    listing = client.get(url, headers=headers).get_json()["data"]
    assert listing["project"]["name"] == "Managed"
    assert [m["user_id"] for m in listing["members"]] == [people["plain"].id]

    removed = client.delete(f"{url}/{people['plain'].id}", headers=headers)
    assert removed.status_code == 200
    assert client.get(url, headers=headers).get_json()["data"]["members"] == []

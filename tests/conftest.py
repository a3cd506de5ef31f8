"""
Shared pytest fixtures for the TaskHub test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - make_user / make_project / add_member: entity factories
    - auth_headers: Bearer header for a user
    - socket_client: Flask-SocketIO test client factory
"""

import pytest

from taskhub import create_app
from taskhub.models import db as _db
from taskhub.models.project import Project, ProjectMember
from taskhub.models.task import Task
from taskhub.services.jwt_service import generate_access_token
from taskhub.services.user_service import build_user
from taskhub.sockets import socketio


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    return create_app("testing")


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        yield
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


# ── Factories ────────────────────────────────────────────────────────────


@pytest.fixture()
def make_user():
    """Create and commit a user. Password defaults to ``password123``."""
    counter = {"n": 0}

    def _make(name=None, email=None, role="user", password="password123", is_active=True):
        counter["n"] += 1
        n = counter["n"]
        user = build_user(
            email=email or f"user{n}@example.com",
            password=password,
            name=name or f"User {n}",
            role=role,
        )
        user.is_active = is_active
        _db.session.commit()
        return user

    return _make


@pytest.fixture()
def make_project():
    def _make(owner, name="Alpha", description=None):
        project = Project(name=name, description=description, owner_id=owner.id)
        _db.session.add(project)
        _db.session.commit()
        return project

    return _make


@pytest.fixture()
def add_member():
    def _add(project, user, role="member", can_edit=True, can_delete=False):
        member = ProjectMember(
            project_id=project.id,
            user_id=user.id,
            role=role,
            can_edit=can_edit,
            can_delete=can_delete,
        )
        _db.session.add(member)
        _db.session.commit()
        return member

    return _add


@pytest.fixture()
def make_task():
    def _make(project, creator, title="Write docs", **fields):
        task = Task(project_id=project.id, created_by=creator.id, title=title, **fields)
        _db.session.add(task)
        _db.session.commit()
        return task

    return _make


@pytest.fixture()
def auth_headers():
    """Return the Authorization header for ``user``."""
    def _headers(user):
        return {"Authorization": f"Bearer {generate_access_token(user.id)}"}

    return _headers


@pytest.fixture()
def socket_client(app, client):
    """Connect a Socket.IO test client authenticated as ``user``."""
    clients = []

    def _connect(user=None, token=None):
        if token is None and user is not None:
            token = generate_access_token(user.id)
        auth = {"token": token} if token is not None else None
        sc = socketio.test_client(app, flask_test_client=client, auth=auth)
        clients.append(sc)
        return sc

    yield _connect

    for sc in clients:
        if sc.is_connected():
            sc.disconnect()

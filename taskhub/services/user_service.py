"""
User Service — accounts, profile, search/stats and admin lifecycle operations.

Lifecycle rules:
    - role change: global escalation rule first, then a single-field update
    - activate/deactivate: flips is_active; issued tokens stay valid until
      they expire, login refuses inactive accounts
    - delete: reassign owned projects to the acting admin, drop memberships,
      unassign tasks, delete the row; one transaction, never on self
"""

import logging
from datetime import date

from email_validator import EmailNotValidError, validate_email
from flask import current_app
from sqlalchemy import case, delete, func, select, update

from taskhub.core.exceptions import (
    AuthenticationError,
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from taskhub.models import db
from taskhub.models.auth import User
from taskhub.models.project import Project, ProjectMember
from taskhub.models.task import Task
from taskhub.services.permission_service import check_role_change
from taskhub.utils.crypto import BCRYPT_ROUNDS, hash_password, verify_password
from taskhub.utils.helpers import commit_or_rollback

logger = logging.getLogger(__name__)

NAME_MIN, NAME_MAX = 2, 50
PASSWORD_MIN = 6
AVATAR_URL_MAX = 500
SEARCH_LIMIT = 50


# ═══════════════════════════════════════════════════════════════
# Field validation
# ═══════════════════════════════════════════════════════════════
def normalize_email(email) -> str:
    """Validate and normalize an email address (lower-cased)."""
    if not isinstance(email, str) or not email.strip():
        raise ValidationError("Validation failed", details={"email": "Please provide a valid email"})
    try:
        valid = validate_email(email.strip(), check_deliverability=False)
    except EmailNotValidError as e:
        raise ValidationError("Validation failed", details={"email": str(e)}) from None
    return valid.normalized.lower()


def validate_name(name) -> str:
    if not isinstance(name, str) or not NAME_MIN <= len(name.strip()) <= NAME_MAX:
        raise ValidationError(
            "Validation failed",
            details={"name": f"Name must be between {NAME_MIN} and {NAME_MAX} characters"},
        )
    return name.strip()


def validate_password(password, field="password") -> str:
    if not isinstance(password, str) or len(password) < PASSWORD_MIN:
        raise ValidationError(
            "Validation failed",
            details={field: f"Password must be at least {PASSWORD_MIN} characters long"},
        )
    return password


def _hash(password: str) -> str:
    return hash_password(password, rounds=current_app.config.get("BCRYPT_ROUNDS", BCRYPT_ROUNDS))


def get_user_or_404(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFoundError(resource="User", resource_id=user_id)
    return user


def get_user_by_email(email: str) -> User | None:
    return db.session.execute(select(User).where(User.email == email)).scalar_one_or_none()


# ═══════════════════════════════════════════════════════════════
# Accounts
# ═══════════════════════════════════════════════════════════════
def build_user(*, email, password, name, role: str = "user") -> User:
    """Validate input and add a new User to the session (no commit)."""
    errors = {}
    for check in (
        lambda: normalize_email(email),
        lambda: validate_password(password),
        lambda: validate_name(name),
    ):
        try:
            check()
        except ValidationError as e:
            errors.update(e.details)
    if errors:
        raise ValidationError("Validation failed", details=errors)

    email = normalize_email(email)
    if get_user_by_email(email) is not None:
        raise ConflictError(
            resource="User", field="email", value=email,
            message="User with this email already exists",
        )

    user = User(email=email, password_hash=_hash(password), name=validate_name(name), role=role)
    db.session.add(user)
    db.session.flush()
    return user


def register_user(*, email, password, name) -> User:
    user = build_user(email=email, password=password, name=name)
    commit_or_rollback(f"register user {user.email}")
    logger.info("User %s registered", user.id)
    return user


def authenticate_user(email, password) -> User:
    """Return the user for valid credentials.

    Raises:
        AuthenticationError: unknown email or wrong password (``invalid_credentials``).
        PermissionDeniedError: credentials valid but the account is inactive.
    """
    if not isinstance(password, str) or not password:
        raise ValidationError("Validation failed", details={"password": "Password is required"})
    user = get_user_by_email(normalize_email(email))
    if user is None or not verify_password(password, user.password_hash):
        raise AuthenticationError("Invalid credentials", reason="invalid_credentials")
    if not user.is_active:
        logger.warning("Login refused for inactive user %s", user.id)
        raise PermissionDeniedError("Account is deactivated", reason="account_inactive")
    return user


def update_profile(user: User, data: dict) -> User:
    if "name" in data:
        user.name = validate_name(data["name"])
    if "avatar_url" in data:
        avatar_url = data["avatar_url"]
        if avatar_url is not None and (
            not isinstance(avatar_url, str) or len(avatar_url) > AVATAR_URL_MAX
        ):
            raise ValidationError(
                "Validation failed", details={"avatar_url": "Avatar URL must be a valid URL"}
            )
        user.avatar_url = avatar_url or None
    commit_or_rollback(f"update profile of user {user.id}")
    return user


def search_users(search: str | None = None) -> list[User]:
    """Users by name/email substring, ordered by name (max 50)."""
    stmt = select(User)
    if search:
        stmt = stmt.where(
            User.name.icontains(search, autoescape=True)
            | User.email.icontains(search, autoescape=True)
        )
    stmt = stmt.order_by(User.name.asc()).limit(SEARCH_LIMIT)
    return db.session.execute(stmt).scalars().all()


def get_user_stats(user_id: int, actor: User) -> dict:
    """Counts of tasks assigned to ``user_id``. Self or admin only."""
    if actor.id != user_id and not actor.is_admin:
        raise PermissionDeniedError("Access denied", reason="global_role")
    get_user_or_404(user_id)

    def _count_where(cond):
        return func.coalesce(func.sum(case((cond, 1), else_=0)), 0)

    row = db.session.execute(
        select(
            func.count(Task.id),
            _count_where(Task.status == "todo"),
            _count_where(Task.status == "doing"),
            _count_where(Task.status == "done"),
            _count_where((Task.due_date < date.today()) & (Task.status != "done")),
        ).where(Task.assigned_to == user_id)
    ).one()
    total, todo, doing, done, overdue = (int(v or 0) for v in row)
    return {
        "total_tasks": total,
        "todo_tasks": todo,
        "doing_tasks": doing,
        "done_tasks": done,
        "overdue_tasks": overdue,
    }


# ═══════════════════════════════════════════════════════════════
# Admin lifecycle
# ═══════════════════════════════════════════════════════════════
def list_all_users() -> list[User]:
    return db.session.execute(
        select(User).order_by(User.created_at.desc(), User.id.desc())
    ).scalars().all()


def change_user_role(target_id: int, new_role, actor: User) -> User:
    target = get_user_or_404(target_id)
    check_role_change(actor.role, target.role, new_role)
    old_role = target.role
    target.role = new_role
    commit_or_rollback(f"change role of user {target_id}")
    logger.info("User %s role %s -> %s by user %s", target_id, old_role, new_role, actor.id)
    return target


def toggle_user_status(target_id: int, actor: User) -> User:
    target = get_user_or_404(target_id)
    target.is_active = not target.is_active
    commit_or_rollback(f"toggle status of user {target_id}")
    logger.info(
        "User %s %s by user %s",
        target_id, "activated" if target.is_active else "deactivated", actor.id,
    )
    return target


def set_user_password(target_id: int, new_password, actor: User) -> User:
    validate_password(new_password, field="new_password")
    target = get_user_or_404(target_id)
    target.password_hash = _hash(new_password)
    commit_or_rollback(f"reset password of user {target_id}")
    logger.info("Password of user %s reset by user %s", target_id, actor.id)
    return target


def delete_user(target_id: int, actor: User) -> None:
    """Delete a user after handing their projects to ``actor``.

    All four steps run in one transaction; any failure rolls back all of them.
    """
    if target_id == actor.id:
        raise ValidationError("Cannot delete your own account")
    get_user_or_404(target_id)

    try:
        owned_ids = db.session.execute(
            select(Project.id).where(Project.owner_id == target_id)
        ).scalars().all()

        db.session.execute(
            update(Project).where(Project.owner_id == target_id).values(owner_id=actor.id)
        )
        if owned_ids:
            # the new owner must not keep a membership row on projects it now owns
            db.session.execute(
                delete(ProjectMember).where(
                    ProjectMember.user_id == actor.id,
                    ProjectMember.project_id.in_(owned_ids),
                )
            )
        db.session.execute(delete(ProjectMember).where(ProjectMember.user_id == target_id))
        db.session.execute(
            update(Task).where(Task.assigned_to == target_id).values(assigned_to=None)
        )
        db.session.execute(delete(User).where(User.id == target_id))
        db.session.commit()
    except Exception:
        db.session.rollback()
        logger.exception("Deleting user %s failed, rolled back", target_id)
        raise

    logger.info(
        "User %s deleted by user %s; %d project(s) reassigned",
        target_id, actor.id, len(owned_ids),
    )

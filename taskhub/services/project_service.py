"""Project CRUD and membership management, with permissions from permission_service."""

from __future__ import annotations

import logging

from sqlalchemy import and_, delete, func, or_, select
from sqlalchemy.exc import IntegrityError

from taskhub.core.exceptions import ConflictError, NotFoundError, ValidationError
from taskhub.models import db
from taskhub.models.auth import User
from taskhub.models.project import MEMBER_ROLES, Project, ProjectMember
from taskhub.models.task import Task
from taskhub.services.permission_service import resolve_project_permission
from taskhub.services.user_service import build_user, get_user_by_email, get_user_or_404, normalize_email
from taskhub.utils.helpers import commit_or_rollback, parse_bool

logger = logging.getLogger(__name__)

NAME_MAX = 255
DESCRIPTION_MAX = 1000


def get_project_or_404(project_id: int) -> Project:
    project = db.session.get(Project, project_id)
    if project is None:
        raise NotFoundError(resource="Project", resource_id=project_id)
    return project


def _validate_project_fields(data: dict, *, partial: bool) -> dict:
    fields, errors = {}, {}
    if "name" in data or not partial:
        name = data.get("name")
        if not isinstance(name, str) or not name.strip():
            errors["name"] = "Project name is required"
        elif len(name.strip()) > NAME_MAX:
            errors["name"] = f"Project name must be between 1 and {NAME_MAX} characters"
        else:
            fields["name"] = name.strip()
    if "description" in data:
        description = data.get("description")
        if description is not None and not isinstance(description, str):
            errors["description"] = "Description must be a string"
        elif description and len(description.strip()) > DESCRIPTION_MAX:
            errors["description"] = f"Description must be less than {DESCRIPTION_MAX} characters"
        else:
            fields["description"] = description.strip() if description else None
    if errors:
        raise ValidationError("Validation failed", details=errors)
    return fields


def _validate_membership_fields(data: dict, *, defaults: bool) -> dict:
    """role / can_edit / can_delete.

    New memberships (``defaults=True``) fill missing or null keys with
    member / can_edit / no can_delete. Updates only touch keys that are
    present, and a present key must carry a real value.
    """
    fields, errors = {}, {}
    if "role" in data or defaults:
        role = data.get("role")
        if role is None and defaults:
            role = "member"
        if role not in MEMBER_ROLES:
            errors["role"] = "Role must be viewer, member, or admin"
        else:
            fields["role"] = role
    for flag, default in (("can_edit", True), ("can_delete", False)):
        if flag in data or defaults:
            try:
                value = parse_bool(data.get(flag), default=default if defaults else None)
            except ValueError:
                value = None
            if value is None:
                errors[flag] = f"{flag} must be a boolean"
            else:
                fields[flag] = value
    if errors:
        raise ValidationError("Validation failed", details=errors)
    return fields


def _member_row(project_id: int, user_id: int) -> ProjectMember | None:
    return db.session.execute(
        select(ProjectMember).where(
            ProjectMember.project_id == project_id,
            ProjectMember.user_id == user_id,
        )
    ).scalar_one_or_none()


def _attach_member(project: Project, user: User, fields: dict) -> ProjectMember:
    if user.id == project.owner_id:
        raise ConflictError(
            resource="ProjectMember", field="user_id", value=str(user.id),
            message="User is the owner of this project",
        )
    if _member_row(project.id, user.id) is not None:
        raise _duplicate_member(user.id)
    member = ProjectMember(project_id=project.id, user_id=user.id, **fields)
    db.session.add(member)
    return member


def _duplicate_member(user_id: int) -> ConflictError:
    return ConflictError(
        resource="ProjectMember", field="user_id", value=str(user_id),
        message="User is already a member of this project",
    )


def _duplicate_email(email: str) -> ConflictError:
    return ConflictError(
        resource="User", field="email", value=email,
        message='User with this email already exists. Use "Add Member" instead.',
    )


def _commit_or_conflict(action: str, conflict: ConflictError) -> None:
    """Commit a new membership; a unique-constraint hit from a concurrent insert is a 409."""
    try:
        commit_or_rollback(action)
    except IntegrityError:
        raise conflict from None


# ═══════════════════════════════════════════════════════════════
# Queries
# ═══════════════════════════════════════════════════════════════
def list_projects_for_user(user_id: int) -> list[dict]:
    """Projects owned or joined by ``user_id``, newest first, with permissions."""
    rows = db.session.execute(
        select(Project, ProjectMember)
        .outerjoin(
            ProjectMember,
            and_(ProjectMember.project_id == Project.id, ProjectMember.user_id == user_id),
        )
        .where(or_(Project.owner_id == user_id, ProjectMember.user_id == user_id))
        .order_by(Project.created_at.desc(), Project.id.desc())
    ).all()

    result = []
    for project, member in rows:
        is_owner = project.owner_id == user_id
        result.append({
            **project.to_dict(),
            "user_role": "owner" if is_owner else member.role,
            "can_edit": True if is_owner else bool(member.can_edit),
            "can_delete": True if is_owner else bool(member.can_delete),
        })
    return result


def list_project_members(project_id: int) -> list[ProjectMember]:
    return db.session.execute(
        select(ProjectMember)
        .where(ProjectMember.project_id == project_id)
        .order_by(ProjectMember.created_at.asc(), ProjectMember.id.asc())
    ).scalars().all()


def get_project_detail(project_id: int, actor: User) -> dict:
    """Project, members and the caller's permission. Requires project access."""
    permission = resolve_project_permission(actor.id, project_id)
    project = get_project_or_404(project_id)
    return {
        "project": project.to_dict(),
        "members": [m.to_dict() for m in list_project_members(project_id)],
        "permission": permission.to_dict(),
    }


def list_all_projects() -> list[dict]:
    """Every project with member and task counts (admin view)."""
    member_count = (
        select(func.count(ProjectMember.id))
        .where(ProjectMember.project_id == Project.id)
        .correlate(Project)
        .scalar_subquery()
    )
    task_count = (
        select(func.count(Task.id))
        .where(Task.project_id == Project.id)
        .correlate(Project)
        .scalar_subquery()
    )
    rows = db.session.execute(
        select(Project, member_count, task_count)
        .order_by(Project.created_at.desc(), Project.id.desc())
    ).all()
    return [
        {**project.to_dict(), "member_count": members or 0, "task_count": tasks or 0}
        for project, members, tasks in rows
    ]


# ═══════════════════════════════════════════════════════════════
# Project CRUD
# ═══════════════════════════════════════════════════════════════
def create_project(owner: User, data: dict) -> Project:
    fields = _validate_project_fields(data, partial=False)
    project = Project(owner_id=owner.id, **fields)
    db.session.add(project)
    commit_or_rollback("create project")
    logger.info("Project %s created by user %s", project.id, owner.id)
    return project


def update_project(project_id: int, data: dict, actor: User) -> Project:
    resolve_project_permission(actor.id, project_id).require_edit()
    fields = _validate_project_fields(data, partial=True)
    if not fields:
        raise ValidationError("Validation failed", details={"name": "Nothing to update"})
    project = get_project_or_404(project_id)
    for key, value in fields.items():
        setattr(project, key, value)
    commit_or_rollback(f"update project {project_id}")
    logger.info("Project %s updated by user %s", project_id, actor.id)
    return project


def delete_project(project_id: int, actor: User) -> None:
    """Owner only; tasks, history, comments and memberships cascade."""
    resolve_project_permission(actor.id, project_id).require_owner()
    db.session.execute(delete(Project).where(Project.id == project_id))
    commit_or_rollback(f"delete project {project_id}")
    logger.info("Project %s deleted by user %s", project_id, actor.id)


# ═══════════════════════════════════════════════════════════════
# Membership (owner or can_edit)
# ═══════════════════════════════════════════════════════════════
def add_member_by_email(project_id: int, data: dict, actor: User) -> ProjectMember:
    resolve_project_permission(actor.id, project_id).require_edit()
    project = get_project_or_404(project_id)
    fields = _validate_membership_fields(data, defaults=True)

    user = get_user_by_email(normalize_email(data.get("email")))
    if user is None:
        raise NotFoundError(resource="User")

    member = _attach_member(project, user, fields)
    _commit_or_conflict(f"add member {user.id} to project {project_id}", _duplicate_member(user.id))
    logger.info("User %s added to project %s by user %s", user.id, project_id, actor.id)
    return member


def invite_member(project_id: int, data: dict, actor: User) -> tuple[User, ProjectMember]:
    """Create a ``user`` account and add it to the project in one commit."""
    resolve_project_permission(actor.id, project_id).require_edit()
    project = get_project_or_404(project_id)
    fields = _validate_membership_fields(data, defaults=True)

    email = normalize_email(data.get("email"))
    if get_user_by_email(email) is not None:
        raise _duplicate_email(email)

    try:
        user = build_user(email=email, password=data.get("password"), name=data.get("name"))
    except IntegrityError:
        db.session.rollback()
        raise _duplicate_email(email) from None
    member = _attach_member(project, user, fields)
    commit_or_rollback(f"invite {email} to project {project_id}")
    logger.info("User %s invited to project %s by user %s", user.id, project_id, actor.id)
    return user, member


def update_member(project_id: int, member_user_id: int, data: dict, actor: User) -> ProjectMember:
    resolve_project_permission(actor.id, project_id).require_edit()
    fields = _validate_membership_fields(data, defaults=False)
    member = _member_row(project_id, member_user_id)
    if member is None:
        raise NotFoundError(resource="Member", resource_id=member_user_id)
    for key, value in fields.items():
        setattr(member, key, value)
    commit_or_rollback(f"update member {member_user_id} of project {project_id}")
    logger.info(
        "Membership of user %s in project %s updated by user %s: %s",
        member_user_id, project_id, actor.id, fields,
    )
    return member


def remove_member(project_id: int, member_user_id: int, actor: User) -> None:
    resolve_project_permission(actor.id, project_id).require_edit()
    _delete_member(project_id, member_user_id)
    logger.info("User %s removed from project %s by user %s", member_user_id, project_id, actor.id)


def _delete_member(project_id: int, member_user_id: int) -> None:
    member = _member_row(project_id, member_user_id)
    if member is None:
        raise NotFoundError(resource="Member", resource_id=member_user_id)
    db.session.delete(member)
    commit_or_rollback(f"remove member {member_user_id} from project {project_id}")


# ═══════════════════════════════════════════════════════════════
# Membership (global admin path)
# ═══════════════════════════════════════════════════════════════
def admin_add_member(project_id: int, data: dict, actor: User) -> ProjectMember:
    raw_user_id = data.get("user_id", data.get("userId"))
    try:
        user_id = int(raw_user_id)
    except (TypeError, ValueError):
        raise ValidationError(
            "Validation failed", details={"user_id": "User ID must be a valid integer"}
        ) from None

    fields = _validate_membership_fields(data, defaults=True)
    user = get_user_or_404(user_id)
    project = get_project_or_404(project_id)
    member = _attach_member(project, user, fields)
    _commit_or_conflict(f"admin add member {user_id} to project {project_id}", _duplicate_member(user_id))
    logger.info("Admin %s added user %s to project %s", actor.id, user_id, project_id)
    return member


def admin_remove_member(project_id: int, member_user_id: int, actor: User) -> None:
    get_project_or_404(project_id)
    _delete_member(project_id, member_user_id)
    logger.info("Admin %s removed user %s from project %s", actor.id, member_user_id, project_id)

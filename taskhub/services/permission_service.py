"""
Permission Service — project permission resolution and global-role rules.

Two independent axes:

  Project permission (per user, per project):
    owner   → role "owner", can_edit + can_delete, whatever the membership rows say
    member  → role / can_edit / can_delete from the project_members row
    neither → PermissionDeniedError(reason="project_access")

  Global role (user < admin < super_admin):
    only super_admin may grant, revoke or modify super_admin;
    admin manages user/admin roles only.

Evaluation is deny-by-default and always hits the database; there is no
permission cache, so membership changes apply to the very next request.
"""

import logging
from dataclasses import asdict, dataclass

from sqlalchemy import and_, select

from taskhub.core.exceptions import NotFoundError, PermissionDeniedError, ValidationError
from taskhub.models import db
from taskhub.models.auth import ADMIN_ROLES, GLOBAL_ROLES
from taskhub.models.project import Project, ProjectMember

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProjectPermission:
    """Effective permission of one user on one project."""

    project_id: int
    user_id: int
    is_owner: bool
    role: str
    can_edit: bool
    can_delete: bool

    def to_dict(self) -> dict:
        return asdict(self)

    def require_edit(self) -> "ProjectPermission":
        if not self.can_edit:
            logger.warning(
                "User %s denied edit on project %s (role=%s)",
                self.user_id, self.project_id, self.role,
            )
            raise PermissionDeniedError(
                "You do not have edit permission on this project", reason="project_edit"
            )
        return self

    def require_delete(self) -> "ProjectPermission":
        if not self.can_delete:
            logger.warning(
                "User %s denied delete on project %s (role=%s)",
                self.user_id, self.project_id, self.role,
            )
            raise PermissionDeniedError(
                "You do not have delete permission on this project", reason="project_delete"
            )
        return self

    def require_owner(self) -> "ProjectPermission":
        if not self.is_owner:
            logger.warning("User %s is not the owner of project %s", self.user_id, self.project_id)
            raise PermissionDeniedError(
                "Only the project owner can do this", reason="project_owner"
            )
        return self


# ═══════════════════════════════════════════════════════════════
# Project permission
# ═══════════════════════════════════════════════════════════════
def resolve_project_permission(user_id: int, project_id: int) -> ProjectPermission:
    """Compute the effective permission of ``user_id`` on ``project_id``.

    Raises:
        NotFoundError: project does not exist.
        PermissionDeniedError: user is neither owner nor member (reason ``project_access``).
    """
    row = db.session.execute(
        select(
            Project.owner_id,
            ProjectMember.role,
            ProjectMember.can_edit,
            ProjectMember.can_delete,
        )
        .outerjoin(
            ProjectMember,
            and_(
                ProjectMember.project_id == Project.id,
                ProjectMember.user_id == user_id,
            ),
        )
        .where(Project.id == project_id)
    ).first()

    if row is None:
        raise NotFoundError(resource="Project", resource_id=project_id)

    owner_id, member_role, member_can_edit, member_can_delete = row

    if owner_id == user_id:
        return ProjectPermission(
            project_id=project_id,
            user_id=user_id,
            is_owner=True,
            role="owner",
            can_edit=True,
            can_delete=True,
        )

    if member_role is not None:
        return ProjectPermission(
            project_id=project_id,
            user_id=user_id,
            is_owner=False,
            role=member_role,
            can_edit=bool(member_can_edit),
            can_delete=bool(member_can_delete),
        )

    logger.warning("User %s denied access to project %s — not a member", user_id, project_id)
    raise PermissionDeniedError("Access denied to this project", reason="project_access")


def can_access_project(user_id: int, project_id: int) -> bool:
    """True when ``user_id`` owns or is a member of ``project_id``."""
    try:
        resolve_project_permission(user_id, project_id)
    except (NotFoundError, PermissionDeniedError):
        return False
    return True


# ═══════════════════════════════════════════════════════════════
# Global role rules
# ═══════════════════════════════════════════════════════════════
def require_global_role(actor_role: str, *allowed: str) -> None:
    """Raise PermissionDeniedError(reason="global_role") unless ``actor_role`` is allowed."""
    if actor_role not in allowed:
        raise PermissionDeniedError("Access denied", reason="global_role")


def check_role_change(actor_role: str, target_role: str, new_role: str) -> None:
    """Validate a global role mutation before anything is written.

    Args:
        actor_role:  Global role of the caller.
        target_role: Role the target user currently has.
        new_role:    Requested role.

    Raises:
        PermissionDeniedError: caller is not an admin (``global_role``) or an
            admin touches super_admin on either side (``role_escalation``).
        ValidationError: ``new_role`` is not a known global role.
    """
    if actor_role not in ADMIN_ROLES:
        raise PermissionDeniedError("Access denied", reason="global_role")

    if new_role not in GLOBAL_ROLES:
        raise ValidationError(
            "Role must be user, admin, or super_admin",
            details={"role": f"must be one of: {', '.join(GLOBAL_ROLES)}"},
        )

    if actor_role == "super_admin":
        return

    if new_role == "super_admin":
        raise PermissionDeniedError(
            "Only Super Admin can assign Super Admin role", reason="role_escalation"
        )
    if target_role == "super_admin":
        raise PermissionDeniedError(
            "Only Super Admin can modify Super Admin roles", reason="role_escalation"
        )

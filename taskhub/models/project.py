"""Project domain model: projects and their non-owner memberships."""

from datetime import datetime, timezone

from taskhub.models import db


MEMBER_ROLES = ("viewer", "member", "admin")


class Project(db.Model):
    """A workspace for tasks. Always has exactly one owner."""

    __tablename__ = "projects"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    owner_id = db.Column(
        db.Integer,
        db.ForeignKey("users.id"),
        nullable=False,
        index=True,
    )
    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    owner = db.relationship("User", foreign_keys=[owner_id], lazy="joined")
    members = db.relationship(
        "ProjectMember",
        back_populates="project",
        lazy="dynamic",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    tasks = db.relationship(
        "Task",
        back_populates="project",
        lazy="dynamic",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "owner_id": self.owner_id,
            "owner_name": self.owner.name if self.owner else None,
            "owner_email": self.owner.email if self.owner else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<Project {self.id}: {self.name}>"


class ProjectMember(db.Model):
    """Scoped role + edit/delete flags for a non-owner user on a project."""

    __tablename__ = "project_members"

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(
        db.Integer, db.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False
    )
    user_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    role = db.Column(db.String(20), nullable=False, default="member")  # viewer, member, admin
    can_edit = db.Column(db.Boolean, nullable=False, default=True)
    can_delete = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        db.UniqueConstraint("project_id", "user_id", name="uq_project_member"),
        db.CheckConstraint(
            "role IN ('viewer', 'member', 'admin')", name="ck_project_members_role"
        ),
        db.Index("ix_project_members_user_id", "user_id"),
    )

    project = db.relationship("Project", back_populates="members")
    user = db.relationship("User", lazy="joined")

    def to_dict(self):
        return {
            "id": self.id,
            "project_id": self.project_id,
            "user_id": self.user_id,
            "name": self.user.name if self.user else None,
            "email": self.user.email if self.user else None,
            "user_role": self.user.role if self.user else None,
            "role": self.role,
            "can_edit": bool(self.can_edit),
            "can_delete": bool(self.can_delete),
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

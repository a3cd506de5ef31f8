"""
Auth Models — users and their global role.

The global role (user / admin / super_admin) is orthogonal to the
project-level role held through ProjectMember.
"""

from datetime import datetime, timezone

from taskhub.models import db


GLOBAL_ROLES = ("user", "admin", "super_admin")
ADMIN_ROLES = frozenset({"admin", "super_admin"})


# ═══════════════════════════════════════════════════════════════
# USERS
# ═══════════════════════════════════════════════════════════════
class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(200), unique=True, nullable=False)
    password_hash = db.Column(db.String(256), nullable=False)
    name = db.Column(db.String(100), nullable=False)
    role = db.Column(db.String(20), nullable=False, default="user")  # user, admin, super_admin
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    avatar_url = db.Column(db.String(500))
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        db.CheckConstraint(
            "role IN ('user', 'admin', 'super_admin')", name="ck_users_role"
        ),
        db.Index("ix_users_name", "name"),
    )

    @property
    def is_admin(self) -> bool:
        return self.role in ADMIN_ROLES

    @property
    def is_super_admin(self) -> bool:
        return self.role == "super_admin"

    def to_dict(self, include_private=False):
        d = {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "avatar_url": self.avatar_url,
        }
        if include_private:
            d.update({
                "role": self.role,
                "is_active": self.is_active,
                "created_at": self.created_at.isoformat() if self.created_at else None,
            })
        return d

    def __repr__(self):
        return f"<User {self.id}: {self.email} ({self.role})>"

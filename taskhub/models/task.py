"""
Task domain model.

Models:
    - Task: unit of work inside a project.
    - Comment: free-text note attached to a task (create-only).
"""

from datetime import datetime, timezone

from taskhub.models import db


TASK_STATUSES = ("todo", "doing", "done")
TASK_PRIORITIES = ("low", "medium", "high")


class Task(db.Model):
    __tablename__ = "tasks"
    __table_args__ = (
        db.CheckConstraint("status IN ('todo', 'doing', 'done')", name="ck_tasks_status"),
        db.CheckConstraint("priority IN ('low', 'medium', 'high')", name="ck_tasks_priority"),
        db.Index("idx_tasks_status", "status"),
        db.Index("idx_tasks_assigned_to", "assigned_to"),
        db.Index("idx_tasks_project_id", "project_id"),
    )

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    status = db.Column(db.String(10), nullable=False, default="todo")
    priority = db.Column(db.String(10), nullable=False, default="medium")
    project_id = db.Column(
        db.Integer,
        db.ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
    )
    assigned_to = db.Column(
        db.Integer,
        db.ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    created_by = db.Column(
        db.Integer,
        db.ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        comment="NULL once the creating user has been deleted",
    )
    due_date = db.Column(db.Date, nullable=True)
    created_at = db.Column(
        db.DateTime(timezone=True), nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at = db.Column(
        db.DateTime(timezone=True), nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    project = db.relationship("Project", back_populates="tasks")
    creator = db.relationship("User", foreign_keys=[created_by], lazy="joined")
    assignee = db.relationship("User", foreign_keys=[assigned_to], lazy="joined")
    comments = db.relationship(
        "Comment",
        back_populates="task",
        lazy="dynamic",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "status": self.status,
            "priority": self.priority,
            "project_id": self.project_id,
            "assigned_to": self.assigned_to,
            "created_by": self.created_by,
            "due_date": self.due_date.isoformat() if self.due_date else None,
            "creator_name": self.creator.name if self.creator else None,
            "assignee_name": self.assignee.name if self.assignee else None,
            "assignee_email": self.assignee.email if self.assignee else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<Task {self.id}: {self.title} [{self.status}]>"


class Comment(db.Model):
    __tablename__ = "comments"
    __table_args__ = (
        db.Index("idx_comments_task_id", "task_id"),
    )

    id = db.Column(db.Integer, primary_key=True)
    task_id = db.Column(
        db.Integer, db.ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False
    )
    user_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    content = db.Column(db.Text, nullable=False)
    created_at = db.Column(
        db.DateTime(timezone=True), nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at = db.Column(
        db.DateTime(timezone=True), nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    task = db.relationship("Task", back_populates="comments")
    user = db.relationship("User", lazy="joined")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "task_id": self.task_id,
            "user_id": self.user_id,
            "user_name": self.user.name if self.user else None,
            "avatar_url": self.user.avatar_url if self.user else None,
            "content": self.content,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

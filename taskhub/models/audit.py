"""
TaskHub
Audit domain model.

Models:
    - TaskHistory: immutable, append-only field-level change log for tasks.
"""

from datetime import UTC, date, datetime

from taskhub.models import db


def _as_text(value):
    """Render a field value the way it is stored in the history table."""
    if value is None:
        return None
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return str(value)


class TaskHistory(db.Model):
    """
    One row per changed field per update call.

    Rows are never updated; they disappear only through the cascade when
    their task is deleted.
    """

    __tablename__ = "task_history"
    __table_args__ = (
        db.Index("idx_task_history_task_id", "task_id"),
        db.Index("idx_task_history_changed_at", "changed_at"),
    )

    id = db.Column(db.Integer, primary_key=True)
    task_id = db.Column(
        db.Integer,
        db.ForeignKey("tasks.id", ondelete="CASCADE"),
        nullable=False,
    )
    changed_by = db.Column(
        db.Integer,
        db.ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        comment="NULL once the acting user has been deleted",
    )
    field_name = db.Column(db.String(30), nullable=False)
    old_value = db.Column(db.Text, nullable=True)
    new_value = db.Column(db.Text, nullable=True)

    changed_at = db.Column(
        db.DateTime(timezone=True), nullable=False,
        default=lambda: datetime.now(UTC),
    )

    changer = db.relationship("User", lazy="joined")
    task = db.relationship("Task", lazy="joined")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "task_id": self.task_id,
            "task_title": self.task.title if self.task else None,
            "changed_by": self.changed_by,
            "changed_by_name": self.changer.name if self.changer else None,
            "field_name": self.field_name,
            "old_value": self.old_value,
            "new_value": self.new_value,
            "changed_at": self.changed_at.isoformat() if self.changed_at else None,
        }

    def __repr__(self):
        return f"<TaskHistory {self.id}: task {self.task_id}.{self.field_name}>"


# ── Convenience writer ───────────────────────────────────────────────────────

def write_task_history(
    *,
    task_id: int,
    changed_by: int | None,
    field_name: str,
    old_value=None,
    new_value=None,
) -> TaskHistory:
    """
    Append a single history row.  Uses ``flush`` so callers keep
    transaction control; errors propagate to the enclosing mutation.

    Returns the (flushed) TaskHistory instance.
    """
    entry = TaskHistory(
        task_id=task_id,
        changed_by=changed_by,
        field_name=field_name,
        old_value=_as_text(old_value),
        new_value=_as_text(new_value),
    )
    db.session.add(entry)
    db.session.flush()
    return entry

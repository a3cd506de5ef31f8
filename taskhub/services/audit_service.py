"""
Audit Service — task history recording and queries.

Recording never commits: the rows are flushed inside the caller's
transaction so a failed history write rolls back the field changes it
describes.
"""

import logging

from sqlalchemy import select

from taskhub.models import db
from taskhub.models.audit import TaskHistory, write_task_history

logger = logging.getLogger(__name__)


def record_task_changes(*, task_id: int, changed_by: int | None, diffs) -> list[TaskHistory]:
    """Append one history row per FieldDiff."""
    return [
        write_task_history(
            task_id=task_id,
            changed_by=changed_by,
            field_name=diff.field,
            old_value=diff.old_value,
            new_value=diff.new_value,
        )
        for diff in diffs
    ]


def list_task_history(task_id: int | None = None, limit: int | None = None) -> list[TaskHistory]:
    """History rows, newest first; all tasks when ``task_id`` is None."""
    stmt = select(TaskHistory).order_by(TaskHistory.changed_at.desc(), TaskHistory.id.desc())
    if task_id is not None:
        stmt = stmt.where(TaskHistory.task_id == task_id)
    if limit:
        stmt = stmt.limit(limit)
    return db.session.execute(stmt).scalars().all()

"""
Task Service — task CRUD, field-level diffing and status cycling.

Update flow (one transaction):

    resolve permission (can_edit)
        → normalize + validate every submitted field
        → diff against stored values (by value, not by presence)
        → empty diff            → NoChangesError, nothing written
        → new assignee lacks project access → ValidationError, nothing written
        → write fields + one TaskHistory row per diff
        → commit (rollback on any failure, including the history write)
        → broadcast ``task-updated`` to the project room

Permissions per operation:
    detail / comment / history / create → project access
    update / advance                    → can_edit
    delete                              → can_delete
"""

import logging
from dataclasses import dataclass
from typing import Any

from sqlalchemy import delete, select

from taskhub.core.exceptions import NoChangesError, NotFoundError, ValidationError
from taskhub.models import db
from taskhub.models.task import TASK_PRIORITIES, TASK_STATUSES, Comment, Task
from taskhub.services.audit_service import record_task_changes
from taskhub.services.notification import NotificationService
from taskhub.services.permission_service import (
    can_access_project,
    resolve_project_permission,
)
from taskhub.utils.helpers import commit_or_rollback, parse_date_input

logger = logging.getLogger(__name__)

ALLOWED_FIELDS = ("title", "description", "status", "priority", "assigned_to", "due_date")

STATUS_CYCLE = {"todo": "doing", "doing": "done", "done": "todo"}

TITLE_MAX = 255
DESCRIPTION_MAX = 1000
COMMENT_MAX = 500


@dataclass(frozen=True)
class FieldDiff:
    """A single changed task field."""

    field: str
    old_value: Any
    new_value: Any

    def to_dict(self) -> dict:
        return {
            "field": self.field,
            "old_value": _jsonable(self.old_value),
            "new_value": _jsonable(self.new_value),
        }


def _jsonable(value):
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return value


# ── Field normalizers ────────────────────────────────────────────────────────
# Each returns the normalized value or raises ValueError with a user message.

def _normalize_title(value):
    if value is None or not isinstance(value, str) or not value.strip():
        raise ValueError("Task title is required")
    value = value.strip()
    if len(value) > TITLE_MAX:
        raise ValueError(f"Task title must be between 1 and {TITLE_MAX} characters")
    return value


def _normalize_description(value):
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValueError("Description must be a string")
    value = value.strip()
    if len(value) > DESCRIPTION_MAX:
        raise ValueError(f"Description must be less than {DESCRIPTION_MAX} characters")
    return value or None


def _normalize_status(value):
    if value not in TASK_STATUSES:
        raise ValueError("Status must be todo, doing, or done")
    return value


def _normalize_priority(value):
    if value not in TASK_PRIORITIES:
        raise ValueError("Priority must be low, medium, or high")
    return value


def _normalize_assignee(value):
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValueError("Assigned user must be a valid user ID")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValueError("Assigned user must be a valid user ID") from None


_NORMALIZERS = {
    "title": _normalize_title,
    "description": _normalize_description,
    "status": _normalize_status,
    "priority": _normalize_priority,
    "assigned_to": _normalize_assignee,
    "due_date": parse_date_input,
}


def normalize_task_fields(data: dict, fields=ALLOWED_FIELDS) -> dict:
    """Normalize every allowed key present in ``data``.

    Unknown keys are ignored. A key present with ``None`` is kept, which
    clears nullable fields.

    Raises:
        ValidationError: one or more fields are invalid; ``details`` maps
            field name to message.
    """
    normalized = {}
    errors = {}
    for field in fields:
        if field not in data:
            continue
        try:
            normalized[field] = _NORMALIZERS[field](data[field])
        except ValueError as exc:
            errors[field] = str(exc)
    if errors:
        raise ValidationError("Validation failed", details=errors)
    return normalized


def compute_task_diffs(task: Task, changes: dict) -> list[FieldDiff]:
    """Diff submitted changes against ``task``; only changed values survive."""
    normalized = normalize_task_fields(changes)
    diffs = []
    for field in ALLOWED_FIELDS:
        if field not in normalized:
            continue
        old_value = getattr(task, field)
        new_value = normalized[field]
        if old_value != new_value:
            diffs.append(FieldDiff(field=field, old_value=old_value, new_value=new_value))
    return diffs


# ── Lookups ──────────────────────────────────────────────────────────────────

def get_task_or_404(task_id: int) -> Task:
    task = db.session.get(Task, task_id)
    if task is None:
        raise NotFoundError(resource="Task", resource_id=task_id)
    return task


def _require_assignee_access(assignee_id: int, project_id: int) -> None:
    if not can_access_project(assignee_id, project_id):
        raise ValidationError(
            "Assigned user does not have access to this project",
            details={"assigned_to": "must be the project owner or a project member"},
        )


# ── Queries ──────────────────────────────────────────────────────────────────

def list_project_tasks(project_id: int, *, status=None, assigned_to=None) -> list[Task]:
    """Tasks of a project, newest first. Caller must already hold project access."""
    stmt = select(Task).where(Task.project_id == project_id)
    if status:
        stmt = stmt.where(Task.status == _filter_status(status))
    if assigned_to not in (None, ""):
        stmt = stmt.where(Task.assigned_to == _filter_int(assigned_to, "assigned_to"))
    stmt = stmt.order_by(Task.created_at.desc(), Task.id.desc())
    return db.session.execute(stmt).scalars().all()


def list_all_tasks(*, status=None, project_id=None) -> list[dict]:
    """Every task across projects (admin view), with the project name."""
    stmt = select(Task)
    if status:
        stmt = stmt.where(Task.status == _filter_status(status))
    if project_id not in (None, ""):
        stmt = stmt.where(Task.project_id == _filter_int(project_id, "project_id"))
    stmt = stmt.order_by(Task.created_at.desc(), Task.id.desc())
    return [
        {**task.to_dict(), "project_name": task.project.name if task.project else None}
        for task in db.session.execute(stmt).scalars()
    ]


def _filter_status(value):
    if value not in TASK_STATUSES:
        raise ValidationError("Invalid status filter", details={"status": "must be todo, doing, or done"})
    return value


def _filter_int(value, name):
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid {name} filter", details={name: "must be an integer"}) from None


def get_task_detail(task_id: int, actor) -> dict:
    """Task plus its comments (newest first). Requires project access."""
    task = get_task_or_404(task_id)
    resolve_project_permission(actor.id, task.project_id)
    comments = db.session.execute(
        select(Comment)
        .where(Comment.task_id == task.id)
        .order_by(Comment.created_at.desc(), Comment.id.desc())
    ).scalars()
    return {"task": task.to_dict(), "comments": [c.to_dict() for c in comments]}


# ── Mutations ────────────────────────────────────────────────────────────────

def create_task(project_id: int, data: dict, actor) -> Task:
    """Create a task in ``project_id``. Requires project access."""
    resolve_project_permission(actor.id, project_id)

    if "title" not in data:
        raise ValidationError("Validation failed", details={"title": "Task title is required"})
    fields = normalize_task_fields(data)

    assignee_id = fields.get("assigned_to")
    if assignee_id is not None:
        _require_assignee_access(assignee_id, project_id)

    task = Task(
        title=fields["title"],
        description=fields.get("description"),
        status=fields.get("status") or "todo",
        priority=fields.get("priority") or "medium",
        assigned_to=assignee_id,
        due_date=fields.get("due_date"),
        project_id=project_id,
        created_by=actor.id,
    )
    db.session.add(task)
    commit_or_rollback(f"create task in project {project_id}")
    logger.info("Task %s created in project %s by user %s", task.id, project_id, actor.id)

    NotificationService.task_created(task, actor)
    return task


def update_task(task_id: int, changes: dict, actor) -> tuple[Task, list[FieldDiff]]:
    """Apply a partial update, audit every changed field and broadcast it.

    Returns:
        (task, diffs) after commit.

    Raises:
        NotFoundError, PermissionDeniedError, ValidationError, NoChangesError.
    """
    task = get_task_or_404(task_id)
    resolve_project_permission(actor.id, task.project_id).require_edit()

    diffs = compute_task_diffs(task, changes)
    if not diffs:
        raise NoChangesError()

    for diff in diffs:
        if diff.field == "assigned_to" and diff.new_value is not None:
            _require_assignee_access(diff.new_value, task.project_id)

    try:
        for diff in diffs:
            setattr(task, diff.field, diff.new_value)
        record_task_changes(task_id=task.id, changed_by=actor.id, diffs=diffs)
        db.session.commit()
    except Exception:
        db.session.rollback()
        logger.exception("Task %s update failed, rolled back", task_id)
        raise

    logger.info(
        "Task %s updated by user %s: %s",
        task.id, actor.id, ", ".join(d.field for d in diffs),
    )
    NotificationService.task_updated(task, actor)
    return task, diffs


def advance_task_status(task_id: int, actor) -> tuple[Task, list[FieldDiff]]:
    """Move the task one step along todo → doing → done → todo."""
    task = get_task_or_404(task_id)
    return update_task(task_id, {"status": STATUS_CYCLE[task.status]}, actor)


def delete_task(task_id: int, actor) -> None:
    """Delete a task with its comments and history. Requires can_delete."""
    task = get_task_or_404(task_id)
    project_id = task.project_id
    resolve_project_permission(actor.id, project_id).require_delete()

    db.session.execute(delete(Task).where(Task.id == task_id))
    commit_or_rollback(f"delete task {task_id}")
    logger.info("Task %s deleted from project %s by user %s", task_id, project_id, actor.id)

    NotificationService.task_deleted(task_id, project_id, actor)


def add_comment(task_id: int, content, actor) -> Comment:
    """Attach a comment to a task. Requires project access."""
    task = get_task_or_404(task_id)
    resolve_project_permission(actor.id, task.project_id)

    if not isinstance(content, str) or not content.strip():
        raise ValidationError("Validation failed", details={"content": "Comment content is required"})
    content = content.strip()
    if len(content) > COMMENT_MAX:
        raise ValidationError(
            "Validation failed",
            details={"content": f"Comment must be between 1 and {COMMENT_MAX} characters"},
        )

    comment = Comment(task_id=task.id, user_id=actor.id, content=content)
    db.session.add(comment)
    commit_or_rollback(f"add comment to task {task_id}")

    NotificationService.comment_added(comment, task.project_id)
    return comment

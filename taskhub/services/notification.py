"""
TaskHub
Notification Service — real-time fan-out to project rooms.

Every emit happens after the mutation has been committed. Delivery is
fire-and-forget: an emit failure is logged at WARNING and never fails the
request that triggered it.
"""

import logging

from taskhub.sockets import project_room, socketio

logger = logging.getLogger(__name__)


class NotificationService:
    """Stateless service class for project room broadcasts."""

    @staticmethod
    def _emit(event, payload, project_id):
        try:
            socketio.emit(event, payload, to=project_room(project_id))
        except Exception as exc:
            logger.warning(
                "Failed to emit %s to project %s: %s", event, project_id, exc
            )

    # ── Task events ───────────────────────────────────────────────────────

    @staticmethod
    def task_created(task, actor):
        NotificationService._emit(
            "task-created",
            {
                "task": task.to_dict(),
                "project_id": task.project_id,
                "created_by": actor.name,
            },
            task.project_id,
        )

    @staticmethod
    def task_updated(task, actor):
        NotificationService._emit(
            "task-updated",
            {
                "task": task.to_dict(),
                "project_id": task.project_id,
                "updated_by": actor.name,
            },
            task.project_id,
        )

    @staticmethod
    def task_deleted(task_id, project_id, actor):
        NotificationService._emit(
            "task-deleted",
            {
                "task_id": task_id,
                "project_id": project_id,
                "deleted_by": actor.name,
            },
            project_id,
        )

    # ── Comment events ────────────────────────────────────────────────────

    @staticmethod
    def comment_added(comment, project_id):
        NotificationService._emit(
            "comment-added",
            {
                "comment": comment.to_dict(),
                "task_id": comment.task_id,
                "project_id": project_id,
            },
            project_id,
        )

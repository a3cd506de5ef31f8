"""
Task Blueprint — tasks, comments and change history.

  GET    /api/v1/tasks/project/<project_id>   — list (status, assigned_to filters)
  POST   /api/v1/tasks/project/<project_id>   — create
  GET    /api/v1/tasks/<task_id>              — task + comments
  PUT    /api/v1/tasks/<task_id>              — partial update (audited, broadcast)
  POST   /api/v1/tasks/<task_id>/advance      — todo → doing → done → todo
  DELETE /api/v1/tasks/<task_id>              — delete
  POST   /api/v1/tasks/<task_id>/comments     — add comment
  GET    /api/v1/tasks/<task_id>/history      — field change history
"""

from flask import Blueprint, request

from taskhub.middleware.permission_required import current_user, login_required
from taskhub.middleware.project_access import require_project_access
from taskhub.services import task_service
from taskhub.services.audit_service import list_task_history
from taskhub.services.permission_service import resolve_project_permission
from taskhub.utils.helpers import api_success, get_json_body

task_bp = Blueprint("task_bp", __name__, url_prefix="/api/v1/tasks")


@task_bp.route("/project/<int:project_id>", methods=["GET"])
@require_project_access("project_id")
def list_tasks(project_id):
    tasks = task_service.list_project_tasks(
        project_id,
        status=request.args.get("status"),
        assigned_to=request.args.get("assigned_to"),
    )
    return api_success({"tasks": [t.to_dict() for t in tasks]})


@task_bp.route("/project/<int:project_id>", methods=["POST"])
@login_required
def create_task(project_id):
    task = task_service.create_task(project_id, get_json_body(), current_user())
    return api_success({"task": task.to_dict()}, message="Task created successfully", status=201)


@task_bp.route("/<int:task_id>", methods=["GET"])
@login_required
def get_task(task_id):
    return api_success(task_service.get_task_detail(task_id, current_user()))


@task_bp.route("/<int:task_id>", methods=["PUT"])
@login_required
def update_task(task_id):
    task, diffs = task_service.update_task(task_id, get_json_body(), current_user())
    return api_success(
        {"task": task.to_dict(), "changes": [d.to_dict() for d in diffs]},
        message="Task updated successfully",
    )


@task_bp.route("/<int:task_id>/advance", methods=["POST"])
@login_required
def advance_task(task_id):
    task, diffs = task_service.advance_task_status(task_id, current_user())
    return api_success(
        {"task": task.to_dict(), "changes": [d.to_dict() for d in diffs]},
        message="Task status updated",
    )


@task_bp.route("/<int:task_id>", methods=["DELETE"])
@login_required
def delete_task(task_id):
    task_service.delete_task(task_id, current_user())
    return api_success(message="Task deleted successfully")


@task_bp.route("/<int:task_id>/comments", methods=["POST"])
@login_required
def add_comment(task_id):
    comment = task_service.add_comment(task_id, get_json_body().get("content"), current_user())
    return api_success(
        {"comment": comment.to_dict()}, message="Comment added successfully", status=201
    )


@task_bp.route("/<int:task_id>/history", methods=["GET"])
@login_required
def task_history(task_id):
    task = task_service.get_task_or_404(task_id)
    resolve_project_permission(current_user().id, task.project_id)
    return api_success({"history": [h.to_dict() for h in list_task_history(task.id)]})

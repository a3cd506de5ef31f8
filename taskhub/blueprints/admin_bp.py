"""
Admin Blueprint — global user, task and project administration.

admin or super_admin:
  GET    /api/v1/admin/users
  PUT    /api/v1/admin/users/<id>/role
  GET    /api/v1/admin/tasks                          — status, project_id filters
  GET    /api/v1/admin/tasks/logs
  GET    /api/v1/admin/tasks/<id>/logs
  GET    /api/v1/admin/projects
  GET    /api/v1/admin/projects/<id>/members
  POST   /api/v1/admin/projects/<id>/members
  DELETE /api/v1/admin/projects/<id>/members/<user_id>

super_admin only:
  PUT    /api/v1/admin/users/<id>/password
  PUT    /api/v1/admin/users/<id>/toggle-status
  DELETE /api/v1/admin/users/<id>                      — never self
"""

from flask import Blueprint, request

from taskhub.blueprints import query_int
from taskhub.middleware.permission_required import current_user, require_global_role
from taskhub.services import project_service, task_service, user_service
from taskhub.services.audit_service import list_task_history
from taskhub.utils.helpers import api_success, get_json_body

admin_bp = Blueprint("admin_bp", __name__, url_prefix="/api/v1/admin")

ADMINS = ("admin", "super_admin")


# ═══════════════════════════════════════════════════════════════
# Users
# ═══════════════════════════════════════════════════════════════
@admin_bp.route("/users", methods=["GET"])
@require_global_role(*ADMINS)
def list_users():
    users = user_service.list_all_users()
    return api_success({"users": [u.to_dict(include_private=True) for u in users]})


@admin_bp.route("/users/<int:user_id>/role", methods=["PUT"])
@require_global_role(*ADMINS)
def update_user_role(user_id):
    user = user_service.change_user_role(user_id, get_json_body().get("role"), current_user())
    return api_success(
        {"user": user.to_dict(include_private=True)}, message="User role updated successfully"
    )


@admin_bp.route("/users/<int:user_id>/password", methods=["PUT"])
@require_global_role("super_admin")
def reset_user_password(user_id):
    user_service.set_user_password(user_id, get_json_body().get("new_password"), current_user())
    return api_success(message="Password reset successfully")


@admin_bp.route("/users/<int:user_id>/toggle-status", methods=["PUT"])
@require_global_role("super_admin")
def toggle_user_status(user_id):
    user = user_service.toggle_user_status(user_id, current_user())
    return api_success(
        {"user": user.to_dict(include_private=True)},
        message=f"User {'activated' if user.is_active else 'deactivated'} successfully",
    )


@admin_bp.route("/users/<int:user_id>", methods=["DELETE"])
@require_global_role("super_admin")
def delete_user(user_id):
    user_service.delete_user(user_id, current_user())
    return api_success(message="User deleted successfully")


# ═══════════════════════════════════════════════════════════════
# Tasks
# ═══════════════════════════════════════════════════════════════
@admin_bp.route("/tasks", methods=["GET"])
@require_global_role(*ADMINS)
def list_tasks():
    tasks = task_service.list_all_tasks(
        status=request.args.get("status"),
        project_id=query_int(request.args, "project_id"),
    )
    return api_success({"tasks": tasks})


@admin_bp.route("/tasks/logs", methods=["GET"])
@require_global_role(*ADMINS)
def all_task_logs():
    logs = list_task_history(limit=query_int(request.args, "limit"))
    return api_success({"logs": [h.to_dict() for h in logs]})


@admin_bp.route("/tasks/<int:task_id>/logs", methods=["GET"])
@require_global_role(*ADMINS)
def task_logs(task_id):
    task_service.get_task_or_404(task_id)
    return api_success({"logs": [h.to_dict() for h in list_task_history(task_id)]})


# ═══════════════════════════════════════════════════════════════
# Projects
# ═══════════════════════════════════════════════════════════════
@admin_bp.route("/projects", methods=["GET"])
@require_global_role(*ADMINS)
def list_projects():
    return api_success({"projects": project_service.list_all_projects()})


@admin_bp.route("/projects/<int:project_id>/members", methods=["GET"])
@require_global_role(*ADMINS)
def project_members(project_id):
    project = project_service.get_project_or_404(project_id)
    members = project_service.list_project_members(project_id)
    return api_success({"project": project.to_dict(), "members": [m.to_dict() for m in members]})


@admin_bp.route("/projects/<int:project_id>/members", methods=["POST"])
@require_global_role(*ADMINS)
def add_project_member(project_id):
    member = project_service.admin_add_member(project_id, get_json_body(), current_user())
    return api_success(
        {"member": member.to_dict()}, message="User added to project successfully", status=201
    )


@admin_bp.route("/projects/<int:project_id>/members/<int:user_id>", methods=["DELETE"])
@require_global_role(*ADMINS)
def remove_project_member(project_id, user_id):
    project_service.admin_remove_member(project_id, user_id, current_user())
    return api_success(message="User removed from project successfully")

"""
Project Blueprint — projects and memberships.

  GET    /api/v1/projects                              — own + joined projects
  POST   /api/v1/projects                              — create (caller becomes owner)
  GET    /api/v1/projects/<id>                         — detail + members
  PUT    /api/v1/projects/<id>                         — update (can_edit)
  DELETE /api/v1/projects/<id>                         — delete (owner)
  POST   /api/v1/projects/<id>/members                 — add existing user by email
  POST   /api/v1/projects/<id>/invite                  — create user + membership
  PUT    /api/v1/projects/<id>/members/<user_id>       — update membership
  DELETE /api/v1/projects/<id>/members/<user_id>       — remove member
"""

from flask import Blueprint

from taskhub.middleware.permission_required import current_user, login_required
from taskhub.services import project_service
from taskhub.utils.helpers import api_success, get_json_body

project_bp = Blueprint("project_bp", __name__, url_prefix="/api/v1/projects")


@project_bp.route("", methods=["GET"])
@login_required
def list_projects():
    return api_success({"projects": project_service.list_projects_for_user(current_user().id)})


@project_bp.route("", methods=["POST"])
@login_required
def create_project():
    project = project_service.create_project(current_user(), get_json_body())
    return api_success(
        {"project": project.to_dict()}, message="Project created successfully", status=201
    )


@project_bp.route("/<int:project_id>", methods=["GET"])
@login_required
def get_project(project_id):
    return api_success(project_service.get_project_detail(project_id, current_user()))


@project_bp.route("/<int:project_id>", methods=["PUT"])
@login_required
def update_project(project_id):
    project = project_service.update_project(project_id, get_json_body(), current_user())
    return api_success({"project": project.to_dict()}, message="Project updated successfully")


@project_bp.route("/<int:project_id>", methods=["DELETE"])
@login_required
def delete_project(project_id):
    project_service.delete_project(project_id, current_user())
    return api_success(message="Project deleted successfully")


# ── Members ──────────────────────────────────────────────────────────────────

@project_bp.route("/<int:project_id>/members", methods=["POST"])
@login_required
def add_member(project_id):
    member = project_service.add_member_by_email(project_id, get_json_body(), current_user())
    return api_success(
        {"member": member.to_dict()}, message="Member added successfully", status=201
    )


@project_bp.route("/<int:project_id>/invite", methods=["POST"])
@login_required
def invite_member(project_id):
    user, member = project_service.invite_member(project_id, get_json_body(), current_user())
    return api_success(
        {"user": user.to_dict(), "member": member.to_dict()},
        message="User created and added to project successfully",
        status=201,
    )


@project_bp.route("/<int:project_id>/members/<int:user_id>", methods=["PUT"])
@login_required
def update_member(project_id, user_id):
    member = project_service.update_member(project_id, user_id, get_json_body(), current_user())
    return api_success({"member": member.to_dict()}, message="Member updated successfully")


@project_bp.route("/<int:project_id>/members/<int:user_id>", methods=["DELETE"])
@login_required
def remove_member(project_id, user_id):
    project_service.remove_member(project_id, user_id, current_user())
    return api_success(message="Member removed successfully")

"""
User Blueprint — lookup for member assignment and task statistics.

  GET /api/v1/users?search=      — name/email search (max 50)
  GET /api/v1/users/<id>         — user detail
  GET /api/v1/users/<id>/stats   — assigned task counts (self or admin)
"""

from flask import Blueprint, request

from taskhub.middleware.permission_required import current_user, login_required
from taskhub.services.user_service import get_user_or_404, get_user_stats, search_users
from taskhub.utils.helpers import api_success

user_bp = Blueprint("user_bp", __name__, url_prefix="/api/v1/users")


@user_bp.route("", methods=["GET"])
@login_required
def list_users():
    users = search_users(request.args.get("search", "").strip() or None)
    return api_success({"users": [u.to_dict() for u in users]})


@user_bp.route("/<int:user_id>", methods=["GET"])
@login_required
def get_user(user_id):
    user = get_user_or_404(user_id)
    data = user.to_dict()
    data.update(role=user.role, created_at=user.created_at.isoformat() if user.created_at else None)
    return api_success({"user": data})


@user_bp.route("/<int:user_id>/stats", methods=["GET"])
@login_required
def user_stats(user_id):
    return api_success({"stats": get_user_stats(user_id, current_user())})

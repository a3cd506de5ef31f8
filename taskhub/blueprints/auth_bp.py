"""
Auth Blueprint — registration, login and own profile.

  POST /api/v1/auth/register    — create account → access token
  POST /api/v1/auth/login       — email + password → access token
  GET  /api/v1/auth/profile     — current user profile
  PUT  /api/v1/auth/profile     — update name / avatar_url
"""

import logging

from flask import Blueprint

from taskhub.middleware.permission_required import current_user, login_required
from taskhub.services.jwt_service import issue_token_response
from taskhub.services.user_service import authenticate_user, register_user, update_profile
from taskhub.utils.helpers import api_success, get_json_body

logger = logging.getLogger(__name__)

auth_bp = Blueprint("auth_bp", __name__, url_prefix="/api/v1/auth")


@auth_bp.route("/register", methods=["POST"])
def register():
    """
    Body: { "email": "...", "password": "...", "name": "..." }
    """
    data = get_json_body()
    user = register_user(
        email=data.get("email"),
        password=data.get("password"),
        name=data.get("name"),
    )
    return api_success(
        {"user": user.to_dict(include_private=True), **issue_token_response(user.id)},
        message="User registered successfully",
        status=201,
    )


@auth_bp.route("/login", methods=["POST"])
def login():
    """
    Body: { "email": "...", "password": "..." }
    """
    data = get_json_body()
    user = authenticate_user(data.get("email"), data.get("password"))
    logger.info("User %s logged in", user.id)
    return api_success(
        {"user": user.to_dict(include_private=True), **issue_token_response(user.id)},
        message="Login successful",
    )


@auth_bp.route("/profile", methods=["GET"])
@login_required
def get_profile():
    return api_success({"user": current_user().to_dict(include_private=True)})


@auth_bp.route("/profile", methods=["PUT"])
@login_required
def put_profile():
    user = update_profile(current_user(), get_json_body())
    return api_success(
        {"user": user.to_dict(include_private=True)},
        message="Profile updated successfully",
    )

"""
Permission Decorators — authentication and global-role checks for routes.

Usage:
    @bp.route("/profile")
    @login_required
    def profile():
        ...

    @bp.route("/users/<int:user_id>/role", methods=["PUT"])
    @require_global_role("admin", "super_admin")
    def update_role(user_id):
        ...

Both decorators raise the core exceptions; the app-level error handlers
turn them into JSON responses.
"""

import functools
import logging

from flask import g

from taskhub.core.exceptions import AuthenticationError
from taskhub.services import permission_service

logger = logging.getLogger(__name__)

_AUTH_MESSAGES = {
    "missing_token": "Access token required",
    "expired_token": "Token expired",
    "invalid_token": "Invalid token",
    "unknown_user": "Invalid token - user not found",
}


def current_user():
    """The authenticated User; raises AuthenticationError when absent."""
    user = getattr(g, "current_user", None)
    if user is None:
        reason = getattr(g, "auth_error", None) or "missing_token"
        raise AuthenticationError(_AUTH_MESSAGES.get(reason, "Authentication required"), reason=reason)
    return user


def login_required(f):
    """Decorator: require a valid Bearer token."""
    @functools.wraps(f)
    def decorated(*args, **kwargs):
        current_user()
        return f(*args, **kwargs)
    return decorated


def require_global_role(*roles: str):
    """
    Decorator: require the authenticated user to hold one of ``roles``.

    Args:
        roles: Global role names, e.g. "admin", "super_admin".
    """
    def decorator(f):
        @functools.wraps(f)
        def decorated(*args, **kwargs):
            user = current_user()
            if user.role not in roles:
                logger.warning(
                    "User %d denied: role '%s' not in %s on %s",
                    user.id, user.role, roles, f.__name__,
                )
            permission_service.require_global_role(user.role, *roles)
            return f(*args, **kwargs)
        return decorated
    return decorator

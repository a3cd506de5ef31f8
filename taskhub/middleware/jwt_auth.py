"""
JWT Auth Middleware — parses the Bearer token and sets ``g.current_user``.

The middleware never rejects a request by itself: it records why
authentication failed in ``g.auth_error`` and leaves the decision to the
route decorators in ``taskhub.middleware.permission_required``, so public
endpoints (register, login, health) keep working without a token.

    g.current_user  → User or None
    g.auth_error    → None | "missing_token" | "expired_token"
                      | "invalid_token" | "unknown_user"
"""

import logging

import jwt as pyjwt
from flask import g, request

from taskhub.models import db
from taskhub.models.auth import User
from taskhub.services.jwt_service import user_id_from_token

logger = logging.getLogger(__name__)

# Paths that skip JWT parsing entirely
JWT_SKIP_PREFIXES = (
    "/api/v1/auth/login",
    "/api/v1/auth/register",
    "/api/v1/health",
)


def bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith("Bearer "):
        return None
    return auth_header[7:].strip() or None


def init_jwt_middleware(app):
    """Register JWT middleware as a before_request hook."""

    @app.before_request
    def _jwt_auth():
        g.current_user = None
        g.auth_error = "missing_token"

        path = request.path
        if not path.startswith("/api/v1/"):
            return
        for prefix in JWT_SKIP_PREFIXES:
            if path.startswith(prefix):
                return

        token = bearer_token()
        if token is None:
            return

        try:
            user_id = user_id_from_token(token)
        except pyjwt.ExpiredSignatureError:
            g.auth_error = "expired_token"
            return
        except pyjwt.InvalidTokenError as exc:
            logger.info("Rejected token on %s: %s", path, exc)
            g.auth_error = "invalid_token"
            return

        user = db.session.get(User, user_id)
        if user is None:
            g.auth_error = "unknown_user"
            return

        # Deactivated users keep their tokens until expiry
        g.current_user = user
        g.auth_error = None

"""Standardised API error responses.

Usage
-----
    from taskhub.utils.errors import api_error, E

    return api_error(E.NOT_FOUND, "Task not found")
    return api_error(E.VALIDATION_INVALID, "Title is required", details={"title": "Required"})

Services raise the exceptions from ``taskhub.core.exceptions``;
``register_error_handlers`` turns them into the same body shape:

    {"success": false, "message": "...", "code": "ERR_...", "details": {...}}
"""

from __future__ import annotations

import logging

from flask import current_app, jsonify, request
from werkzeug.exceptions import HTTPException

from taskhub.core.exceptions import (
    AuthenticationError,
    ConflictError,
    NoChangesError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)

logger = logging.getLogger(__name__)


# ── Error code constants ──────────────────────────────────────────────
class E:
    """Machine-readable error code constants (``ERR_`` prefix)."""

    # Validation – HTTP 400
    VALIDATION_INVALID = "ERR_VALIDATION_INVALID"
    NO_CHANGES = "ERR_NO_CHANGES"

    # Authentication – HTTP 401 / 403
    AUTH_REQUIRED = "ERR_AUTH_REQUIRED"
    AUTH_EXPIRED = "ERR_AUTH_EXPIRED"
    AUTH_INVALID_TOKEN = "ERR_AUTH_INVALID_TOKEN"
    AUTH_INVALID_CREDENTIALS = "ERR_AUTH_INVALID_CREDENTIALS"

    # Permissions – HTTP 403
    FORBIDDEN = "ERR_FORBIDDEN"
    FORBIDDEN_PROJECT_ACCESS = "ERR_FORBIDDEN_PROJECT_ACCESS"
    FORBIDDEN_PROJECT_EDIT = "ERR_FORBIDDEN_PROJECT_EDIT"
    FORBIDDEN_PROJECT_DELETE = "ERR_FORBIDDEN_PROJECT_DELETE"
    FORBIDDEN_PROJECT_OWNER = "ERR_FORBIDDEN_PROJECT_OWNER"
    FORBIDDEN_GLOBAL_ROLE = "ERR_FORBIDDEN_GLOBAL_ROLE"
    FORBIDDEN_ROLE_ESCALATION = "ERR_FORBIDDEN_ROLE_ESCALATION"
    FORBIDDEN_ACCOUNT_INACTIVE = "ERR_FORBIDDEN_ACCOUNT_INACTIVE"

    # Not-found – HTTP 404
    NOT_FOUND = "ERR_NOT_FOUND"

    # Conflict / duplicate – HTTP 409
    CONFLICT_DUPLICATE = "ERR_CONFLICT_DUPLICATE"

    # Transport – HTTP 405 / 413 / 415 / 429
    METHOD_NOT_ALLOWED = "ERR_METHOD_NOT_ALLOWED"
    PAYLOAD_TOO_LARGE = "ERR_PAYLOAD_TOO_LARGE"
    UNSUPPORTED_MEDIA = "ERR_UNSUPPORTED_MEDIA"
    RATE_LIMITED = "ERR_RATE_LIMITED"

    # Server – HTTP 500
    INTERNAL = "ERR_INTERNAL"


# ── Default HTTP status mapping ───────────────────────────────────────
_DEFAULT_STATUS: dict[str, int] = {
    E.VALIDATION_INVALID: 400,
    E.NO_CHANGES: 400,
    E.AUTH_REQUIRED: 401,
    E.AUTH_EXPIRED: 401,
    E.AUTH_INVALID_TOKEN: 403,
    E.AUTH_INVALID_CREDENTIALS: 401,
    E.FORBIDDEN: 403,
    E.FORBIDDEN_PROJECT_ACCESS: 403,
    E.FORBIDDEN_PROJECT_EDIT: 403,
    E.FORBIDDEN_PROJECT_DELETE: 403,
    E.FORBIDDEN_PROJECT_OWNER: 403,
    E.FORBIDDEN_GLOBAL_ROLE: 403,
    E.FORBIDDEN_ROLE_ESCALATION: 403,
    E.FORBIDDEN_ACCOUNT_INACTIVE: 403,
    E.NOT_FOUND: 404,
    E.CONFLICT_DUPLICATE: 409,
    E.METHOD_NOT_ALLOWED: 405,
    E.PAYLOAD_TOO_LARGE: 413,
    E.UNSUPPORTED_MEDIA: 415,
    E.RATE_LIMITED: 429,
    E.INTERNAL: 500,
}

_AUTH_REASON_CODES = {
    "missing_token": E.AUTH_REQUIRED,
    "expired_token": E.AUTH_EXPIRED,
    "invalid_token": E.AUTH_INVALID_TOKEN,
    "unknown_user": E.AUTH_REQUIRED,
    "invalid_credentials": E.AUTH_INVALID_CREDENTIALS,
}

_FORBIDDEN_REASON_CODES = {
    "project_access": E.FORBIDDEN_PROJECT_ACCESS,
    "project_edit": E.FORBIDDEN_PROJECT_EDIT,
    "project_delete": E.FORBIDDEN_PROJECT_DELETE,
    "project_owner": E.FORBIDDEN_PROJECT_OWNER,
    "global_role": E.FORBIDDEN_GLOBAL_ROLE,
    "role_escalation": E.FORBIDDEN_ROLE_ESCALATION,
    "account_inactive": E.FORBIDDEN_ACCOUNT_INACTIVE,
}

_HTTP_STATUS_CODES = {
    400: E.VALIDATION_INVALID,
    401: E.AUTH_REQUIRED,
    403: E.FORBIDDEN,
    404: E.NOT_FOUND,
    405: E.METHOD_NOT_ALLOWED,
    409: E.CONFLICT_DUPLICATE,
    413: E.PAYLOAD_TOO_LARGE,
    415: E.UNSUPPORTED_MEDIA,
    429: E.RATE_LIMITED,
}


def http_error_code(status: int | None) -> str:
    """Error code for a bare werkzeug ``HTTPException`` status.

    Unlisted 4xx statuses fall back to ``ERR_VALIDATION_INVALID``;
    anything else is ``ERR_INTERNAL``.
    """
    if status in _HTTP_STATUS_CODES:
        return _HTTP_STATUS_CODES[status]
    if status is not None and 400 <= status < 500:
        return E.VALIDATION_INVALID
    return E.INTERNAL


def api_error(
    code: str,
    message: str,
    *,
    status: int | None = None,
    details: dict | None = None,
):
    """Return a standard JSON error response.

    Parameters
    ----------
    code : str
        Machine-readable error code (use ``E.*`` constants).
    message : str
        Human-readable explanation for developers / UI.
    status : int, optional
        HTTP status override.  Falls back to ``_DEFAULT_STATUS[code]``,
        then to ``400``.
    details : dict, optional
        Extra structured payload (field errors, reason, debug info).

    Returns
    -------
    tuple[Response, int]
        ``(jsonify(body), http_status)`` – drop-in for Flask views.
    """

    http_status = status or _DEFAULT_STATUS.get(code, 400)

    body: dict = {
        "success": False,
        "message": message,
        "code": code,
    }
    if details:
        body["details"] = details

    return jsonify(body), http_status


def register_error_handlers(app):
    """Map the core exception hierarchy onto JSON error responses."""

    @app.errorhandler(ValidationError)
    def _handle_validation(error: ValidationError):
        return api_error(E.VALIDATION_INVALID, str(error), details=error.details)

    @app.errorhandler(NoChangesError)
    def _handle_no_changes(error: NoChangesError):
        return api_error(E.NO_CHANGES, str(error))

    @app.errorhandler(AuthenticationError)
    def _handle_authentication(error: AuthenticationError):
        code = _AUTH_REASON_CODES.get(error.reason, E.AUTH_REQUIRED)
        return api_error(code, str(error))

    @app.errorhandler(PermissionDeniedError)
    def _handle_forbidden(error: PermissionDeniedError):
        code = _FORBIDDEN_REASON_CODES.get(error.reason, E.FORBIDDEN)
        return api_error(code, str(error), details={"reason": error.reason})

    @app.errorhandler(NotFoundError)
    def _handle_not_found(error: NotFoundError):
        logger.debug("Not found: %s", error)
        return api_error(E.NOT_FOUND, error.public_message)

    @app.errorhandler(ConflictError)
    def _handle_conflict(error: ConflictError):
        return api_error(E.CONFLICT_DUPLICATE, str(error), details={"field": error.field})

    @app.errorhandler(404)
    def _handle_http_404(error):
        return api_error(E.NOT_FOUND, "Not found", details={"path": request.path})

    @app.errorhandler(405)
    def _handle_http_405(error):
        return api_error(E.METHOD_NOT_ALLOWED, "Method not allowed")

    @app.errorhandler(413)
    def _handle_http_413(error):
        return api_error(E.PAYLOAD_TOO_LARGE, "Request body too large")

    @app.errorhandler(415)
    def _handle_http_415(error):
        return api_error(E.UNSUPPORTED_MEDIA, "Content-Type must be application/json")

    @app.errorhandler(429)
    def _handle_rate_limited(error):
        return api_error(
            E.RATE_LIMITED, "Too many requests", details={"retry_after": error.description}
        )

    @app.errorhandler(Exception)
    def _handle_unexpected(error: Exception):
        if isinstance(error, HTTPException):
            return api_error(
                http_error_code(error.code),
                error.description or error.name,
                status=error.code,
            )
        logger.exception("Unexpected error endpoint=%s", request.endpoint)
        details = None
        if current_app.config.get("EXPOSE_ERROR_DETAILS"):
            details = {"debug": f"{type(error).__name__}: {error}"}
        return api_error(E.INTERNAL, "Internal server error", details=details)

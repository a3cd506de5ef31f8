"""
Platform-wide exception hierarchy.

Services raise these types; the app factory registers one handler per
type (see ``taskhub.utils.errors.register_error_handlers``) so every
endpoint answers with the same status codes and error body.

Usage:
    from taskhub.core.exceptions import NotFoundError, ValidationError

    raise NotFoundError(resource="Task", resource_id=42)
    raise ValidationError("Title is required", details={"title": "..."})
"""


class NotFoundError(Exception):
    """Raised when a requested resource does not exist.

    Args:
        resource: Human-readable model/entity name (e.g. "Project", "Task").
        resource_id: The PK that was looked up. Included in logs, not in HTTP response.
    """

    def __init__(self, resource: str, resource_id: int | str | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        super().__init__(msg)

    @property
    def public_message(self) -> str:
        return f"{self.resource} not found"


class ValidationError(Exception):
    """Raised when input is malformed or violates a business rule.

    Maps to HTTP 400.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown for structured API responses.
                 Keys are field names; values are error descriptions.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class ConflictError(Exception):
    """Raised when an operation would create a duplicate unique constraint violation.

    Maps to HTTP 409.

    Args:
        resource: Model name.
        field: The unique field that would be duplicated.
        value: The conflicting value.
        message: Optional override for the human-readable message.
    """

    def __init__(
        self,
        resource: str,
        field: str,
        value: str | None = None,
        message: str | None = None,
    ) -> None:
        self.resource = resource
        self.field = field
        self.value = value
        super().__init__(message or f"{resource} with {field}={value!r} already exists")


class AuthenticationError(Exception):
    """Raised when the caller is not (or no longer) authenticated.

    Maps to HTTP 401, except ``invalid_token`` which maps to 403.

    Reasons: ``missing_token``, ``expired_token``, ``invalid_token``,
    ``unknown_user``, ``invalid_credentials``.
    """

    def __init__(self, message: str, reason: str = "missing_token") -> None:
        self.reason = reason
        super().__init__(message)


class PermissionDeniedError(Exception):
    """Raised when an authenticated caller is not allowed to act.

    Maps to HTTP 403. ``reason`` is machine-checkable and distinguishes,
    for example, missing project access from a global role escalation.

    Reasons: ``project_access``, ``project_edit``, ``project_delete``,
    ``project_owner``, ``global_role``, ``role_escalation``,
    ``account_inactive``.
    """

    def __init__(self, message: str, reason: str = "forbidden") -> None:
        self.reason = reason
        super().__init__(message)


class NoChangesError(Exception):
    """Raised when an update carries no effective change.

    Maps to HTTP 400. Callers must treat this as a failure, not a no-op
    success.
    """

    def __init__(self, message: str = "No valid updates provided") -> None:
        super().__init__(message)

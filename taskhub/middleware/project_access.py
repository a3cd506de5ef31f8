"""
Project Access Middleware — resolves the caller's project permission.

Provides the ``@require_project_access`` decorator: it authenticates the
caller, resolves their permission on the project named by a route
parameter and stores it in ``g.project_permission``.

Usage:
    @bp.route("/tasks/project/<int:project_id>")
    @require_project_access("project_id")
    def list_tasks(project_id):
        ...  # Only reachable for the owner or a member

Edit and delete checks stay in the services, which call
``require_edit`` / ``require_delete`` on the same permission.
"""

import functools

from flask import g, request

from taskhub.middleware.permission_required import current_user
from taskhub.services.permission_service import resolve_project_permission


def require_project_access(param_name: str = "project_id"):
    """
    Decorator: require project access.

    Args:
        param_name: Name of the Flask route parameter containing the project ID.
    """
    def decorator(f):
        @functools.wraps(f)
        def decorated(*args, **kwargs):
            user = current_user()

            project_id = kwargs.get(param_name)
            if project_id is None:
                project_id = (request.view_args or {}).get(param_name)

            g.project_permission = resolve_project_permission(user.id, project_id)
            return f(*args, **kwargs)
        return decorated
    return decorator

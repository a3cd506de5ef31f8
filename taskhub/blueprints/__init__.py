"""
TaskHub
Blueprint registry.
"""

from taskhub.core.exceptions import ValidationError


def query_int(args, name):
    """Optional integer query parameter; ValidationError when malformed."""
    raw = args.get(name)
    if raw in (None, ""):
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid {name}", details={name: "must be an integer"}) from None


def register_blueprints(app):
    from taskhub.blueprints.admin_bp import admin_bp
    from taskhub.blueprints.auth_bp import auth_bp
    from taskhub.blueprints.health_bp import health_bp
    from taskhub.blueprints.project_bp import project_bp
    from taskhub.blueprints.task_bp import task_bp
    from taskhub.blueprints.user_bp import user_bp

    app.register_blueprint(health_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(user_bp)
    app.register_blueprint(project_bp)
    app.register_blueprint(task_bp)
    app.register_blueprint(admin_bp)

"""Shared utility functions for blueprints and services.

api_success:       standard success envelope
get_json_body:     request JSON as a dict (never None)
parse_date_input:  strict ISO date parsing (raises ValueError)
parse_bool:        JSON/query boolean coercion
commit_or_rollback: service-layer commit with rollback + logging
"""
import logging
from datetime import date, datetime

from flask import jsonify, request

from taskhub.models import db

logger = logging.getLogger(__name__)


def api_success(data=None, message=None, status=200):
    """Return the standard success envelope.

    Shape: ``{"success": true, "message": "...", "data": {...}}`` where
    ``message`` and ``data`` are omitted when not given.
    """
    body = {"success": True}
    if message:
        body["message"] = message
    if data is not None:
        body["data"] = data
    return jsonify(body), status


def get_json_body() -> dict:
    """Return the request JSON object, or an empty dict for missing/invalid bodies."""
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def parse_date_input(value):
    """Parse an ISO-8601 date (or datetime) string, raising ValueError on bad input.

    Returns None for empty input. Accepts ``date`` objects as-is.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise ValueError("Due date must be a valid date")
    try:
        return date.fromisoformat(value)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).date()
    except ValueError as exc:
        raise ValueError("Due date must be a valid date") from exc


def parse_bool(value, default=None):
    """Coerce JSON/query booleans ("true", 1, True...) to bool.

    Returns ``default`` for None; raises ValueError for anything else
    that is not a recognised boolean literal.
    """
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("true", "1", "yes", "on"):
            return True
        if lowered in ("false", "0", "no", "off"):
            return False
    raise ValueError(f"Not a boolean: {value!r}")


# ── Database commit helper ───────────────────────────────────────────────────

def commit_or_rollback(action: str):
    """Commit the current session; on failure roll back, log and re-raise.

    ``action`` names the operation in the log line (e.g. "update task 7").
    """
    try:
        db.session.commit()
    except Exception:
        db.session.rollback()
        logger.exception("Database error while trying to %s", action)
        raise

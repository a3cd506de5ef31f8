"""
Real-time layer — Flask-SocketIO server and project rooms.

Clients connect with ``auth={"token": "<access token>"}``; connections
without a valid token are refused. A connected client joins the room
``project-<id>`` with the ``join-project`` event, which is acknowledged
with ``{"success": bool}``. Server events (``task-created``,
``task-updated``, ``task-deleted``, ``comment-added``) are emitted by
``taskhub.services.notification`` to the project room.
"""

import logging

import jwt
from flask import request, session
from flask_socketio import SocketIO, join_room, leave_room

from taskhub.models import db
from taskhub.models.auth import User
from taskhub.services.jwt_service import user_id_from_token
from taskhub.services.permission_service import can_access_project

logger = logging.getLogger(__name__)

socketio = SocketIO()


def project_room(project_id) -> str:
    return f"project-{project_id}"


def _coerce_project_id(raw):
    if isinstance(raw, dict):
        raw = raw.get("project_id")
    try:
        return int(raw)
    except (TypeError, ValueError):
        return None


@socketio.on("connect")
def on_connect(auth=None):
    token = auth.get("token") if isinstance(auth, dict) else None
    if not token:
        logger.info("Socket connection refused: no token sid=%s", request.sid)
        return False
    try:
        user_id = user_id_from_token(token)
    except jwt.PyJWTError as exc:
        logger.info("Socket connection refused: %s sid=%s", exc, request.sid)
        return False

    user = db.session.get(User, user_id)
    if user is None or not user.is_active:
        logger.info("Socket connection refused: unknown or inactive user %s", user_id)
        return False

    session["user_id"] = user.id
    logger.debug("Socket connected user=%s sid=%s", user.id, request.sid)
    return True


@socketio.on("disconnect")
def on_disconnect(*args):
    logger.debug("Socket disconnected user=%s sid=%s", session.get("user_id"), request.sid)


@socketio.on("join-project")
def on_join_project(data):
    user_id = session.get("user_id")
    project_id = _coerce_project_id(data)
    if user_id is None or project_id is None:
        return {"success": False}

    if not can_access_project(user_id, project_id):
        logger.warning("Socket join denied user=%s project=%s", user_id, project_id)
        return {"success": False}

    join_room(project_room(project_id))
    logger.debug("User %s joined %s", user_id, project_room(project_id))
    return {"success": True}


@socketio.on("leave-project")
def on_leave_project(data):
    project_id = _coerce_project_id(data)
    if project_id is None:
        return {"success": False}
    leave_room(project_room(project_id))
    return {"success": True}

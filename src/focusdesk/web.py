"""JSON HTTP API for the board front end."""

import logging
import secrets
from datetime import timedelta
from urllib.parse import urlencode

from flask import Flask, jsonify, redirect, request, session
from flask_cors import CORS

from . import workflows
from .config import Config, load_config
from .errors import (
    AuthRequired,
    FocusdeskError,
    NotFound,
    PersistenceFailure,
    Unauthenticated,
    UpstreamUnavailable,
    ValidationError,
)
from .workflows import Services, build_services

logger = logging.getLogger(__name__)

_STATUS_CODES = {
    Unauthenticated: 401,
    ValidationError: 400,
    NotFound: 404,
    AuthRequired: 401,
    UpstreamUnavailable: 502,
    PersistenceFailure: 500,
}


def _status_for(error: FocusdeskError) -> int:
    for cls in type(error).__mro__:
        if cls in _STATUS_CODES:
            return _STATUS_CODES[cls]
    return 500


def create_app(config: Config | None = None, services: Services | None = None) -> Flask:
    """Create the Flask app around a Services bundle."""
    if services is None:
        services = build_services(config or load_config())
    config = services.config

    app = Flask(__name__)
    if config.session_secret:
        app.secret_key = config.session_secret
    else:
        logger.warning("SESSION_SECRET not configured - sessions will not survive a restart")
        app.secret_key = secrets.token_hex(32)
    app.config.update(
        SESSION_COOKIE_HTTPONLY=True,
        SESSION_COOKIE_SECURE=config.cookie_secure,
        SESSION_COOKIE_SAMESITE="None" if config.cookie_secure else "Lax",
        PERMANENT_SESSION_LIFETIME=timedelta(hours=24),
    )
    app.extensions["focusdesk"] = services

    CORS(app, origins=config.allowed_origins, supports_credentials=True)

    @app.errorhandler(FocusdeskError)
    def handle_error(error: FocusdeskError):
        status = _status_for(error)
        if status >= 500:
            logger.error(f"{request.method} {request.path} failed: {error}")
        return jsonify({"error": str(error)}), status

    def current_user_id() -> str:
        return workflows.require_user(services, session.get("user_id")).id

    # ---- auth ----

    @app.get("/api/auth/google")
    def auth_google():
        return jsonify({"url": services.oauth.authorization_url()})

    @app.get("/api/auth/callback")
    def auth_callback():
        try:
            user = workflows.login(services, request.args.get("code", ""))
        except FocusdeskError as e:
            logger.error(f"Auth error: {e}")
            return redirect(_frontend_url(config, "failed"))
        session.clear()
        session.permanent = True
        session["user_id"] = user.id
        return redirect(_frontend_url(config, "success"))

    @app.get("/api/auth/status")
    def auth_status():
        user_id = session.get("user_id")
        user = services.users.get(user_id) if user_id else None
        if user is None:
            return jsonify({"authenticated": False})
        return jsonify({"authenticated": True, "email": user.email})

    @app.post("/api/auth/logout")
    def auth_logout():
        session.clear()
        return jsonify({"success": True})

    # ---- tasks ----

    @app.get("/api/tasks")
    def list_tasks():
        tasks = workflows.list_tasks(services, current_user_id())
        return jsonify([t.to_dict() for t in tasks])

    @app.post("/api/tasks")
    def create_task():
        owner_id = current_user_id()
        task = workflows.create_task(services, owner_id, request.get_json(silent=True))
        return jsonify(task.to_dict()), 201

    @app.put("/api/tasks/<task_id>")
    def update_task(task_id: str):
        owner_id = current_user_id()
        task = workflows.update_task(services, owner_id, task_id, request.get_json(silent=True))
        return jsonify(task.to_dict())

    @app.delete("/api/tasks/<task_id>")
    def delete_task(task_id: str):
        workflows.delete_task(services, current_user_id(), task_id)
        return jsonify({"success": True})

    @app.post("/api/tasks/<task_id>/pomodoro")
    def record_pomodoro(task_id: str):
        task = workflows.record_pomodoro(services, current_user_id(), task_id)
        return jsonify(task.to_dict())

    # ---- sync ----

    @app.post("/api/sync")
    def sync():
        summary = workflows.sync_now(services, current_user_id())
        return jsonify(summary.to_dict())

    return app


def _frontend_url(config: Config, outcome: str) -> str:
    return f"{config.frontend_url}?{urlencode({'auth': outcome})}"

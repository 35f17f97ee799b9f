from __future__ import annotations

import atexit
import logging
from typing import Any, Optional
from urllib.parse import urlparse

from flask import Blueprint, Flask, current_app, jsonify, request, send_from_directory
from flask_cors import CORS
from werkzeug.middleware.proxy_fix import ProxyFix

from .config import Settings, load_settings
from .db import Database
from .errors import StoreError, TodoBackendError
from .logging_setup import setup_logging
from .models import TaskInput, parse_task_id
from .store import TaskStore

logger = logging.getLogger(__name__)

STORE_KEY = "todo_backend.task_store"

tasks_bp = Blueprint("tasks", __name__)


def _store() -> TaskStore:
    return current_app.extensions[STORE_KEY]


def _error(message: str, status: int):
    return jsonify({"error": message}), status


@tasks_bp.route("/tasks", methods=["GET"])
def get_tasks():
    logger.info("GET /tasks called")
    try:
        tasks = _store().list_tasks()
    except StoreError:
        logger.exception("Error fetching tasks")
        return _error("Failed to fetch tasks", 500)
    return jsonify([t.to_dict() for t in tasks])


@tasks_bp.route("/tasks", methods=["POST"])
def create_task():
    body = request.get_json(silent=True)
    logger.info("POST /tasks received: %s", body)
    data = TaskInput.from_json(body)
    try:
        task = _store().create_task(data.task, data.due_date)
    except StoreError:
        logger.exception("Error adding task")
        return _error("Failed to add task", 500)
    return jsonify(task.to_dict())


@tasks_bp.route("/tasks/<task_id>", methods=["PUT"])
def update_task(task_id):
    body = request.get_json(silent=True)
    logger.info("PUT /tasks/%s called: %s", task_id, body)
    tid = parse_task_id(task_id)
    data = TaskInput.from_json(body)
    try:
        task = _store().update_task(tid, data)
    except StoreError:
        logger.exception("Error updating task id=%s", tid)
        return _error("Failed to update task", 500)
    return jsonify(task.to_dict())


@tasks_bp.route("/tasks/<task_id>", methods=["DELETE"])
def delete_task(task_id):
    logger.info("DELETE /tasks/%s called", task_id)
    tid = parse_task_id(task_id)
    try:
        _store().delete_task(tid)
    except StoreError:
        logger.exception("Error deleting task id=%s", tid)
        return _error("Failed to delete task", 500)
    return jsonify({"message": "Task deleted"})


def _install_origin_check(app: Flask, allowed: list) -> None:
    """Reject cross-origin callers outside the allow-list before routing."""
    allow_all = "*" in allowed
    allowed_set = set(allowed)

    @app.before_request
    def check_origin():
        origin = request.headers.get("Origin")
        if not origin or allow_all:
            return None
        origin = origin.rstrip("/")
        # same-origin by host only; TLS may terminate at a proxy in front of us
        if origin in allowed_set or urlparse(origin).netloc == request.host:
            return None
        logger.warning("Rejected request from origin %s to %s %s", origin, request.method, request.path)
        return _error("Origin not allowed", 403)


def create_app(settings: Optional[Settings] = None, store: Optional[Any] = None, *, init_schema: bool = True) -> Flask:
    """
    Build the Flask app.

    `store` is anything with the TaskStore interface. When omitted, a pool is
    opened from `settings` and closed at interpreter exit.
    """
    if settings is None:
        settings = load_settings()

    app = Flask(__name__, static_folder="static")
    if settings.trust_proxy:
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1)

    if store is None:
        db = Database.from_settings(settings).open()
        atexit.register(db.close)
        store = TaskStore(db)

    if init_schema:
        store.ensure_schema()

    app.extensions[STORE_KEY] = store

    origins = settings.cors_origins
    if origins:
        CORS(app, origins="*" if "*" in origins else origins)
    _install_origin_check(app, origins)

    @app.errorhandler(TodoBackendError)
    def handle_app_error(e: TodoBackendError):
        if e.status >= 500:
            logger.error("Request failed: %s", e)
        return _error(e.message, e.status)

    @app.route("/")
    def index():
        logger.info("Serving index.html")
        return send_from_directory(app.static_folder, "index.html")

    app.register_blueprint(tasks_bp)
    return app


def main() -> None:
    settings = load_settings()
    setup_logging(settings.log_level)

    db = Database.from_settings(settings).open()
    try:
        app = create_app(settings, store=TaskStore(db))
        logger.info("Server running on port %s", settings.port)
        app.run(host=settings.host, port=settings.port, debug=settings.debug, use_reloader=False)
    finally:
        db.close()


if __name__ == "__main__":
    main()

"""
Control API — Mirror endpoints.

Blueprint: mirror_bp
Prefix: /api

Errors are plain text with status 500; successful list and health
responses are JSON.
"""

from __future__ import annotations

import logging

from flask import Blueprint, Response, current_app, jsonify, request

from ..mirror.errors import (
    InvalidMirrorError,
    MirrorExistsError,
    PersistenceError,
    SchedulerError,
)
from ..observability.health import HealthChecker, HealthStatus

logger = logging.getLogger(__name__)

mirror_bp = Blueprint("mirror", __name__)


def _scheduler():
    return current_app.config["SCHEDULER"]


def _error(message: str, status: int = 500) -> Response:
    return Response(message + "\n", status=status, mimetype="text/plain")


def _missing(*args: str) -> list:
    return [a for a in args if a not in request.values]


@mirror_bp.route("/add-mirror", methods=["GET", "POST"])
def api_add_mirror():
    """Register a mirror. It is cloned in the background."""
    missing = _missing("name", "url")
    if missing:
        return _error(f"missing arguments: {', '.join(missing)}")

    name = request.values["name"]
    url = request.values["url"]

    try:
        _scheduler().add_mirror(name, url)
    except (InvalidMirrorError, MirrorExistsError, PersistenceError, SchedulerError) as e:
        return _error(str(e))

    return Response(status=200)


@mirror_bp.route("/list-mirrors", methods=["GET", "POST"])
def api_list_mirrors():
    """All mirrors as {name: {url, last_update, state}}."""
    try:
        mirrors = {
            name: mirror.model_dump(mode="json")
            for name, mirror in _scheduler().list_mirrors().items()
        }
        return jsonify(mirrors)
    except (TypeError, ValueError) as e:
        logger.error(f"Failed to encode mirror list: {e}")
        return _error(str(e))


@mirror_bp.route("/health", methods=["GET"])
def api_health():
    """Scheduler, database and storage health."""
    checker: HealthChecker = current_app.config["HEALTH_CHECKER"]
    result = checker.check()
    code = 503 if result.status == HealthStatus.UNHEALTHY else 200
    return jsonify(result.to_dict()), code

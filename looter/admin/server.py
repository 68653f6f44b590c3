"""
Control Server — Flask app exposing the mirror API.

There is no authentication. Bind to localhost or put it behind
something that does auth.
"""

from __future__ import annotations

import logging
import time

from flask import Flask, request

from ..mirror.scheduler import MirrorScheduler
from ..observability.health import HealthChecker
from .routes_mirror import mirror_bp

logger = logging.getLogger(__name__)


def create_app(scheduler: MirrorScheduler) -> Flask:
    """Create the Flask application bound to a scheduler."""

    app = Flask(__name__)

    app.config["SCHEDULER"] = scheduler
    app.config["HEALTH_CHECKER"] = HealthChecker(scheduler)

    app.register_blueprint(mirror_bp, url_prefix="/api")     # /api/*

    # ── Request Logging ───────────────────────────────────────────

    @app.before_request
    def log_request_start():
        request.environ["looter.start_time"] = time.time()

    @app.after_request
    def log_request_end(response):
        started = request.environ.get("looter.start_time")
        duration_ms = int((time.time() - started) * 1000) if started else 0

        if request.path.startswith("/api/"):
            log_fn = logger.debug if request.path == "/api/health" else logger.info
            log_fn(
                f"{request.method} {request.path} → {response.status_code} ({duration_ms}ms)"
            )
        return response

    logger.info(f"Control server initialized (db={scheduler.db_path})")

    return app


def run_server(
    scheduler: MirrorScheduler,
    host: str = "127.0.0.1",
    port: int = 8080,
) -> None:
    """
    Run the control server until interrupted.

    Args:
        scheduler: Running scheduler the API talks to
        host: Bind address
        port: Port to listen on
    """
    app = create_app(scheduler)
    logger.info(f"Listening on http://{host}:{port}")
    app.run(host=host, port=port, threaded=True, use_reloader=False)

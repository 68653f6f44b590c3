"""
Control Server — HTTP API for adding and listing mirrors.

Usage:
    looter serve
    # Listens on http://127.0.0.1:8080

Endpoints:
    - /api/add-mirror?name=...&url=...
    - /api/list-mirrors
    - /api/health
"""

from .server import create_app, run_server

__all__ = ["create_app", "run_server"]

"""
Observability Module — Health checks for the running daemon.
"""

from .health import ComponentHealth, HealthChecker, HealthStatus, SystemHealth

__all__ = [
    "HealthChecker",
    "HealthStatus",
    "SystemHealth",
    "ComponentHealth",
]

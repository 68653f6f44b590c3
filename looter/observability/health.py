"""
Health Check — Daemon health status for monitoring.

## Usage

    from looter.observability.health import HealthChecker

    checker = HealthChecker(scheduler)
    status = checker.check()

    if status.healthy:
        print("All systems operational")
"""

from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List

from ..mirror.scheduler import MirrorScheduler

logger = logging.getLogger(__name__)


class HealthStatus(str, Enum):
    """Health status levels."""
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


@dataclass
class ComponentHealth:
    """Health status of a single component."""

    name: str
    status: HealthStatus
    message: str = ""
    details: Dict[str, Any] = field(default_factory=dict)


@dataclass
class SystemHealth:
    """Overall daemon health status."""

    status: HealthStatus
    timestamp: str
    uptime_seconds: float
    components: List[ComponentHealth]

    @property
    def healthy(self) -> bool:
        return self.status == HealthStatus.HEALTHY

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "timestamp": self.timestamp,
            "uptime_seconds": self.uptime_seconds,
            "healthy": self.healthy,
            "components": [
                {
                    "name": c.name,
                    "status": c.status.value,
                    "message": c.message,
                    "details": c.details,
                }
                for c in self.components
            ],
        }


class HealthChecker:
    """
    Aggregates scheduler, database and storage checks.

    Any unhealthy component makes the whole daemon unhealthy; otherwise
    any degraded component makes it degraded.
    """

    def __init__(self, scheduler: MirrorScheduler):
        self.scheduler = scheduler
        self._start_time = time.time()

    def check(self) -> SystemHealth:
        components = [
            self._check_scheduler(),
            self._check_database(),
            self._check_storage(),
        ]

        statuses = [c.status for c in components]
        if HealthStatus.UNHEALTHY in statuses:
            overall = HealthStatus.UNHEALTHY
        elif HealthStatus.DEGRADED in statuses:
            overall = HealthStatus.DEGRADED
        else:
            overall = HealthStatus.HEALTHY

        return SystemHealth(
            status=overall,
            timestamp=datetime.now(timezone.utc).isoformat(),
            uptime_seconds=round(time.time() - self._start_time, 1),
            components=components,
        )

    def _check_scheduler(self) -> ComponentHealth:
        status = self.scheduler.status()
        if not status["running"]:
            return ComponentHealth(
                name="scheduler",
                status=HealthStatus.UNHEALTHY,
                message="Scheduler thread is not running",
                details=status,
            )
        return ComponentHealth(
            name="scheduler",
            status=HealthStatus.HEALTHY,
            message=f"{status['armed_timers']} timer(s) armed, {status['queue_depth']} queued",
            details=status,
        )

    def _check_database(self) -> ComponentHealth:
        db_path: Path = self.scheduler.db_path
        error = self.scheduler.last_save_error
        if error:
            return ComponentHealth(
                name="database",
                status=HealthStatus.DEGRADED,
                message=f"Last save failed: {error}",
                details={"path": str(db_path)},
            )
        if not db_path.exists():
            return ComponentHealth(
                name="database",
                status=HealthStatus.UNHEALTHY,
                message="Database file missing",
                details={"path": str(db_path)},
            )
        return ComponentHealth(
            name="database",
            status=HealthStatus.HEALTHY,
            message="Database file present",
            details={"path": str(db_path)},
        )

    def _check_storage(self) -> ComponentHealth:
        storage = Path(self.scheduler.published_snapshot().storage_path)
        if not storage.is_dir():
            return ComponentHealth(
                name="storage",
                status=HealthStatus.DEGRADED,
                message="Storage directory does not exist yet",
                details={"path": str(storage)},
            )
        if not os.access(storage, os.W_OK):
            return ComponentHealth(
                name="storage",
                status=HealthStatus.UNHEALTHY,
                message="Storage directory is not writable",
                details={"path": str(storage)},
            )
        return ComponentHealth(
            name="storage",
            status=HealthStatus.HEALTHY,
            message="Storage directory writable",
            details={"path": str(storage)},
        )

"""
Tests for the health checker and log formatters.
"""

from __future__ import annotations

import json
import logging

from looter.logging_config import HumanFormatter, JSONFormatter
from looter.observability.health import HealthChecker, HealthStatus


def _record(msg: str, **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="looter.mirror.scheduler",
        level=logging.ERROR,
        pathname=__file__,
        lineno=1,
        msg=msg,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestHealthChecker:

    def test_healthy_when_running(self, running_scheduler):
        result = HealthChecker(running_scheduler).check()
        assert result.healthy
        assert result.to_dict()["healthy"] is True

    def test_degraded_after_save_failure(self, running_scheduler):
        running_scheduler.last_save_error = "disk full"

        result = HealthChecker(running_scheduler).check()

        assert result.status == HealthStatus.DEGRADED
        database = next(c for c in result.components if c.name == "database")
        assert "disk full" in database.message

    def test_unhealthy_when_db_missing(self, running_scheduler, db_path):
        db_path.unlink()
        result = HealthChecker(running_scheduler).check()
        assert result.status == HealthStatus.UNHEALTHY

    def test_degraded_when_storage_missing(self, make_scheduler, empty_snapshot, storage_dir):
        scheduler = make_scheduler(empty_snapshot)
        scheduler.start()
        storage_dir.rmdir()

        result = HealthChecker(scheduler).check()

        storage = next(c for c in result.components if c.name == "storage")
        assert storage.status == HealthStatus.DEGRADED


class TestFormatters:

    def test_json_includes_mirror(self):
        line = JSONFormatter().format(_record("update failed", mirror="repo1"))
        data = json.loads(line)
        assert data["message"] == "update failed"
        assert data["level"] == "ERROR"
        assert data["logger"] == "looter.mirror.scheduler"
        assert data["mirror"] == "repo1"

    def test_json_without_mirror(self):
        data = json.loads(JSONFormatter().format(_record("hello")))
        assert "mirror" not in data

    def test_human_format(self):
        line = HumanFormatter().format(_record("hello"))
        assert "[scheduler" in line
        assert line.endswith("hello")

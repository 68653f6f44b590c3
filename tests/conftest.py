"""
Shared fixtures for scheduler and control API tests.

Git is never invoked: FakeGit records calls and returns canned results.
Timers never sleep: TimerRecorder hands out FakeTimers that a test fires
by hand.
"""

from __future__ import annotations

import time
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, List, Tuple

import pytest

from looter.mirror.git_sync import GitResult
from looter.mirror.scheduler import MirrorScheduler
from looter.models.state import Mirror, MirrorState, Snapshot
from looter.persistence.state_file import save_snapshot

T0 = datetime(2026, 2, 9, 12, 0, 0, tzinfo=timezone.utc)


class FakeGit:
    """Stands in for GitOperations."""

    def __init__(self, clone_ok: bool = True, update_ok: bool = True):
        self.clone_ok = clone_ok
        self.update_ok = update_ok
        self.calls: List[Tuple[str, ...]] = []

    def clone_mirror(self, dest: Path, url: str) -> GitResult:
        self.calls.append(("clone", dest.name, url))
        if self.clone_ok:
            return GitResult(ok=True, returncode=0)
        return GitResult(ok=False, returncode=128, stderr="fatal: repository not found")

    def remote_update(self, dest: Path) -> GitResult:
        self.calls.append(("update", dest.name))
        if self.update_ok:
            return GitResult(ok=True, returncode=0)
        return GitResult(ok=False, returncode=1, stderr="error: could not fetch origin")

    def count(self, op: str, name: str) -> int:
        return sum(1 for c in self.calls if c[0] == op and c[1] == name)


class FakeTimer:
    """threading.Timer look-alike that only runs when fired."""

    def __init__(self, interval: float, function: Callable, args=()):
        self.interval = interval
        self.function = function
        self.args = args
        self.daemon = False
        self.started = False
        self.cancelled = False

    def start(self) -> None:
        self.started = True

    def cancel(self) -> None:
        self.cancelled = True

    def fire(self) -> None:
        self.function(*self.args)


class TimerRecorder:
    """timer_factory that keeps every timer it created."""

    def __init__(self):
        self.timers: List[FakeTimer] = []

    def __call__(self, interval: float, function: Callable, args=()) -> FakeTimer:
        timer = FakeTimer(interval, function, args)
        self.timers.append(timer)
        return timer

    def for_mirror(self, name: str) -> List[FakeTimer]:
        return [t for t in self.timers if t.args and t.args[0].name == name]

    def live(self, name: str) -> List[FakeTimer]:
        return [t for t in self.for_mirror(name) if not t.cancelled]


class FakeClock:
    """Settable clock."""

    def __init__(self, now: datetime = T0):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


def drain(scheduler: MirrorScheduler) -> int:
    """Process queued events on the calling thread. Returns how many."""
    handled = 0
    while not scheduler._events.empty():
        scheduler.process(scheduler._events.get_nowait())
        handled += 1
    return handled


def wait_for(predicate: Callable[[], bool], timeout: float = 5.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def git():
    return FakeGit()


@pytest.fixture
def timers():
    return TimerRecorder()


@pytest.fixture
def storage_dir(tmp_path: Path) -> Path:
    path = tmp_path / "mirrors"
    path.mkdir()
    return path


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "db.json"


@pytest.fixture
def empty_snapshot(storage_dir: Path) -> Snapshot:
    return Snapshot(storage_path=str(storage_dir), update_delta=timedelta(minutes=5))


@pytest.fixture
def mixed_snapshot(storage_dir: Path) -> Snapshot:
    """One Fresh and one Ready mirror."""
    return Snapshot(
        storage_path=str(storage_dir),
        update_delta=timedelta(minutes=5),
        mirrors={
            "repo1": Mirror(
                url="https://example.com/repo1.git",
                last_update=T0 - timedelta(hours=1),
                state=MirrorState.FRESH,
            ),
            "repo2": Mirror(
                url="https://example.com/repo2.git",
                last_update=T0 - timedelta(minutes=2),
                state=MirrorState.READY,
            ),
        },
    )


@pytest.fixture
def make_scheduler(db_path, git, clock, timers):
    """Build a scheduler with fakes; the db file is written first."""
    created: List[MirrorScheduler] = []

    def _make(snapshot: Snapshot, **kwargs) -> MirrorScheduler:
        save_snapshot(snapshot, db_path)
        options = dict(git=git, clock=clock, timer_factory=timers, request_timeout=5)
        options.update(kwargs)
        scheduler = MirrorScheduler(snapshot, db_path, **options)
        created.append(scheduler)
        return scheduler

    yield _make

    for scheduler in created:
        scheduler.stop(timeout=5)


@pytest.fixture
def running_scheduler(make_scheduler, empty_snapshot):
    scheduler = make_scheduler(empty_snapshot)
    scheduler.start()
    assert wait_for(scheduler.is_running)
    return scheduler


@pytest.fixture
def app(running_scheduler):
    """Flask test app bound to a running scheduler."""
    from looter.admin.server import create_app

    app = create_app(running_scheduler)
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    """Flask test client."""
    return app.test_client()

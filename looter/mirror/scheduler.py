"""
Mirror Scheduler — Owns the registry and drives the refresh cycle.

One owner thread holds the MirrorRegistry exclusively and consumes a
single event queue. Timer threads and HTTP handler threads only ever
put events on that queue; they never touch the registry.

## Lifecycle

    scheduler = MirrorScheduler(snapshot, db_path)
    scheduler.start()      # catch-up clones, arm timers, run event loop
    scheduler.add_mirror("repo1", "https://example.com/repo1.git")
    scheduler.list_mirrors()
    scheduler.stop()

Git runs inline on the owner thread, so one slow clone or update delays
every other queued event. Readers get the snapshot published after the
last mutation instead of waiting on the queue.
"""

from __future__ import annotations

import logging
import queue
import threading
from concurrent.futures import Future
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from ..models.state import Mirror, MirrorState, Snapshot
from ..persistence.state_file import save_snapshot
from .errors import LooterError, PersistenceError, SchedulerError
from .git_sync import GitOperations
from .registry import MirrorRegistry

logger = logging.getLogger(__name__)

DEFAULT_REQUEST_TIMEOUT = 30.0


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ─── Events ─────────────────────────────────────────────────


@dataclass(frozen=True)
class RefreshDue:
    """Posted by a mirror's timer when its next update is due."""

    name: str


@dataclass(frozen=True)
class CloneRequested:
    """Posted after a mirror is added so it gets cloned without a restart."""

    name: str


@dataclass(frozen=True)
class AddMirror:
    """Request from the control API; answered through reply."""

    name: str
    url: str
    reply: Future = field(default_factory=Future, compare=False)


class _Shutdown:
    def __repr__(self) -> str:
        return "Shutdown"


SHUTDOWN = _Shutdown()


class MirrorScheduler:
    """
    Single-writer scheduler for all mirrors.

    Args:
        snapshot: State loaded from the database at startup
        db_path: Where every mutation is persisted
        git: Object with clone_mirror(dest, url) and remote_update(dest)
        clock: Returns the current aware datetime
        timer_factory: threading.Timer compatible constructor
        save: Persistence function (snapshot, path) -> None
        request_timeout: Seconds add_mirror waits for the owner thread
    """

    def __init__(
        self,
        snapshot: Snapshot,
        db_path: Path,
        git: Optional[Any] = None,
        clock: Callable[[], datetime] = _utcnow,
        timer_factory: Callable[..., Any] = threading.Timer,
        save: Callable[[Snapshot, Path], None] = save_snapshot,
        request_timeout: float = DEFAULT_REQUEST_TIMEOUT,
    ):
        self.db_path = db_path
        self.request_timeout = request_timeout
        self._registry = MirrorRegistry(snapshot)
        self._git = git or GitOperations()
        self._clock = clock
        self._timer_factory = timer_factory
        self._save = save

        self._events: "queue.Queue[Any]" = queue.Queue()
        self._timers: Dict[str, Any] = {}
        self._published: Snapshot = self._registry.snapshot()
        self._thread: Optional[threading.Thread] = None
        self._stopping = threading.Event()
        self.last_save_error: Optional[str] = None

    # ─── Public interface (any thread) ──────────────────────

    def start(self) -> None:
        """Start the owner thread."""
        if self._thread is not None:
            raise SchedulerError("scheduler already started")
        self._thread = threading.Thread(
            target=self._run, name="mirror-scheduler", daemon=True
        )
        self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        """Ask the owner thread to exit and wait for it."""
        self._stopping.set()
        if self._thread is None:
            self._cancel_timers()
            return
        self._events.put(SHUTDOWN)
        self._thread.join(timeout)

    def is_running(self) -> bool:
        return (
            self._thread is not None
            and self._thread.is_alive()
            and not self._stopping.is_set()
        )

    def add_mirror(self, name: str, url: str, timeout: Optional[float] = None) -> None:
        """
        Register a new mirror through the owner thread.

        Raises:
            InvalidMirrorError: Bad name or url
            MirrorExistsError: Name already registered
            PersistenceError: Registered, but the database write failed
            SchedulerError: Scheduler not running or did not answer in time
        """
        if not self.is_running():
            raise SchedulerError("scheduler is not running")

        if timeout is None:
            timeout = self.request_timeout

        event = AddMirror(name=name, url=url)
        self._events.put(event)
        try:
            event.reply.result(timeout=timeout)
        except FutureTimeoutError:
            raise SchedulerError(
                f"timed out after {timeout}s waiting for the scheduler"
            ) from None

    def list_mirrors(self) -> Dict[str, Mirror]:
        """Mirrors as of the last published snapshot."""
        return dict(self._published.mirrors)

    def published_snapshot(self) -> Snapshot:
        return self._published

    def status(self) -> Dict[str, Any]:
        """Scheduler internals for the health check."""
        mirrors = self._published.mirrors.values()
        return {
            "running": self.is_running(),
            "armed_timers": len(self._timers),
            "queue_depth": self._events.qsize(),
            "mirrors_fresh": sum(1 for m in mirrors if m.state == MirrorState.FRESH),
            "mirrors_ready": sum(1 for m in mirrors if m.state == MirrorState.READY),
            "last_save_error": self.last_save_error,
        }

    # ─── Owner thread ───────────────────────────────────────

    def _run(self) -> None:
        logger.info(f"[scheduler] Started ({len(self._registry)} mirror(s))")
        self.catch_up()
        self.arm_all()

        while True:
            event = self._events.get()
            if event is SHUTDOWN:
                break
            self.process(event)

        self._cancel_timers()
        self._drain()
        logger.info("[scheduler] Stopped")

    def process(self, event: Any) -> None:
        """Handle one event. Errors are logged and the loop continues."""
        try:
            self.handle(event)
        except Exception as e:
            logger.exception(f"[scheduler] Failed to handle {event!r}")
            if isinstance(event, AddMirror) and not event.reply.done():
                event.reply.set_exception(SchedulerError(str(e)))

    def handle(self, event: Any) -> None:
        if isinstance(event, RefreshDue):
            self._refresh(event.name)
        elif isinstance(event, CloneRequested):
            if self._clone(event.name):
                self._arm_next(event.name)
        elif isinstance(event, AddMirror):
            self._add(event)
        else:
            logger.warning(f"[scheduler] Ignoring unknown event {event!r}")

    def catch_up(self) -> None:
        """Clone every mirror that has never been cloned."""
        fresh = self._registry.names_in_state(MirrorState.FRESH)
        if fresh:
            logger.info(f"[scheduler] Catch-up: {len(fresh)} mirror(s) to clone")
        for name in fresh:
            try:
                self._clone(name)
            except Exception:
                logger.exception(
                    f"[scheduler] Catch-up clone of '{name}' failed",
                    extra={"mirror": name},
                )

    def arm_all(self) -> None:
        """Arm one timer per Ready mirror. A bad record only skips itself."""
        for name in self._registry.names_in_state(MirrorState.READY):
            try:
                self._arm_next(name)
            except Exception:
                logger.exception(
                    f"[scheduler] Could not arm '{name}'", extra={"mirror": name}
                )

    def _add(self, event: AddMirror) -> None:
        try:
            self._registry.register(event.name, event.url, self._clock())
        except LooterError as e:
            logger.warning(f"[scheduler] Rejected mirror '{event.name}': {e}")
            event.reply.set_exception(e)
            return

        error = self._commit()
        if error is not None:
            event.reply.set_exception(PersistenceError(f"failed to update db: {error}"))
        else:
            event.reply.set_result(None)

        self._events.put(CloneRequested(event.name))

    def _clone(self, name: str) -> bool:
        mirror = self._registry.get(name)
        if mirror is None or mirror.state != MirrorState.FRESH:
            logger.debug(f"[scheduler] Skipping clone of '{name}': not Fresh")
            return False

        result = self._git.clone_mirror(self._registry.mirror_path(name), mirror.url)
        if not result.ok:
            logger.error(
                f"[scheduler] Mirror of '{name}' failed: {result.error}",
                extra={"mirror": name},
            )
            return False

        self._registry.mark_ready(name, self._clock())
        self._commit()
        return True

    def _refresh(self, name: str) -> None:
        self._timers.pop(name, None)

        mirror = self._registry.get(name)
        if mirror is None or mirror.state != MirrorState.READY:
            logger.debug(f"[scheduler] Skipping refresh of '{name}': not Ready")
            return

        logger.info(f"[scheduler] Updating '{name}'", extra={"mirror": name})
        result = self._git.remote_update(self._registry.mirror_path(name))
        if result.ok:
            self._registry.mark_refreshed(name, self._clock())
            self._commit()
            logger.info(f"[scheduler] Successfully updated '{name}'", extra={"mirror": name})
            self._arm_next(name)
            return

        logger.error(
            f"[scheduler] Update of '{name}' failed: {result.error}",
            extra={"mirror": name},
        )
        self._arm(name, self._clock() + self._registry.update_delta)

    def _arm_next(self, name: str) -> None:
        mirror = self._registry.get(name)
        if mirror is None:
            return
        last = mirror.last_update or self._clock()
        self._arm(name, last + self._registry.update_delta)

    def _arm(self, name: str, due: datetime) -> None:
        previous = self._timers.pop(name, None)
        if previous is not None:
            previous.cancel()

        delay = max(0.0, (due - self._clock()).total_seconds())
        timer = self._timer_factory(delay, self._events.put, args=(RefreshDue(name),))
        timer.daemon = True
        self._timers[name] = timer
        timer.start()
        logger.info(f"[scheduler] Will update '{name}' at {due.isoformat()}")

    def _commit(self) -> Optional[OSError]:
        """Publish the new state to readers, then persist it."""
        snapshot = self._registry.snapshot()
        self._published = snapshot
        try:
            self._save(snapshot, self.db_path)
        except OSError as e:
            self.last_save_error = str(e)
            logger.error(f"[scheduler] Failed to update db {self.db_path}: {e}")
            return e
        self.last_save_error = None
        return None

    def _cancel_timers(self) -> None:
        for timer in self._timers.values():
            timer.cancel()
        self._timers.clear()

    def _drain(self) -> None:
        while True:
            try:
                event = self._events.get_nowait()
            except queue.Empty:
                return
            if isinstance(event, AddMirror) and not event.reply.done():
                event.reply.set_exception(SchedulerError("scheduler stopped"))

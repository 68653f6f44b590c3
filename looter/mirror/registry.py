"""
Mirror Registry — In-memory map of mirror name → Mirror.

The registry is not thread-safe. It is owned by the scheduler thread and
only ever touched from there; other threads read published snapshots.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from pathlib import Path
from typing import List, Optional

from ..models.state import Mirror, MirrorState, Snapshot
from .errors import InvalidMirrorError, MirrorExistsError, MirrorStateError

logger = logging.getLogger(__name__)

_FORBIDDEN_NAME_CHARS = ("/", "\\", "\x00")


def validate_mirror_name(name: str) -> None:
    """Reject names that are not a single safe path component."""
    if not name or not name.strip():
        raise InvalidMirrorError("mirror name must not be empty")
    if name in (".", ".."):
        raise InvalidMirrorError(f"invalid mirror name: '{name}'")
    if any(c in name for c in _FORBIDDEN_NAME_CHARS):
        raise InvalidMirrorError(f"invalid mirror name: '{name}'")


class MirrorRegistry:
    """Mirrors plus the two global settings, with the Fresh → Ready rules."""

    def __init__(self, snapshot: Snapshot):
        self._snapshot = snapshot.model_copy(deep=True)

    @property
    def storage_path(self) -> Path:
        return Path(self._snapshot.storage_path)

    @property
    def update_delta(self) -> timedelta:
        return self._snapshot.update_delta

    def mirror_path(self, name: str) -> Path:
        return self.storage_path / name

    def get(self, name: str) -> Optional[Mirror]:
        return self._snapshot.mirrors.get(name)

    def names_in_state(self, state: MirrorState) -> List[str]:
        return [n for n, m in self._snapshot.mirrors.items() if m.state == state]

    def __contains__(self, name: str) -> bool:
        return name in self._snapshot.mirrors

    def __len__(self) -> int:
        return len(self._snapshot.mirrors)

    # ─── Transitions ────────────────────────────────────────

    def register(self, name: str, url: str, when: datetime) -> Mirror:
        """
        Insert a new Fresh mirror.

        Raises:
            InvalidMirrorError: If the name or url is unusable
            MirrorExistsError: If the name is already registered
        """
        validate_mirror_name(name)
        if not url or not url.strip():
            raise InvalidMirrorError("mirror url must not be empty")
        if name in self._snapshot.mirrors:
            raise MirrorExistsError(name)

        mirror = Mirror(url=url, last_update=when, state=MirrorState.FRESH)
        self._snapshot.mirrors[name] = mirror
        logger.info(f"Registered mirror '{name}' ({url})")
        return mirror

    def mark_ready(self, name: str, when: datetime) -> None:
        """Fresh → Ready after the first successful clone."""
        mirror = self._require(name, MirrorState.FRESH)
        mirror.state = MirrorState.READY
        mirror.last_update = when

    def mark_refreshed(self, name: str, when: datetime) -> None:
        """Bump last_update after a successful remote update."""
        mirror = self._require(name, MirrorState.READY)
        mirror.last_update = when

    def snapshot(self) -> Snapshot:
        """Deep copy, safe to hand to other threads."""
        return self._snapshot.model_copy(deep=True)

    def _require(self, name: str, state: MirrorState) -> Mirror:
        mirror = self._snapshot.mirrors.get(name)
        if mirror is None:
            raise MirrorStateError(f"unknown mirror '{name}'")
        if mirror.state != state:
            raise MirrorStateError(
                f"mirror '{name}' is {mirror.state.value}, expected {state.value}"
            )
        return mirror

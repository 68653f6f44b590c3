"""
Mirror errors — exceptions raised by the registry, store and scheduler.
"""

from __future__ import annotations


class LooterError(Exception):
    """Base exception for mirror daemon errors."""


class StateFileError(LooterError):
    """Raised when the database file cannot be read or decoded."""


class InvalidMirrorError(LooterError):
    """Raised when a mirror name or url is not acceptable."""


class MirrorExistsError(LooterError):
    """Raised when registering a name that is already present."""

    def __init__(self, name: str):
        super().__init__(f"cannot add mirror '{name}': already exists")
        self.name = name


class MirrorStateError(LooterError):
    """Raised when a state transition's precondition does not hold."""


class PersistenceError(LooterError):
    """Raised to a caller when the mutation succeeded but saving did not."""


class SchedulerError(LooterError):
    """Raised when the scheduler cannot accept or answer a request."""

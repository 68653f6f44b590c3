"""
State Models — Pydantic schemas for the mirror database.

The database file (db.json by default) is the single source of truth
for which repositories are mirrored and when each was last refreshed.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_validator

DEFAULT_UPDATE_DELTA = timedelta(minutes=5)


class MirrorState(str, Enum):
    """Lifecycle of a mirror. Fresh -> Ready is the only transition."""

    FRESH = "Fresh"
    READY = "Ready"


class Mirror(BaseModel):
    """One tracked repository."""

    url: str
    last_update: Optional[datetime] = None
    state: MirrorState = MirrorState.FRESH

    @field_validator("last_update")
    @classmethod
    def assume_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        # Hand-edited timestamps without an offset are UTC
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v


class Snapshot(BaseModel):
    """
    Complete registry state.

    This is the root model for the database file. update_delta is written
    as an ISO 8601 duration; a bare number is read as nanoseconds, the
    unit older databases were written in.
    """

    storage_path: str = ""
    update_delta: timedelta = DEFAULT_UPDATE_DELTA
    mirrors: Dict[str, Mirror] = Field(default_factory=dict)

    @field_validator("update_delta", mode="before")
    @classmethod
    def numbers_are_nanoseconds(cls, v: Any) -> Any:
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return timedelta(microseconds=v / 1000)
        return v

    @field_validator("update_delta")
    @classmethod
    def positive_delta(cls, v: timedelta) -> timedelta:
        if v <= timedelta(0):
            raise ValueError("update_delta must be positive")
        return v

    def to_json(self) -> str:
        return self.model_dump_json(indent=2) + "\n"

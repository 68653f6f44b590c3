"""
State File Persistence — JSON database backend.

The whole snapshot is rewritten on every save. Writes go to a temp file
in the same directory and are then renamed over the target, so a crash
mid-write leaves the previous file intact.
"""

from __future__ import annotations

import json
import logging
import os
import stat
import tempfile
from datetime import timedelta
from pathlib import Path

from pydantic import ValidationError

from ..mirror.errors import StateFileError
from ..models.state import DEFAULT_UPDATE_DELTA, Snapshot

logger = logging.getLogger(__name__)

TEMP_PREFIX = "looter."
TEMP_SUFFIX = ".tmp"
DEFAULT_MODE = 0o644


def load_snapshot(path: Path) -> Snapshot:
    """
    Load the snapshot from a JSON file.

    Args:
        path: Path to the database file

    Returns:
        Parsed Snapshot object

    Raises:
        StateFileError: If the file is missing, unreadable or invalid
    """
    logger.debug(f"Loading snapshot from {path}")
    try:
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f)
    except OSError as e:
        raise StateFileError(f"failed to open db file '{path}': {e}") from e
    except ValueError as e:
        raise StateFileError(f"failed to decode db '{path}': {e}") from e

    try:
        snapshot = Snapshot.model_validate(data)
    except ValidationError as e:
        raise StateFileError(f"failed to decode db '{path}': {e}") from e

    logger.info(f"Read state from '{path}' ({len(snapshot.mirrors)} mirror(s))")
    return snapshot


def save_snapshot(snapshot: Snapshot, path: Path) -> None:
    """
    Save the snapshot to a JSON file.

    Uses atomic write (write to temp, then rename) to prevent corruption.
    The new file keeps the mode of the one it replaces (0644 when new).
    On failure the target file is left untouched and the OSError propagates.

    Args:
        snapshot: Snapshot to save
        path: Path to write the database file
    """
    fd, temp_name = tempfile.mkstemp(
        prefix=TEMP_PREFIX, suffix=TEMP_SUFFIX, dir=str(path.parent)
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(snapshot.to_json())
            f.flush()
            os.fsync(f.fileno())

        os.chmod(temp_name, _target_mode(path))

        logger.debug(f"Moving {temp_name} to {path}")
        os.replace(temp_name, path)
    except BaseException:
        try:
            os.unlink(temp_name)
        except OSError:
            logger.warning(f"Could not remove temp file {temp_name}")
        raise

    logger.info(f"Snapshot saved: {len(snapshot.mirrors)} mirror(s) → {path.name}")


def _target_mode(path: Path) -> int:
    try:
        return stat.S_IMODE(os.stat(path).st_mode)
    except FileNotFoundError:
        return DEFAULT_MODE


def create_snapshot(
    path: Path,
    storage_path: str,
    update_delta: timedelta = DEFAULT_UPDATE_DELTA,
) -> Snapshot:
    """Write an empty database for a new installation.

    Refuses to overwrite an existing file.
    """
    if path.exists():
        raise StateFileError(f"db file '{path}' already exists")

    path.parent.mkdir(parents=True, exist_ok=True)
    snapshot = Snapshot(storage_path=storage_path, update_delta=update_delta)
    save_snapshot(snapshot, path)
    return snapshot

"""
Git Sync — Clone and update bare mirrors.

Runs `git clone --mirror` and `git remote update` as subprocesses.
Failures are returned, never raised; the caller decides what to log.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GitResult:
    """Outcome of one git invocation."""

    ok: bool
    returncode: Optional[int] = None
    stderr: str = ""

    @property
    def error(self) -> str:
        """One-line summary plus captured output, for logs."""
        if self.ok:
            return ""
        head = (
            f"exit status {self.returncode}"
            if self.returncode is not None
            else "did not run"
        )
        return f"{head}\n{self.stderr}".strip()


class GitOperations:
    """
    Black-box git commands used by the scheduler.

    Args:
        git: git executable
        timeout: seconds before a command is killed (None = wait forever)
    """

    def __init__(self, git: str = "git", timeout: Optional[float] = None):
        self.git = git
        self.timeout = timeout

    def clone_mirror(self, dest: Path, url: str) -> GitResult:
        """Remove anything at dest, then clone url into it as a mirror."""
        try:
            if dest.is_dir() and not dest.is_symlink():
                shutil.rmtree(dest)
            elif dest.exists() or dest.is_symlink():
                dest.unlink()
            dest.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            return GitResult(ok=False, stderr=f"failed to prepare target dir: {e}")

        logger.info(f"[mirror-git] Mirroring {url} → {dest}")
        result = self._run([self.git, "clone", "--mirror", url, str(dest)])
        if result.ok:
            logger.info(f"[mirror-git] Successfully mirrored {url} → {dest}")
        return result

    def remote_update(self, dest: Path) -> GitResult:
        """Fetch all remotes of an existing mirror."""
        logger.debug(f"[mirror-git] Updating {dest}")
        return self._run([self.git, "-C", str(dest), "remote", "update"])

    def _run(self, cmd: List[str]) -> GitResult:
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired:
            return GitResult(ok=False, stderr=f"timed out after {self.timeout}s")
        except OSError as e:
            return GitResult(ok=False, stderr=str(e))

        if result.returncode == 0:
            return GitResult(ok=True, returncode=0)

        stderr = result.stderr.strip() or result.stdout.strip()
        return GitResult(ok=False, returncode=result.returncode, stderr=stderr)

"""
Run lock — one provisioning run per machine at a time.

The lock file holds the owner's pid.  A lock whose pid is no longer
alive is stale and gets replaced.
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path

from servercozy.core.errors import LockHeldError

logger = logging.getLogger(__name__)

LOCK_NAME = "servercozy.lock"


def default_lock_path() -> Path:
    return Path(tempfile.gettempdir()) / LOCK_NAME


def _pid_alive(pid: int) -> bool:
    if pid <= 0:
        return False
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        # Exists, owned by someone else
        return True
    return True


class RunLock:
    """Context manager around the process-wide lock file."""

    def __init__(self, path: Path | None = None, pid: int | None = None):
        self.path = Path(path) if path else default_lock_path()
        self.pid = pid if pid is not None else os.getpid()
        self._held = False

    def acquire(self) -> None:
        """Take the lock or raise LockHeldError."""
        owner = self._read_owner()
        if owner is not None:
            if owner != self.pid and _pid_alive(owner):
                raise LockHeldError(owner, str(self.path))
            logger.warning("Stale lock file found (PID %s), removing", owner)
            self.path.unlink(missing_ok=True)
        elif self.path.exists():
            logger.warning("Unreadable lock file found, removing")
            self.path.unlink(missing_ok=True)

        try:
            fd = os.open(self.path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o644)
        except FileExistsError:
            # Another run won the race between our check and create
            raise LockHeldError(self._read_owner() or 0, str(self.path)) from None
        with os.fdopen(fd, "w") as fh:
            fh.write(f"{self.pid}\n")
        self._held = True
        logger.debug("Acquired lock %s (PID %s)", self.path, self.pid)

    def release(self) -> None:
        if not self._held:
            return
        if self._read_owner() == self.pid:
            self.path.unlink(missing_ok=True)
        self._held = False
        logger.debug("Released lock %s", self.path)

    def _read_owner(self) -> int | None:
        try:
            raw = self.path.read_text(encoding="utf-8").strip()
        except OSError:
            return None
        return int(raw) if raw.isdigit() else None

    def __enter__(self) -> RunLock:
        self.acquire()
        return self

    def __exit__(self, *exc) -> None:
        self.release()

"""
Configuration backups — copy a dotfile aside before the first mutation.

Backups are named ``PATH.bak.YYYYmmddHHMMSS``.  Each path is backed up
at most once per manager instance (one instance per run), so the copy
always holds the operator's content from before the run.  Backups are
left in place after the run and never consumed by a restore.
"""

from __future__ import annotations

import logging
import shutil
from collections.abc import Callable
from datetime import datetime
from pathlib import Path

from servercozy.core.models.backup import BackupRecord

logger = logging.getLogger(__name__)

_STAMP = "%Y%m%d%H%M%S"


class ConfigBackupManager:
    """Owns the run's BackupRecords."""

    def __init__(self, clock: Callable[[], datetime] = datetime.now):
        self._clock = clock
        self._records: dict[Path, BackupRecord] = {}

    @property
    def records(self) -> list[BackupRecord]:
        """Backups made this run, in creation order."""
        return list(self._records.values())

    def has_backups(self) -> bool:
        return bool(self._records)

    def backup_if_exists(self, path: Path) -> BackupRecord | None:
        """Back up ``path`` unless it is missing or already backed up.

        Returns:
            The record for ``path`` (new or existing), or None when the
            file does not exist.
        """
        path = Path(path)
        key = path.absolute()
        if key in self._records:
            return self._records[key]
        if not path.is_file():
            logger.debug("File %s doesn't exist, no backup needed", path)
            return None

        created = self._clock()
        backup_path = self._free_name(path, created)
        shutil.copy2(path, backup_path)
        record = BackupRecord(original_path=key, backup_path=backup_path, created_at=created)
        self._records[key] = record
        logger.info("Created backup of %s → %s", path, backup_path)
        return record

    def restore_all(self) -> list[Path]:
        """Copy every backup back over its original.

        Restoring twice leaves the same result as restoring once.

        Returns:
            Originals that were restored.
        """
        restored: list[Path] = []
        for record in self._records.values():
            try:
                shutil.copy2(record.backup_path, record.original_path)
            except OSError as exc:
                logger.error(
                    "Could not restore %s from %s: %s",
                    record.original_path, record.backup_path, exc,
                )
                continue
            logger.info("Restored %s from %s", record.original_path, record.backup_path)
            restored.append(record.original_path)
        return restored

    @staticmethod
    def _free_name(path: Path, created: datetime) -> Path:
        base = f"{path}.bak.{created.strftime(_STAMP)}"
        candidate = Path(base)
        suffix = 1
        while candidate.exists():
            candidate = Path(f"{base}.{suffix}")
            suffix += 1
        return candidate

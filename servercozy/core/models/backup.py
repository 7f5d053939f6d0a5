"""
BackupRecord — a configuration file copied aside before mutation.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

from pydantic import BaseModel, ConfigDict


class BackupRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    original_path: Path
    backup_path: Path
    created_at: datetime

"""
Progress file — the run's current step, for an out-of-band reporter.

The orchestrator is the only writer.  Writes are atomic (write to a
temp file, then rename) so a reader never sees a half-written file.
Removing the file signals completion.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path

logger = logging.getLogger(__name__)


def default_progress_path() -> Path:
    return Path(tempfile.gettempdir()) / f"servercozy-progress-{os.getpid()}.json"


class ProgressFile:
    def __init__(self, path: Path | None = None):
        self.path = Path(path) if path else default_progress_path()

    def update(self, step: str, *, current: int = 0, total: int = 0, detail: str = "") -> None:
        """Record the current step.  Never raises."""
        data = {"step": step, "current": current, "total": total, "detail": detail}
        content = json.dumps(data, ensure_ascii=False)
        try:
            fd, tmp_path = tempfile.mkstemp(
                dir=self.path.parent,
                prefix=".servercozy_progress_",
                suffix=".tmp",
            )
            tmp = Path(tmp_path)
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    fh.write(content)
                os.replace(tmp, self.path)
            except OSError:
                tmp.unlink(missing_ok=True)
                raise
        except OSError as exc:
            logger.debug("Could not write progress file %s: %s", self.path, exc)

    def remove(self) -> None:
        self.path.unlink(missing_ok=True)


def read_progress(path: Path) -> dict | None:
    """Current progress, or None when the file is missing or unreadable."""
    try:
        return json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError):
        return None

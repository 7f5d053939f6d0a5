"""
Background progress reporter.

A daemon thread polls the progress file and renders the current step on
stderr.  It only reads; the orchestrator owns the file.  The thread stops
when ``stop()`` is called or when the file disappears after having been
seen once.
"""

from __future__ import annotations

import logging
import sys
import threading
from pathlib import Path
from typing import TextIO

import click

from servercozy.core.persistence.progress import read_progress

logger = logging.getLogger(__name__)

POLL_INTERVAL = 0.2


def format_progress(data: dict) -> str:
    step = data.get("step", "")
    current = data.get("current") or 0
    total = data.get("total") or 0
    detail = data.get("detail") or ""
    line = f"[{step}]"
    if total:
        line += f" {current}/{total}"
    if detail:
        line += f" {detail}"
    return line


class ProgressReporter:
    def __init__(
        self,
        path: Path,
        *,
        interval: float = POLL_INTERVAL,
        stream: TextIO | None = None,
    ):
        self.path = Path(path)
        self.interval = interval
        self.stream = stream or sys.stderr
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        self._last = ""

    def start(self) -> None:
        if self._thread is not None:
            return
        self._thread = threading.Thread(
            target=self._loop, name="servercozy-progress", daemon=True,
        )
        self._thread.start()

    def stop(self) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=2 * self.interval + 1)
            self._thread = None

    def __enter__(self) -> ProgressReporter:
        self.start()
        return self

    def __exit__(self, *exc) -> None:
        self.stop()

    def _loop(self) -> None:
        seen = False
        while not self._stop.is_set():
            data = read_progress(self.path)
            if data is None:
                if seen and not self.path.exists():
                    break
            else:
                seen = True
                self._render(data)
            self._stop.wait(self.interval)

    def _render(self, data: dict) -> None:
        line = format_progress(data)
        if line == self._last:
            return
        self._last = line
        click.secho(f"  ⏳ {line}", fg="bright_black", file=self.stream)

"""
RunContext — the explicit state threaded through every component call.

Nothing in the provisioning services reads process-wide variables:
options, the detected platform, the privilege decision, the backup
registry and the seams to the outside world (``which``, the command
runner, downloads, operator confirmation) all travel here.  Tests build
one with fakes.
"""

from __future__ import annotations

import os
import shutil
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path
from typing import TYPE_CHECKING, Any

from servercozy.core.models.options import RunOptions
from servercozy.core.models.platform import PlatformProfile
from servercozy.core.models.privilege import PrivilegeContext

if TYPE_CHECKING:
    from servercozy.core.persistence.backup import ConfigBackupManager


class ShellKind(StrEnum):
    BASH = "bash"
    ZSH = "zsh"


CommandRunner = Callable[..., dict[str, Any]]
Downloader = Callable[[str, Path], bool]
Confirm = Callable[[str, bool], bool]


def _never_confirm(question: str, default: bool = False) -> bool:
    return default


@dataclass
class RunContext:
    options: RunOptions
    profile: PlatformProfile
    privilege: PrivilegeContext
    backups: ConfigBackupManager
    runner: CommandRunner
    shell_kind: ShellKind = ShellKind.BASH
    home: Path = field(default_factory=Path.home)
    environ: dict[str, str] = field(default_factory=lambda: dict(os.environ))
    which: Callable[[str], str | None] | None = None
    download: Downloader | None = None
    confirm: Confirm = _never_confirm

    def __post_init__(self) -> None:
        if self.which is None:
            self.which = lambda name: shutil.which(name, path=self.environ.get("PATH"))
        if self.download is None:
            from servercozy.core.services.provision.execution.download import download_file

            self.download = download_file

    # ── Helpers ─────────────────────────────────────────────────

    def run(
        self,
        cmd: list[str],
        *,
        needs_privilege: bool = False,
        timeout: int = 120,
        cwd: str | None = None,
        capture: bool = True,
    ) -> dict[str, Any]:
        """Run ``cmd`` through the runner with this run's privilege and env."""
        return self.runner(
            cmd,
            privilege=self.privilege,
            needs_privilege=needs_privilege,
            timeout=timeout,
            env=self.environ,
            cwd=cwd,
            capture=capture,
        )

    def has_command(self, name: str) -> bool:
        return self.which(name) is not None

    @property
    def local_bin(self) -> Path:
        """Per-user binary directory."""
        return self.home / ".local" / "bin"

    @property
    def rc_file(self) -> Path:
        """Main startup file of the login shell."""
        return self.home / (".zshrc" if self.shell_kind == ShellKind.ZSH else ".bashrc")

    def path_contains(self, directory: Path) -> bool:
        entries = self.environ.get("PATH", "").split(os.pathsep)
        return str(directory) in entries

    def prepend_path(self, directory: Path) -> None:
        """Export ``directory`` into this process's PATH."""
        if self.path_contains(directory):
            return
        current = self.environ.get("PATH", "")
        self.environ["PATH"] = f"{directory}{os.pathsep}{current}" if current else str(directory)

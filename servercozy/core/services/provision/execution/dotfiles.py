"""
L4 Execution — Dotfile writer.

Writes delimited configuration blocks into the operator's startup
files.  Every mutation goes through the ConfigBackupManager first, so
the pre-run content of each file survives in a ``.bak`` copy.

Blocks look like::

    # >>> servercozy: prompt >>>
    ...
    # <<< servercozy: prompt <<<

``append_block`` always appends (a second call leaves two blocks).
``write_block`` replaces an earlier block with the same label in place.
"""

from __future__ import annotations

import logging
import os
import re
from collections.abc import Mapping
from pathlib import Path

from servercozy.core.errors import UnsupportedShellError
from servercozy.core.models.context import ShellKind
from servercozy.core.persistence.backup import ConfigBackupManager

logger = logging.getLogger(__name__)

MARKER = "servercozy"


def detect_shell_kind(environ: Mapping[str, str]) -> ShellKind:
    """Login shell from ``$SHELL``.  Unset means bash."""
    shell = os.path.basename(environ.get("SHELL", "").strip())
    if not shell or shell == "bash":
        return ShellKind.BASH
    if shell == "zsh":
        return ShellKind.ZSH
    raise UnsupportedShellError(
        f"Unsupported login shell '{shell}'. ServerCozy configures bash and zsh only."
    )


def block_markers(label: str, comment: str = "#") -> tuple[str, str]:
    return (
        f"{comment} >>> {MARKER}: {label} >>>",
        f"{comment} <<< {MARKER}: {label} <<<",
    )


def _block_pattern(label: str, comment: str) -> re.Pattern[str]:
    start, end = block_markers(label, comment)
    return re.compile(
        rf"^{re.escape(start)}\n.*?^{re.escape(end)}\n?",
        re.MULTILINE | re.DOTALL,
    )


class DotfileWriter:
    def __init__(self, backups: ConfigBackupManager):
        self._backups = backups

    # ── Blocks ──────────────────────────────────────────────────

    def append_block(
        self,
        path: Path,
        content: str,
        shell_kind: ShellKind | None = None,
        *,
        label: str = "config",
        comment: str = "#",
        rc_file: Path | None = None,
    ) -> Path:
        """Append a delimited block to ``path``.

        Args:
            path: Target file, created when missing.
            content: Block body.
            shell_kind: Shell the file belongs to; None for non-shell
                files such as ``.vimrc``.
            label: Block name shown in the delimiters.
            comment: Comment leader of the target file's syntax.
            rc_file: When given, the shell's main startup file gets a
                line sourcing ``path``.
        """
        self._check_shell(shell_kind)
        path = Path(path)
        self._prepare(path)
        existing = path.read_text(encoding="utf-8")
        with open(path, "a", encoding="utf-8") as fh:
            if existing and not existing.endswith("\n"):
                fh.write("\n")
            fh.write(self._render(label, content, comment, leading_blank=bool(existing)))
        logger.info("Appended %s block to %s", label, path)

        if rc_file is not None:
            self.ensure_source_line(rc_file, path)
        return path

    def write_block(
        self,
        path: Path,
        content: str,
        shell_kind: ShellKind | None = None,
        *,
        label: str = "config",
        comment: str = "#",
        rc_file: Path | None = None,
    ) -> bool:
        """Write a block, replacing an earlier one with the same label.

        Returns:
            True when the file changed.
        """
        self._check_shell(shell_kind)
        path = Path(path)
        existing = path.read_text(encoding="utf-8") if path.is_file() else ""
        block = self._render(label, content, comment, leading_blank=False)
        pattern = _block_pattern(label, comment)

        match = pattern.search(existing)
        if match:
            if match.group(0).rstrip("\n") == block.rstrip("\n"):
                changed = False
                updated = existing
            else:
                updated = existing[:match.start()] + block + existing[match.end():]
                changed = True
        else:
            sep = ""
            if existing:
                sep = "\n" if existing.endswith("\n") else "\n\n"
            updated = existing + sep + block
            changed = True

        if changed:
            self._prepare(path)
            path.write_text(updated, encoding="utf-8")
            logger.info("Wrote %s block to %s", label, path)
        else:
            logger.debug("%s block in %s already current", label, path)

        if rc_file is not None:
            self.ensure_source_line(rc_file, path)
        return changed

    # ── Single lines ────────────────────────────────────────────

    def ensure_line(self, path: Path, line: str) -> bool:
        """Append ``line`` unless the file already contains it.

        Returns:
            True when the line was added.
        """
        path = Path(path)
        existing = path.read_text(encoding="utf-8") if path.is_file() else ""
        if line in existing.splitlines():
            return False
        self._append_line(path, existing, line)
        logger.info("Added '%s' to %s", line, path)
        return True

    def ensure_source_line(self, rc_file: Path, sourced: Path) -> bool:
        """Make ``rc_file`` source ``sourced`` when it exists.

        Any existing ``source …<sourced>`` line counts as present.
        """
        rc_file = Path(rc_file)
        existing = rc_file.read_text(encoding="utf-8") if rc_file.is_file() else ""
        if re.search(rf"source.*{re.escape(str(sourced))}", existing):
            return False
        self._append_line(rc_file, existing, f"[ -f {sourced} ] && source {sourced}")
        logger.info("Added source line for %s to %s", sourced, rc_file)
        return True

    # ── Internals ───────────────────────────────────────────────

    def _append_line(self, path: Path, existing: str, line: str) -> None:
        self._prepare(path)
        with open(path, "a", encoding="utf-8") as fh:
            if existing and not existing.endswith("\n"):
                fh.write("\n")
            fh.write(line + "\n")

    def _prepare(self, path: Path) -> None:
        """Back up, then make sure the file exists."""
        self._backups.backup_if_exists(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.touch(exist_ok=True)

    @staticmethod
    def _render(label: str, content: str, comment: str, *, leading_blank: bool) -> str:
        start, end = block_markers(label, comment)
        body = content.rstrip("\n")
        prefix = "\n" if leading_blank else ""
        return f"{prefix}{start}\n{body}\n{end}\n"

    @staticmethod
    def _check_shell(shell_kind: ShellKind | None) -> None:
        if shell_kind is not None and shell_kind not in tuple(ShellKind):
            raise UnsupportedShellError(f"Unsupported shell: {shell_kind}")

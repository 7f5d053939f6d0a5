"""
L4 Execution — Nerd Font installation.

Per-user: fonts land in ``~/.local/share/fonts``.  No privilege needed.
"""

from __future__ import annotations

import fnmatch
import logging
import shutil
import tempfile
from pathlib import Path

from servercozy.core.models.context import RunContext
from servercozy.core.services.provision.data.dotfiles import NERD_FONT_PREFERRED, NERD_FONT_URL
from servercozy.core.services.provision.execution.download import extract_all

logger = logging.getLogger(__name__)


def install_nerd_font(ctx: RunContext) -> dict:
    """Install JetBrainsMono Nerd Font for the current user.

    Returns:
        ``{"ok": True, "fonts": [...], "font_dir": "..."}`` or
        ``{"ok": False, "error": "..."}``.
    """
    logger.info("Installing JetBrainsMono Nerd Font...")
    font_dir = ctx.home / ".local" / "share" / "fonts"

    with tempfile.TemporaryDirectory(prefix="servercozy-font-") as tmp:
        tmp_dir = Path(tmp)
        archive = tmp_dir / "JetBrainsMono.zip"
        if not ctx.download(NERD_FONT_URL, archive):
            logger.warning("Failed to download font. Continuing without Nerd Font installation.")
            return {"ok": False, "error": "download failed"}

        files = [p for p in extract_all(archive, tmp_dir / "unpacked") if p.suffix == ".ttf"]
        chosen = [p for p in files if fnmatch.fnmatch(p.name, NERD_FONT_PREFERRED)] or files
        if not chosen:
            logger.warning("No font files found in %s", archive.name)
            return {"ok": False, "error": "no .ttf files in archive"}

        font_dir.mkdir(parents=True, exist_ok=True)
        installed = []
        for font in chosen:
            shutil.copy2(font, font_dir / font.name)
            installed.append(font.name)
    logger.info("Font files extracted to %s", font_dir)

    if ctx.has_command("fc-cache"):
        result = ctx.run(["fc-cache", "-f"], timeout=120)
        if result["ok"]:
            logger.info("Font cache updated.")
        else:
            logger.warning("fc-cache failed: %s", result.get("error"))
    else:
        logger.warning("fc-cache not available, font cache not updated.")

    logger.info("JetBrainsMono Nerd Font installed.")
    return {"ok": True, "fonts": installed, "font_dir": str(font_dir)}

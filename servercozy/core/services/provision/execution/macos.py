"""
L4 Execution — macOS preparation.

Homebrew is the only supported manager on macOS.  When it is missing
the operator may let us run the official installer.
"""

from __future__ import annotations

import logging
import tempfile
from pathlib import Path

from servercozy.adapters.package_managers.base import InstallResult, PackageManagerAdapter
from servercozy.core.models.context import RunContext

logger = logging.getLogger(__name__)

HOMEBREW_INSTALL_URL = "https://raw.githubusercontent.com/Homebrew/install/HEAD/install.sh"
_BREW_PREFIXES = ("/opt/homebrew/bin", "/usr/local/bin")


def offer_homebrew(ctx: RunContext) -> bool:
    """Install Homebrew with the operator's consent.

    Returns:
        True when ``brew`` is usable afterwards.
    """
    if ctx.has_command("brew"):
        return True
    if not ctx.options.interactive:
        logger.warning("Homebrew not found. Skipping Homebrew installation in non-interactive mode.")
        return False
    if not ctx.confirm("Homebrew is not installed. Install Homebrew now?", False):
        logger.warning("Skipping Homebrew installation. Some features may not work.")
        return False

    logger.info("Installing Homebrew...")
    with tempfile.TemporaryDirectory(prefix="servercozy-brew-") as tmp:
        script = Path(tmp) / "install.sh"
        if not ctx.download(HOMEBREW_INSTALL_URL, script):
            logger.error("Failed to download the Homebrew installer.")
            return False
        # The installer prompts for RETURN and a sudo password
        result = ctx.run(["/bin/bash", str(script)], timeout=1800, capture=False)

    for prefix in _BREW_PREFIXES:
        if (Path(prefix) / "brew").exists():
            ctx.prepend_path(Path(prefix))
    if result["ok"] and ctx.has_command("brew"):
        logger.info("Homebrew installed successfully.")
        return True
    logger.error("Failed to install Homebrew. Some features may not work.")
    return False


def offer_coreutils(ctx: RunContext, adapter: PackageManagerAdapter | None) -> bool:
    """Offer GNU coreutils on a Homebrew host.  Returns True when installed."""
    if adapter is None or not ctx.options.interactive or ctx.has_command("gls"):
        return False
    if not ctx.confirm("GNU coreutils not detected. Install GNU coreutils?", False):
        return False
    result = adapter.install("coreutils", ctx)
    ok = result["result"] in (InstallResult.OK, InstallResult.ALREADY_CURRENT)
    if ok:
        logger.info("GNU coreutils installed")
    else:
        logger.warning("Failed to install GNU coreutils")
    return ok

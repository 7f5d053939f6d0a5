"""
L3 Detection — Privilege resolution.

Decides once per run how privileged commands are executed.  Order:

    1. ``sudo -n true``      passwordless sudo
    2. ``sudo true``         sudo with a password prompt (interactive only)
    3. ``doas true``         BSD-style elevation
    4. effective uid 0       already root
    5. ask the operator      user-only mode, or abort

Every touchpoint is injectable; nothing here installs or mutates.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
from collections.abc import Callable

from servercozy.core.errors import PrivilegeDeclinedError
from servercozy.core.models.privilege import PrivilegeContext

logger = logging.getLogger(__name__)

Probe = Callable[[list[str], bool], bool]


def _default_probe(cmd: list[str], interactive: bool) -> bool:
    """Run ``cmd`` and report whether it exited 0.

    Interactive probes inherit the terminal so a password prompt can be
    answered; non-interactive probes get no stdin.
    """
    try:
        if interactive:
            result = subprocess.run(cmd, timeout=120)
        else:
            result = subprocess.run(
                cmd,
                stdin=subprocess.DEVNULL,
                capture_output=True,
                timeout=10,
            )
    except (OSError, subprocess.TimeoutExpired):
        return False
    return result.returncode == 0


class PrivilegeResolver:
    def __init__(
        self,
        *,
        interactive: bool = True,
        user_only: bool = False,
        which: Callable[[str], str | None] = shutil.which,
        probe: Probe = _default_probe,
        geteuid: Callable[[], int] = os.geteuid,
        choose_degraded: Callable[[], bool] | None = None,
    ):
        """
        Args:
            interactive: Whether the operator can be prompted.
            user_only: Skip elevation entirely (``--user-only``).
            which: PATH lookup.
            probe: Runs a probe command, returns success.
            geteuid: Effective uid source.
            choose_degraded: Asks the operator whether to continue in
                user-only mode.  Returns True to continue.
        """
        self._interactive = interactive
        self._user_only = user_only
        self._which = which
        self._probe = probe
        self._geteuid = geteuid
        self._choose_degraded = choose_degraded

    def resolve(self) -> PrivilegeContext:
        if self._user_only:
            logger.info("User-only mode enabled. System-wide installations will be skipped.")
            return PrivilegeContext.user_scope()

        if self._which("sudo"):
            if self._probe(["sudo", "-n", "true"], False):
                logger.info("sudo access confirmed (passwordless).")
                return PrivilegeContext.elevated("sudo")
            if self._interactive and self._probe(["sudo", "true"], True):
                logger.info("sudo access confirmed with password.")
                return PrivilegeContext.elevated("sudo")
            logger.warning("sudo command found but access failed.")
        else:
            logger.debug("sudo command not found.")

        if self._which("doas"):
            if self._probe(["doas", "true"], False):
                logger.info("doas access confirmed.")
                return PrivilegeContext.elevated("doas")
            logger.warning("doas command found but access failed.")

        if self._geteuid() == 0:
            logger.info("Running as root user, no elevation needed.")
            return PrivilegeContext.root()

        return self._degrade()

    def _degrade(self) -> PrivilegeContext:
        if not self._interactive or self._choose_degraded is None:
            logger.warning(
                "No privileged access method available. "
                "Continuing with user-only installation mode."
            )
            return PrivilegeContext.user_scope()

        if self._choose_degraded():
            logger.warning("Continuing with user-only installation mode.")
            return PrivilegeContext.user_scope()

        raise PrivilegeDeclinedError(
            "Exiting due to lack of privileged access. "
            "Install sudo or doas, or re-run as root or with --user-only."
        )

"""
L4 Execution — Package installer.

Installs one tool through the platform's package-manager adapter, or
through a per-user toolchain when no privileged install is possible.
Always returns an InstallationOutcome; never raises for a tool-level
problem.
"""

from __future__ import annotations

import logging
from pathlib import Path

from servercozy.adapters.package_managers.base import InstallResult, PackageManagerAdapter
from servercozy.core.models.context import RunContext
from servercozy.core.models.outcome import InstallationOutcome
from servercozy.core.models.tool import ToolDescriptor
from servercozy.core.services.provision.data.special_cases import (
    USER_LEVEL_METHODS,
    UserMethod,
)

logger = logging.getLogger(__name__)

NO_USER_METHOD = "no user-level method"
INSTALL_FAILED = "install command exited non-zero and package absent"
USER_INSTALL_TIMEOUT = 900


class PackageInstaller:
    def __init__(self, ctx: RunContext, adapter: PackageManagerAdapter | None):
        self.ctx = ctx
        self.adapter = adapter

    def is_installed(self, tool: ToolDescriptor) -> bool:
        """Package database first, then the binary on PATH."""
        if self.adapter is not None:
            package = tool.package_for(self.adapter.name)
            if self.adapter.check_installed(package, self.ctx):
                return True
        return self.ctx.has_command(tool.binary)

    def install(self, tool: ToolDescriptor) -> InstallationOutcome:
        name = tool.canonical_name
        if self.is_installed(tool):
            logger.info("%s is already installed.", name)
            return InstallationOutcome.already_installed(name)

        if self._needs_user_level():
            return self.install_user_level(tool)

        package = tool.package_for(self.adapter.name)
        logger.info("Installing %s (%s)...", name, tool.display_description)
        result = self.adapter.install(package, self.ctx)
        status = result["result"]

        if status == InstallResult.SKIPPED:
            return InstallationOutcome.skipped(name, "privileged install skipped in user-only mode")
        if status == InstallResult.ALREADY_CURRENT:
            logger.info("%s is already the newest version.", name)
            return InstallationOutcome.already_installed(name, method="package_manager")

        if self.is_installed(tool):
            logger.info("%s installed successfully.", name)
            return InstallationOutcome.installed(name, "package_manager")

        logger.error(
            "Failed to install %s with %s (exit %s)",
            name, self.adapter.name, result.get("returncode"),
        )
        logger.debug("Install output for %s:\n%s", name, result.get("output", ""))
        return InstallationOutcome.failure(
            name,
            INSTALL_FAILED,
            method="package_manager",
            metadata={"command": result.get("command", ""), "returncode": result.get("returncode")},
        )

    def _needs_user_level(self) -> bool:
        if self.adapter is None:
            return True
        return self.ctx.privilege.user_scope_only and not self.adapter.user_scoped

    # ── User-level toolchains ───────────────────────────────────

    def install_user_level(self, tool: ToolDescriptor) -> InstallationOutcome:
        """Install through npm, pip or cargo into the operator's home."""
        name = tool.canonical_name
        methods = [m for m in USER_LEVEL_METHODS.get(name, ()) if self.ctx.has_command(m.toolchain)]
        if not methods:
            logger.warning("No suitable user-level installation method found for %s.", name)
            return InstallationOutcome.skipped(name, NO_USER_METHOD)

        last_error = ""
        for method in methods:
            logger.info("Attempting user-level installation of %s with %s...", name, method.toolchain)
            result = self.ctx.run(self._expand(method), timeout=USER_INSTALL_TIMEOUT)
            if result.get("ok") and self._user_binary_present(tool, method):
                logger.info("%s installed successfully via %s.", name, method.toolchain)
                return InstallationOutcome.installed(
                    name, "user_level", metadata={"toolchain": method.toolchain},
                )
            last_error = result.get("error") or f"{tool.binary} not found after install"
            logger.warning("User-level installation of %s with %s failed.", name, method.toolchain)

        return InstallationOutcome.failure(name, last_error, method="user_level")

    def _expand(self, method: UserMethod) -> list[str]:
        prefix = str(self.ctx.home / ".local")
        return [arg.replace("{prefix}", prefix) for arg in method.argv]

    def _user_binary_present(self, tool: ToolDescriptor, method: UserMethod) -> bool:
        bin_dir = self.ctx.home / Path(method.bin_dir)
        if (bin_dir / tool.binary).exists():
            self.ctx.prepend_path(bin_dir)
            return True
        return self.ctx.has_command(tool.binary)

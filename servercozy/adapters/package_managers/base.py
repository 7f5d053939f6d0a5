"""
Package-manager adapter base — one polymorphic interface per manager.

The installer never branches on a manager name.  It asks the adapter
for the commands to run and for a structured reading of the output:

    check_installed   query the package database
    install           install one package, classified into InstallResult
    update            refresh repository metadata
    classify_output   map (exit code, output) → InstallResult

To add a manager: subclass PackageManagerAdapter, fill in the command
builders and ``already_current_markers``, register it in the registry.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import StrEnum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from servercozy.core.models.context import RunContext


class InstallResult(StrEnum):
    OK = "ok"
    ALREADY_CURRENT = "already_current"
    FAILED = "failed"
    SKIPPED = "skipped"


INSTALL_TIMEOUT = 600
UPDATE_TIMEOUT = 300
QUERY_TIMEOUT = 30


class PackageManagerAdapter(ABC):
    """Abstract base class for package-manager adapters.

    Adapters never raise for a failed command: results come back as
    dicts carrying an ``InstallResult``.
    """

    # Phrases meaning "nothing to do, the package is current"
    already_current_markers: tuple[str, ...] = ()
    # Exit codes of the update command that are not failures
    update_ok_codes: tuple[int, ...] = (0,)
    # Whether the manager installs into a per-user prefix (no privilege)
    user_scoped: bool = False

    @property
    @abstractmethod
    def name(self) -> str:
        """Manager identifier (``apt``, ``dnf``, ...)."""

    @property
    def binary(self) -> str:
        """Executable probed to decide whether the manager exists."""
        return self.name

    @abstractmethod
    def query_command(self, package: str) -> list[str]:
        """Command whose success means ``package`` is installed."""

    @abstractmethod
    def install_command(self, package: str) -> list[str]:
        """Non-interactive install of one package."""

    @abstractmethod
    def update_command(self) -> list[str]:
        """Repository metadata refresh."""

    @property
    def needs_privilege(self) -> bool:
        return not self.user_scoped

    def query_says_installed(self, result: dict[str, Any]) -> bool:
        """Interpret the query command's result."""
        return bool(result.get("ok"))

    # ── Operations ──────────────────────────────────────────────

    def check_installed(self, package: str, ctx: RunContext) -> bool:
        result = ctx.run(self.query_command(package), timeout=QUERY_TIMEOUT)
        return self.query_says_installed(result)

    def classify_output(self, returncode: int | None, output: str) -> InstallResult:
        """Turn raw exit code and output into a structured result."""
        lowered = output.lower()
        if any(marker.lower() in lowered for marker in self.already_current_markers):
            return InstallResult.ALREADY_CURRENT
        if returncode == 0:
            return InstallResult.OK
        return InstallResult.FAILED

    def install(self, package: str, ctx: RunContext) -> dict[str, Any]:
        """Install ``package``.

        Returns:
            ``{"result": InstallResult, "command": ..., "returncode": ...,
            "output": ...}``.  ``result`` is SKIPPED when the privilege
            context refused to run the command.
        """
        result = ctx.run(
            self.install_command(package),
            needs_privilege=self.needs_privilege,
            timeout=INSTALL_TIMEOUT,
        )
        output = f"{result.get('stdout', '')}\n{result.get('stderr', '')}"
        if result.get("skipped"):
            status = InstallResult.SKIPPED
        else:
            status = self.classify_output(result.get("returncode"), output)
        return {
            "result": status,
            "command": result.get("command", ""),
            "returncode": result.get("returncode"),
            "output": output.strip(),
            "error": result.get("error", ""),
        }

    def update(self, ctx: RunContext) -> dict[str, Any]:
        """Refresh repository metadata.  Best-effort."""
        result = ctx.run(
            self.update_command(),
            needs_privilege=self.needs_privilege,
            timeout=UPDATE_TIMEOUT,
        )
        ok = result.get("returncode") in self.update_ok_codes
        return {
            "ok": ok,
            "skipped": bool(result.get("skipped")),
            "command": result.get("command", ""),
            "returncode": result.get("returncode"),
            "error": "" if ok else result.get("error", ""),
        }

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"

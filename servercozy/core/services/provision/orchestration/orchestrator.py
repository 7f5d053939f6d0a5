"""
L5 Orchestration — The provisioning run.

Fixed step sequence::

    AcquireLock → DetectPlatform → ResolvePrivileges → CheckConnectivity
    → CheckForUpdates → UpdateRepositories → SelectTools → InstallEach
    → ResolveSpecialCases → InstallNerdFont → WriteConfigurations → Summarize

Failure classes:
    per-tool           recorded as an InstallationOutcome, the run continues
    environment-fatal  raised before any mutation, no restore offered
    step-fatal         unexpected error; restore offered when interactive
    interrupt          cleanup only, no restore
"""

from __future__ import annotations

import logging
import os
import shutil
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any, Protocol

from servercozy.adapters.package_managers.registry import (
    PackageManagerRegistry,
    build_default_registry,
)
from servercozy.core.errors import (
    EnvironmentFatalError,
    NoPackageManagerError,
    RunInterrupted,
    ServerCozyError,
    StepFailedError,
    UnsupportedShellError,
)
from servercozy.core.models.context import RunContext, ShellKind
from servercozy.core.models.options import RunOptions
from servercozy.core.models.outcome import InstallationOutcome
from servercozy.core.models.platform import OsFamily, PackageManagerId, PlatformProfile
from servercozy.core.models.summary import RunSummary
from servercozy.core.models.tool import Tier, ToolDescriptor
from servercozy.core.persistence.backup import ConfigBackupManager
from servercozy.core.persistence.lock import RunLock
from servercozy.core.persistence.progress import ProgressFile
from servercozy.core.services.provision.data.special_cases import USER_TOOLCHAINS
from servercozy.core.services.provision.data.tools import TIER_TITLES, TOOL_TIERS
from servercozy.core.services.provision.detection.network import (
    check_connectivity,
    check_for_updates,
)
from servercozy.core.services.provision.detection.platform import PlatformDetector
from servercozy.core.services.provision.detection.privilege import PrivilegeResolver
from servercozy.core.services.provision.execution.configure import (
    configure_aliases,
    configure_prompt,
    configure_vim,
)
from servercozy.core.services.provision.execution.dotfiles import (
    DotfileWriter,
    detect_shell_kind,
)
from servercozy.core.services.provision.execution.fonts import install_nerd_font
from servercozy.core.services.provision.execution.installer import PackageInstaller
from servercozy.core.services.provision.execution.macos import offer_coreutils, offer_homebrew
from servercozy.core.services.provision.execution.repos import update_repositories
from servercozy.core.services.provision.execution.special_cases import SpecialCaseResolver
from servercozy.core.services.provision.execution.subprocess_runner import run_command

logger = logging.getLogger(__name__)


class Interaction(Protocol):
    """What the orchestrator needs from a user interface."""

    def select(
        self, title: str, items: list[tuple[str, str]], defaults: list[bool],
    ) -> list[int]: ...

    def confirm(self, question: str, default: bool = False) -> bool: ...


class Orchestrator:
    """Runs one provisioning pass.

    Every collaborator is injectable; the defaults talk to the real
    system.  Tests substitute fakes for the detector, the privilege
    resolver, the command runner, ``which`` and downloads.
    """

    def __init__(
        self,
        options: RunOptions,
        *,
        interaction: Interaction | None = None,
        detector: PlatformDetector | None = None,
        privilege_resolver: PrivilegeResolver | None = None,
        registry: PackageManagerRegistry | None = None,
        runner: Callable[..., dict[str, Any]] = run_command,
        which: Callable[[str], str | None] | None = None,
        download: Callable[..., bool] | None = None,
        connectivity_check: Callable[[], bool] = check_connectivity,
        update_check: Callable[[], dict] = check_for_updates,
        backups: ConfigBackupManager | None = None,
        lock: RunLock | None = None,
        progress: ProgressFile | None = None,
        home: Path | None = None,
        environ: dict[str, str] | None = None,
        log_path: Path | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.options = options
        self.interaction = interaction
        self.environ = dict(os.environ) if environ is None else environ
        self.home = home or Path.home()
        self.which = which or (lambda name: shutil.which(name, path=self.environ.get("PATH")))
        self.detector = detector or PlatformDetector(which=self.which)
        self.privilege_resolver = privilege_resolver or PrivilegeResolver(
            interactive=options.interactive,
            user_only=options.user_only,
            which=self.which,
            choose_degraded=self._choose_degraded if interaction else None,
        )
        self.registry = registry or build_default_registry()
        self.runner = runner
        self.download = download
        self.connectivity_check = connectivity_check
        self.update_check = update_check
        self.backups = backups or ConfigBackupManager()
        self.lock = lock or RunLock()
        self.progress = progress
        self.log_path = log_path
        self.clock = clock

        self.ctx: RunContext | None = None
        self.summary = RunSummary(log_path=log_path)
        self._step = "Start"

    # ── Entry point ─────────────────────────────────────────────

    def run(self) -> RunSummary:
        started = self.clock()
        self._step = "AcquireLock"
        self.lock.acquire()
        try:
            self._run_steps()
        except EnvironmentFatalError as exc:
            logger.error("%s", exc)
            raise
        except KeyboardInterrupt:
            logger.warning("Interrupted during step '%s'. Cleaning up.", self._step)
            raise RunInterrupted(f"Interrupted during step '{self._step}'") from None
        except RunInterrupted:
            logger.warning("Interrupted during step '%s'. Cleaning up.", self._step)
            raise
        except ServerCozyError as exc:
            logger.error("%s", exc)
            self._offer_restore()
            raise
        except Exception as exc:
            logger.exception("Unexpected failure during step '%s'", self._step)
            self._offer_restore()
            raise StepFailedError(self._step, str(exc)) from exc
        finally:
            self.summary.elapsed_seconds = self.clock() - started
            self._cleanup()
        return self.summary

    def _run_steps(self) -> None:
        self._enter("DetectPlatform")
        profile = self.detector.detect()

        self._enter("ResolvePrivileges")
        privilege = self.privilege_resolver.resolve()

        shell_kind = self._resolve_shell()
        self.ctx = RunContext(
            options=self.options,
            profile=profile,
            privilege=privilege,
            backups=self.backups,
            runner=self.runner,
            shell_kind=shell_kind,
            home=self.home,
            environ=self.environ,
            which=self.which,
            download=self.download,
            confirm=self._confirm,
        )
        ctx = self.ctx

        if profile.os_family == OsFamily.MACOS:
            self._prepare_macos()

        adapter = self.registry.get(ctx.profile.package_manager)
        if adapter is None and not any(ctx.has_command(t) for t in USER_TOOLCHAINS):
            raise NoPackageManagerError(
                "No supported package manager and no user-level toolchain "
                f"({', '.join(USER_TOOLCHAINS)}) found. Nothing can be installed."
            )

        self._enter("CheckConnectivity")
        if not self.connectivity_check():
            self.summary.warnings.append("Limited or no internet connectivity")

        self._enter("CheckForUpdates")
        if self.options.skip_update:
            logger.info("Update check skipped due to command line flag")
        else:
            update = self.update_check()
            if update.get("update_available"):
                self.summary.warnings.append(
                    f"ServerCozy {update['latest']} is available (running {update['current']})"
                )

        self._enter("UpdateRepositories")
        update_repositories(ctx, adapter)

        self._enter("SelectTools")
        selected = self._select_tools()
        self._ask_extras()

        writer = DotfileWriter(self.backups)
        installer = PackageInstaller(ctx, adapter)
        resolver = SpecialCaseResolver(ctx, adapter, writer)
        outcomes: dict[str, InstallationOutcome] = {}

        self._enter("InstallEach")
        regular = [t for t in selected if not resolver.handles(t)]
        for i, tool in enumerate(regular, start=1):
            self._report("InstallEach", i, len(regular), tool.canonical_name)
            outcomes[tool.canonical_name] = self._guarded(tool, installer.install)

        self._enter("ResolveSpecialCases")
        special = [t for t in selected if resolver.handles(t)]
        for i, tool in enumerate(special, start=1):
            self._report("ResolveSpecialCases", i, len(special), tool.canonical_name)
            outcomes[tool.canonical_name] = self._guarded(tool, resolver.resolve)

        for tool in selected:
            self.summary.record(outcomes[tool.canonical_name])

        if self.options.install_nerd_font:
            self._enter("InstallNerdFont")
            if install_nerd_font(ctx)["ok"]:
                self.summary.configured.append("JetBrainsMono Nerd Font installed")

        self._enter("WriteConfigurations")
        available = {
            tool.binary for tool in selected
            if outcomes[tool.canonical_name].ok
        }
        if self.options.configure_prompt:
            configure_prompt(ctx, writer)
            self.summary.configured.append("Custom prompt installed")
        if self.options.configure_aliases:
            configure_aliases(ctx, writer, available)
            self.summary.configured.append("Useful aliases configured")
        if self.options.configure_vim:
            configure_vim(ctx, writer)
            self.summary.configured.append("Vim configured")

        self._enter("Summarize")
        logger.info(
            "Run finished: %d installed, %d already installed, %d skipped, %d failed",
            self.summary.installed,
            self.summary.already_installed,
            self.summary.skipped,
            self.summary.failed,
        )

    # ── Steps ───────────────────────────────────────────────────

    def _resolve_shell(self) -> ShellKind:
        try:
            return detect_shell_kind(self.environ)
        except UnsupportedShellError:
            if self.options.configure_prompt or self.options.configure_aliases:
                raise
            logger.warning("Unsupported login shell; PATH changes go to ~/.bashrc")
            return ShellKind.BASH

    def _prepare_macos(self) -> None:
        ctx = self.ctx
        if ctx.profile.package_manager != PackageManagerId.BREW and offer_homebrew(ctx):
            ctx.profile = ctx.profile.model_copy(update={
                "package_manager": PackageManagerId.BREW,
                "os_name": "macOS (Homebrew)",
            })
        if ctx.profile.package_manager == PackageManagerId.BREW:
            offer_coreutils(ctx, self.registry.get(PackageManagerId.BREW))

    def _select_tools(self) -> list[ToolDescriptor]:
        selected: list[ToolDescriptor] = []
        for tier in Tier:
            tools = TOOL_TIERS[tier]
            enabled = self.options.tier_enabled(tier)
            if self.options.interactive and self.interaction is not None:
                indexes = self.interaction.select(
                    TIER_TITLES[tier],
                    [(t.canonical_name, t.display_description) for t in tools],
                    [enabled] * len(tools),
                )
                selected.extend(tools[i] for i in sorted(set(indexes)) if 0 <= i < len(tools))
            elif enabled:
                selected.extend(tools)

        logger.info(
            "Selected %d tool(s): %s",
            len(selected), ", ".join(t.canonical_name for t in selected) or "none",
        )
        return selected

    def _ask_extras(self) -> None:
        if not self.options.interactive or self.interaction is None:
            return
        self.options = self.options.model_copy(update={
            "install_nerd_font": self._confirm(
                "Install JetBrainsMono Nerd Font?", self.options.install_nerd_font,
            ),
            "configure_vim": self._confirm(
                "Configure Vim with enhanced settings?", self.options.configure_vim,
            ),
            "configure_aliases": self._confirm(
                "Configure useful shell aliases?", self.options.configure_aliases,
            ),
        })
        self.ctx.options = self.options

    def _guarded(
        self,
        tool: ToolDescriptor,
        install: Callable[[ToolDescriptor], InstallationOutcome],
    ) -> InstallationOutcome:
        """Run one tool's installation; unexpected errors become Failed."""
        try:
            return install(tool)
        except (ServerCozyError, KeyboardInterrupt):
            raise
        except Exception as exc:
            logger.exception("Unexpected error installing %s", tool.canonical_name)
            return InstallationOutcome.failure(tool.canonical_name, f"unexpected error: {exc}")

    # ── Interaction ─────────────────────────────────────────────

    def _confirm(self, question: str, default: bool = False) -> bool:
        if not self.options.interactive or self.interaction is None:
            return default
        return self.interaction.confirm(question, default)

    def _choose_degraded(self) -> bool:
        return self.interaction.confirm(
            "No privileged access method available (sudo, doas or root). "
            "Continue with user-only installation?",
            False,
        )

    def _offer_restore(self) -> None:
        if not self.backups.has_backups():
            return
        if not self.options.interactive or self.interaction is None:
            logger.info(
                "Backups left in place: %s",
                ", ".join(str(r.backup_path) for r in self.backups.records),
            )
            return
        if self.interaction.confirm("Restore configuration files from the backups made this run?", True):
            restored = self.backups.restore_all()
            logger.info("Restored %d file(s).", len(restored))

    # ── Bookkeeping ─────────────────────────────────────────────

    def _enter(self, step: str) -> None:
        self._step = step
        logger.debug("Starting step: %s", step)
        self._report(step)

    def _report(self, step: str, current: int = 0, total: int = 0, detail: str = "") -> None:
        if self.progress is not None:
            self.progress.update(step, current=current, total=total, detail=detail)

    def _cleanup(self) -> None:
        if self.progress is not None:
            self.progress.remove()
        self.lock.release()


def profile_summary(profile: PlatformProfile) -> dict[str, str]:
    """Human-readable platform facts for the CLI header."""
    return {
        "Operating System": profile.label,
        "Architecture": profile.architecture.value,
        "Package Manager": profile.package_manager.value,
        "WSL": "yes" if profile.is_wsl else "no",
    }

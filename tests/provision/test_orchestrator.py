"""
End-to-end tests for the provisioning run against a simulated host.
"""

import os
from datetime import datetime
from pathlib import Path
from unittest.mock import patch

import pytest

from servercozy.adapters.package_managers.registry import PackageManagerRegistry
from servercozy.core.errors import (
    LockHeldError,
    NoPackageManagerError,
    PrivilegeDeclinedError,
    RunInterrupted,
    StepFailedError,
    UnsupportedShellError,
)
from servercozy.core.models.context import ShellKind
from servercozy.core.models.options import RunOptions
from servercozy.core.models.outcome import OutcomeStatus
from servercozy.core.models.platform import OsFamily, PackageManagerId, PlatformProfile
from servercozy.core.models.privilege import PrivilegeContext, PrivilegeMode
from servercozy.core.persistence.backup import ConfigBackupManager
from servercozy.core.persistence.lock import RunLock
from servercozy.core.persistence.progress import ProgressFile
from servercozy.core.services.provision.data.tools import ESSENTIAL_TOOLS
from servercozy.core.services.provision.detection.privilege import PrivilegeResolver
from servercozy.core.services.provision.execution.dotfiles import DotfileWriter, block_markers
from servercozy.core.services.provision.execution.installer import NO_USER_METHOD, PackageInstaller
from servercozy.core.services.provision.orchestration import Orchestrator, profile_summary
from tests.provision.fakes import (
    FakeAdapter,
    FakeDownloads,
    FakeInteraction,
    FakeSystem,
    StaticDetector,
    StaticPrivilege,
    debian_profile,
    make_ctx,
)

ESSENTIAL_NAMES = [t.canonical_name for t in ESSENTIAL_TOOLS]


def _registry(*adapters) -> PackageManagerRegistry:
    registry = PackageManagerRegistry()
    for adapter in adapters or (FakeAdapter("apt"),):
        registry.register(adapter)
    return registry


def _orchestrator(
    tmp_path: Path,
    system: FakeSystem,
    *,
    options: RunOptions | None = None,
    profile: PlatformProfile | None = None,
    privilege: PrivilegeContext | None = None,
    interaction: FakeInteraction | None = None,
    registry: PackageManagerRegistry | None = None,
    backups: ConfigBackupManager | None = None,
    shell: str = "/bin/bash",
    update_check=lambda: {"ok": True, "update_available": False},
) -> Orchestrator:
    home = tmp_path / "home"
    home.mkdir(exist_ok=True)
    return Orchestrator(
        options or RunOptions(interactive=False, install_nerd_font=False).essential_only(),
        interaction=interaction,
        detector=StaticDetector(profile or debian_profile()),
        privilege_resolver=StaticPrivilege(privilege or PrivilegeContext.elevated("sudo")),
        registry=registry or _registry(),
        runner=system.run,
        which=system.which,
        download=FakeDownloads(),
        connectivity_check=lambda: True,
        update_check=update_check,
        backups=backups or ConfigBackupManager(),
        lock=RunLock(tmp_path / "servercozy.lock"),
        progress=ProgressFile(tmp_path / "progress.json"),
        home=home,
        environ={"PATH": "/usr/bin:/bin", "HOME": str(home), "SHELL": shell},
    )


# ── Scenario A: essential tools on a healthy host ───────────────────


class TestEssentialRun:
    def test_all_essentials_installed(self, tmp_path: Path):
        system = FakeSystem()
        orch = _orchestrator(tmp_path, system)

        summary = orch.run()

        assert summary.installed == 8
        assert summary.failed == 0
        assert [o.tool for o in summary.outcomes] == ESSENTIAL_NAMES
        assert sorted(system.install_calls()) == sorted(ESSENTIAL_NAMES)

    def test_configurations_written(self, tmp_path: Path):
        orch = _orchestrator(tmp_path, FakeSystem())
        summary = orch.run()

        home = tmp_path / "home"
        assert "PROMPT_COMMAND=prompt_command" in (home / ".bashrc").read_text()
        assert (home / ".bash_aliases").exists()
        assert (home / ".vimrc").exists()
        assert "Useful aliases configured" in summary.configured

    def test_already_installed_tools_are_not_reinstalled(self, tmp_path: Path):
        system = FakeSystem(installed={"git", "curl"}, binaries={"git", "curl"})
        summary = _orchestrator(tmp_path, system).run()

        assert summary.already_installed == 2
        assert summary.installed == 6
        assert "git" not in system.install_calls()

    def test_one_broken_package_does_not_stop_the_run(self, tmp_path: Path):
        system = FakeSystem(broken={"tmux"})
        summary = _orchestrator(tmp_path, system).run()

        assert summary.failed == 1
        assert summary.installed == 7
        assert summary.outcome_for("tmux").status == OutcomeStatus.FAILED

    def test_unexpected_error_is_contained_to_the_tool(self, tmp_path: Path):
        system = FakeSystem()
        original = system._package_manager

        def explode(action, args):
            if action == "install" and args[0] == "tree":
                raise RuntimeError("disk on fire")
            return original(action, args)

        system._package_manager = explode
        summary = _orchestrator(tmp_path, system).run()

        outcome = summary.outcome_for("tree")
        assert outcome.status == OutcomeStatus.FAILED
        assert "disk on fire" in outcome.reason
        assert summary.installed == 7

    def test_lock_and_progress_cleaned_up(self, tmp_path: Path):
        _orchestrator(tmp_path, FakeSystem()).run()
        assert not (tmp_path / "servercozy.lock").exists()
        assert not (tmp_path / "progress.json").exists()

    def test_update_notice_becomes_a_warning(self, tmp_path: Path):
        orch = _orchestrator(
            tmp_path, FakeSystem(),
            update_check=lambda: {"ok": True, "current": "1.9.3", "latest": "2.0.0", "update_available": True},
        )
        summary = orch.run()
        assert any("2.0.0" in w for w in summary.warnings)

    def test_skip_update(self, tmp_path: Path):
        def boom():
            raise AssertionError("update check must not run")

        options = RunOptions(interactive=False, install_nerd_font=False, skip_update=True).essential_only()
        _orchestrator(tmp_path, FakeSystem(), options=options, update_check=boom).run()


# ── Scenario B: no elevation, operator continues in user scope ──────


class TestUserScopeRun:
    def test_degraded_run_skips_instead_of_failing(self, tmp_path: Path):
        system = FakeSystem()
        interaction = FakeInteraction(answers={"user-only installation": True})
        options = RunOptions(install_nerd_font=False).essential_only()
        orch = _orchestrator(tmp_path, system, options=options, interaction=interaction)
        orch.privilege_resolver = PrivilegeResolver(
            interactive=True,
            which=system.which,
            probe=lambda cmd, interactive: False,
            geteuid=lambda: 1000,
            choose_degraded=orch._choose_degraded,
        )

        summary = orch.run()

        assert orch.ctx.privilege.mode == PrivilegeMode.USER_SCOPE_ONLY
        htop = summary.outcome_for("htop")
        assert htop.status == OutcomeStatus.SKIPPED
        assert htop.reason == NO_USER_METHOD
        assert summary.failed == 0
        assert system.install_calls() == []
        assert ["fakepm", "update"] not in system.executed

    def test_installer_skips_tool_without_user_method(self, tmp_path: Path):
        system = FakeSystem()
        ctx = make_ctx(tmp_path, system, privilege=PrivilegeContext.user_scope())
        outcome = PackageInstaller(ctx, FakeAdapter()).install(ESSENTIAL_TOOLS[3])
        assert outcome.status == OutcomeStatus.SKIPPED

    def test_operator_refuses_user_scope(self, tmp_path: Path):
        system = FakeSystem()
        interaction = FakeInteraction(answers={"user-only installation": False})
        orch = _orchestrator(tmp_path, system, options=RunOptions(), interaction=interaction)
        orch.privilege_resolver = PrivilegeResolver(
            interactive=True,
            which=system.which,
            probe=lambda cmd, interactive: False,
            geteuid=lambda: 1000,
            choose_degraded=orch._choose_degraded,
        )

        with pytest.raises(PrivilegeDeclinedError) as exc_info:
            orch.run()

        assert exc_info.value.exit_code == 1
        assert system.executed == []
        assert not (tmp_path / "servercozy.lock").exists()


# ── Scenario C: append_block across two runs ────────────────────────


class TestAppendAcrossRuns:
    def test_two_backups_and_two_blocks(self, tmp_path: Path):
        rc = tmp_path / ".bashrc"
        rc.write_text("# mine\n")
        content = "alias ll='ls -alF'"

        first = ConfigBackupManager(clock=lambda: datetime(2024, 5, 1, 12, 0, 0))
        DotfileWriter(first).append_block(rc, content, ShellKind.BASH, label="aliases")
        second = ConfigBackupManager(clock=lambda: datetime(2024, 5, 1, 12, 0, 1))
        DotfileWriter(second).append_block(rc, content, ShellKind.BASH, label="aliases")

        backups = sorted(tmp_path.glob(".bashrc.bak.*"))
        assert [b.name for b in backups] == [
            ".bashrc.bak.20240501120000",
            ".bashrc.bak.20240501120001",
        ]
        assert rc.read_text().count(block_markers("aliases")[0]) == 2
        assert rc.read_text().count(content) == 2


# ── Interactive selection ───────────────────────────────────────────


class TestSelection:
    def test_operator_picks_tools(self, tmp_path: Path):
        system = FakeSystem()
        interaction = FakeInteraction(
            selections={"Essential Tools": [0, 6], "Recommended Tools": [], "Advanced Tools": []},
            answers={"Nerd Font": False},
        )
        summary = _orchestrator(
            tmp_path, system, options=RunOptions(), interaction=interaction,
        ).run()

        assert [o.tool for o in summary.outcomes] == ["git", "vim"]
        assert interaction.titles == ["Essential Tools", "Recommended Tools", "Advanced Tools"]

    def test_declined_extras_are_not_configured(self, tmp_path: Path):
        interaction = FakeInteraction(
            selections={"Recommended Tools": []},
            answers={"Nerd Font": False, "Vim": False, "aliases": False},
        )
        _orchestrator(tmp_path, FakeSystem(), options=RunOptions(), interaction=interaction).run()

        home = tmp_path / "home"
        assert not (home / ".vimrc").exists()
        assert not (home / ".bash_aliases").exists()
        assert (home / ".bashrc").exists()


# ── Fatal conditions ────────────────────────────────────────────────


class TestEnvironmentFatal:
    def test_no_package_manager_and_no_toolchain(self, tmp_path: Path):
        system = FakeSystem()
        profile = PlatformProfile(os_family=OsFamily.UNKNOWN, package_manager=PackageManagerId.UNKNOWN)
        orch = _orchestrator(tmp_path, system, profile=profile)

        with pytest.raises(NoPackageManagerError):
            orch.run()
        assert not list((tmp_path / "home").iterdir())

    def test_toolchain_is_enough_without_package_manager(self, tmp_path: Path):
        system = FakeSystem(binaries={"cargo"})
        profile = PlatformProfile(os_family=OsFamily.UNKNOWN, package_manager=PackageManagerId.UNKNOWN)
        summary = _orchestrator(tmp_path, system, profile=profile).run()
        assert summary.skipped == 8

    def test_unsupported_shell(self, tmp_path: Path):
        system = FakeSystem()
        with pytest.raises(UnsupportedShellError):
            _orchestrator(tmp_path, system, shell="/usr/bin/fish").run()
        assert system.executed == []

    def test_unsupported_shell_is_fine_without_shell_config(self, tmp_path: Path):
        options = RunOptions(
            interactive=False, install_nerd_font=False,
            configure_prompt=False, configure_aliases=False,
        ).essential_only()
        summary = _orchestrator(tmp_path, FakeSystem(), options=options, shell="/usr/bin/fish").run()
        assert summary.installed == 8

    def test_live_lock(self, tmp_path: Path):
        lock_file = tmp_path / "servercozy.lock"
        lock_file.write_text(f"{os.getppid()}\n")
        system = FakeSystem()

        with pytest.raises(LockHeldError):
            _orchestrator(tmp_path, system).run()

        assert lock_file.read_text().strip() == str(os.getppid())
        assert system.calls == []
        assert not (tmp_path / "progress.json").exists()

    def test_stale_lock_is_replaced(self, tmp_path: Path):
        (tmp_path / "servercozy.lock").write_text("999999999\n")
        summary = _orchestrator(tmp_path, FakeSystem()).run()
        assert summary.installed == 8


# ── Step failure and restore ────────────────────────────────────────


class TestRestore:
    def _prepare_home(self, tmp_path: Path) -> Path:
        home = tmp_path / "home"
        home.mkdir()
        (home / ".bashrc").write_text("# operator's bashrc\n")
        return home

    def test_step_failure_offers_restore(self, tmp_path: Path):
        home = self._prepare_home(tmp_path)
        interaction = FakeInteraction(
            answers={"Restore": True, "Nerd Font": False},
            selections={"Recommended Tools": []},
        )
        backups = ConfigBackupManager()
        orch = _orchestrator(
            tmp_path, FakeSystem(), options=RunOptions(), interaction=interaction, backups=backups,
        )

        target = "servercozy.core.services.provision.orchestration.orchestrator.configure_vim"
        with patch(target, side_effect=RuntimeError("vim exploded")):
            with pytest.raises(StepFailedError) as exc_info:
                orch.run()

        assert exc_info.value.step == "WriteConfigurations"
        assert str(exc_info.value) == "Step 'WriteConfigurations' failed: vim exploded"
        assert (home / ".bashrc").read_text() == "# operator's bashrc\n"
        assert any("Restore" in q for q in interaction.questions)
        assert not (tmp_path / "servercozy.lock").exists()

        # A second restore changes nothing
        backups.restore_all()
        assert (home / ".bashrc").read_text() == "# operator's bashrc\n"

    def test_step_failure_logs_step_and_traceback(self, tmp_path: Path, caplog):
        self._prepare_home(tmp_path)
        orch = _orchestrator(tmp_path, FakeSystem())

        target = "servercozy.core.services.provision.orchestration.orchestrator.configure_vim"
        with patch(target, side_effect=PermissionError(13, "Permission denied", "/home/op/.vimrc")):
            with pytest.raises(StepFailedError) as exc_info:
                orch.run()

        assert "/home/op/.vimrc" in str(exc_info.value)
        record = next(r for r in caplog.records if "during step" in r.getMessage())
        assert record.getMessage() == "Unexpected failure during step 'WriteConfigurations'"
        assert isinstance(record.exc_info[1], PermissionError)

    def test_non_interactive_failure_leaves_backups(self, tmp_path: Path):
        home = self._prepare_home(tmp_path)
        orch = _orchestrator(tmp_path, FakeSystem())

        target = "servercozy.core.services.provision.orchestration.orchestrator.configure_vim"
        with patch(target, side_effect=RuntimeError("vim exploded")):
            with pytest.raises(StepFailedError):
                orch.run()

        assert "PROMPT_COMMAND" in (home / ".bashrc").read_text()
        assert list(home.glob(".bashrc.bak.*"))

    def test_interrupt_cleans_up_without_restore(self, tmp_path: Path):
        self._prepare_home(tmp_path)
        interaction = FakeInteraction(answers={"Nerd Font": False})
        system = FakeSystem()
        original = system._package_manager

        def interrupt(action, args):
            if action == "install":
                raise KeyboardInterrupt
            return original(action, args)

        system._package_manager = interrupt
        orch = _orchestrator(tmp_path, system, options=RunOptions(), interaction=interaction)

        with pytest.raises(RunInterrupted) as exc_info:
            orch.run()

        assert exc_info.value.exit_code == 130
        assert not any("Restore" in q for q in interaction.questions)
        assert not (tmp_path / "servercozy.lock").exists()
        assert not (tmp_path / "progress.json").exists()


class TestProfileSummary:
    def test_facts(self):
        facts = profile_summary(debian_profile())
        assert facts["Operating System"] == "Ubuntu 22.04"
        assert facts["Package Manager"] == "apt"
        assert facts["Architecture"] == "amd64"

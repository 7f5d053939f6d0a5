"""
Tests for the CLI — flags, exit codes and option plumbing.
"""

from pathlib import Path
from unittest.mock import patch

from click.testing import CliRunner

from servercozy import __version__
from servercozy.core.errors import LockHeldError, RunInterrupted
from servercozy.core.models.summary import RunSummary
from servercozy.main import _flag_overrides, cli
from tests.provision.fakes import debian_profile

ORCHESTRATOR = "servercozy.core.services.provision.orchestration.Orchestrator"


def _invoke(args: list[str], tmp_path: Path):
    runner = CliRunner()
    env = {"SERVERCOZY_CONFIG": "", "HOME": str(tmp_path), "TMPDIR": str(tmp_path)}
    return runner.invoke(cli, args, env=env)


class FakeOrchestrator:
    """Stands in for the real run; records the options it was given."""

    instances: list["FakeOrchestrator"] = []
    raises: Exception | None = None

    def __init__(self, options, **kwargs):
        self.options = options
        self.kwargs = kwargs
        self.ctx = None
        FakeOrchestrator.instances.append(self)

    def run(self) -> RunSummary:
        if FakeOrchestrator.raises is not None:
            raise FakeOrchestrator.raises
        from servercozy.core.models.context import RunContext
        from servercozy.core.models.options import RunOptions
        from servercozy.core.models.privilege import PrivilegeContext
        from servercozy.core.persistence.backup import ConfigBackupManager

        self.ctx = RunContext(
            options=RunOptions(),
            profile=debian_profile(),
            privilege=PrivilegeContext.elevated("sudo"),
            backups=ConfigBackupManager(),
            runner=lambda *a, **k: {},
            download=lambda url, dest: False,
        )
        return RunSummary(elapsed_seconds=65)


def _patched():
    FakeOrchestrator.instances = []
    FakeOrchestrator.raises = None
    return patch(ORCHESTRATOR, FakeOrchestrator)


class TestCLIGlobal:
    def test_help(self, tmp_path: Path):
        result = _invoke(["--help"], tmp_path)
        assert result.exit_code == 0
        assert "--non-interactive" in result.output
        assert "--essential-only" in result.output

    def test_version_long(self, tmp_path: Path):
        result = _invoke(["--version"], tmp_path)
        assert result.exit_code == 0
        assert result.output.strip() == f"ServerCozy v{__version__}"

    def test_version_short(self, tmp_path: Path):
        result = _invoke(["-v"], tmp_path)
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_unknown_flag_exits_1(self, tmp_path: Path):
        result = _invoke(["--frobnicate"], tmp_path)
        assert result.exit_code == 1
        assert "Usage" in result.output

    def test_stray_argument_exits_1(self, tmp_path: Path):
        assert _invoke(["extra"], tmp_path).exit_code == 1


class TestRun:
    def test_success_exit_code_and_summary(self, tmp_path: Path):
        with _patched():
            result = _invoke(["--non-interactive", "--essential-only"], tmp_path)

        assert result.exit_code == 0, result.output
        assert "Installation Summary" in result.output
        assert "Time taken: 1m 5s" in result.output
        options = FakeOrchestrator.instances[0].options
        assert options.interactive is False
        assert options.install_recommended is False

    def test_flags_reach_options(self, tmp_path: Path):
        with _patched():
            _invoke([
                "--non-interactive", "--no-dialog", "--user-only",
                "--no-nerd-font", "--skip-update",
            ], tmp_path)

        options = FakeOrchestrator.instances[0].options
        assert options.use_dialog is False
        assert options.user_only is True
        assert options.install_nerd_font is False
        assert options.skip_update is True

    def test_non_tty_forces_non_interactive(self, tmp_path: Path):
        with _patched():
            _invoke([], tmp_path)
        assert FakeOrchestrator.instances[0].options.interactive is False

    def test_fatal_error_exits_1(self, tmp_path: Path):
        with _patched():
            FakeOrchestrator.raises = LockHeldError(4242, "/tmp/servercozy.lock")
            result = _invoke(["--non-interactive"], tmp_path)

        assert result.exit_code == 1
        assert "Another instance of ServerCozy is already running (PID: 4242)" in result.output

    def test_interrupt_exit_code(self, tmp_path: Path):
        with _patched():
            FakeOrchestrator.raises = RunInterrupted("Interrupted during step 'InstallEach'")
            result = _invoke(["--non-interactive"], tmp_path)

        assert result.exit_code == 130

    def test_config_file_and_flags(self, tmp_path: Path):
        config = tmp_path / "cozy.yml"
        config.write_text("install_advanced: true\nconfigure_vim: false\n")

        with _patched():
            result = _invoke(["--config", str(config), "--non-interactive"], tmp_path)

        assert result.exit_code == 0, result.output
        options = FakeOrchestrator.instances[0].options
        assert options.install_advanced is True
        assert options.configure_vim is False

    def test_essential_only_beats_config_tiers(self, tmp_path: Path):
        config = tmp_path / "cozy.yml"
        config.write_text("install_advanced: true\ninstall_recommended: true\n")

        with _patched():
            result = _invoke(["--config", str(config), "--non-interactive", "--essential-only"], tmp_path)

        assert result.exit_code == 0, result.output
        options = FakeOrchestrator.instances[0].options
        assert (options.install_essential, options.install_recommended, options.install_advanced) == (
            True, False, False,
        )

    def test_invalid_config_exits_1(self, tmp_path: Path):
        config = tmp_path / "cozy.yml"
        config.write_text("install_everything: yes\n")

        with _patched():
            result = _invoke(["--config", str(config)], tmp_path)

        assert result.exit_code == 1
        assert FakeOrchestrator.instances == []

    def test_missing_explicit_config_exits_1(self, tmp_path: Path):
        result = _invoke(["--config", str(tmp_path / "nope.yml")], tmp_path)
        assert result.exit_code == 1


class TestFlagOverrides:
    def test_unset_flags_leave_config_alone(self):
        assert _flag_overrides(
            non_interactive=False, no_dialog=False,
            user_only=False, no_nerd_font=False, skip_update=False,
        ) == {}

    def test_given_flags(self):
        overrides = _flag_overrides(
            non_interactive=True, no_dialog=False,
            user_only=True, no_nerd_font=False, skip_update=False,
        )
        assert overrides == {"interactive": False, "user_only": True}

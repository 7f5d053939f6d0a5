"""
Hand-written fakes for provisioning tests.

FakeSystem simulates a host: which binaries are on PATH, which packages
are installed, and what every command run would do.  It records each
call so tests can assert what was (and was not) executed.
"""

from __future__ import annotations

import shlex
from collections.abc import Callable
from pathlib import Path
from typing import Any

from servercozy.adapters.package_managers.base import PackageManagerAdapter
from servercozy.core.models.context import RunContext, ShellKind
from servercozy.core.models.options import RunOptions
from servercozy.core.models.platform import (
    Architecture,
    OsFamily,
    PackageManagerId,
    PlatformProfile,
)
from servercozy.core.models.privilege import PrivilegeContext
from servercozy.core.models.tool import ToolDescriptor
from servercozy.core.persistence.backup import ConfigBackupManager
from servercozy.core.services.provision.data.tools import ALL_TOOLS

FAKE_PM = "fakepm"


def result(ok: bool = True, returncode: int | None = 0, stdout: str = "", **extra: Any) -> dict:
    out = {
        "ok": ok,
        "returncode": returncode,
        "stdout": stdout,
        "stderr": "",
        "command": "",
        "skipped": False,
    }
    if not ok:
        out["error"] = f"Command failed (exit {returncode})"
    out.update(extra)
    return out


class FakeSystem:
    """A simulated host behind ``which`` and the command runner.

    Args:
        binaries: Commands already on PATH.
        installed: Packages already in the package database.
        provides: Binaries a package puts on PATH (default: its name).
        broken: Packages whose install exits non-zero.
    """

    def __init__(
        self,
        binaries: tuple[str, ...] | set[str] = (),
        installed: tuple[str, ...] | set[str] = (),
        provides: dict[str, list[str]] | None = None,
        broken: tuple[str, ...] | set[str] = (),
    ):
        self.binaries = set(binaries)
        self.installed = set(installed)
        self.provides = dict(provides or {})
        self.broken = set(broken)
        self.calls: list[dict[str, Any]] = []
        # First word of a command → handler(cmd) returning a result dict
        self.hooks: dict[str, Callable[[list[str]], dict]] = {}

    # ── Seams ───────────────────────────────────────────────────

    def which(self, name: str) -> str | None:
        return f"/usr/bin/{name}" if name in self.binaries else None

    def run(
        self,
        cmd: list[str],
        *,
        privilege: PrivilegeContext | None = None,
        needs_privilege: bool = False,
        timeout: int = 120,
        env: dict | None = None,
        cwd: str | None = None,
        input_text: str | None = None,
        capture: bool = True,
    ) -> dict[str, Any]:
        cmd = list(cmd)
        call = {"cmd": cmd, "needs_privilege": needs_privilege, "capture": capture, "executed": True}
        self.calls.append(call)

        if needs_privilege and (privilege is None or privilege.wrap(cmd) is None):
            call["executed"] = False
            return result(ok=False, returncode=None, skipped=True, command=shlex.join(cmd))

        if cmd[0] in self.hooks:
            return {**self.hooks[cmd[0]](cmd), "command": shlex.join(cmd)}
        if cmd[0] == FAKE_PM:
            return {**self._package_manager(cmd[1], cmd[2:]), "command": shlex.join(cmd)}
        return result(command=shlex.join(cmd))

    # ── Queries for assertions ──────────────────────────────────

    @property
    def executed(self) -> list[list[str]]:
        return [c["cmd"] for c in self.calls if c["executed"]]

    def install_calls(self) -> list[str]:
        """Packages an install was actually attempted for."""
        return [c["cmd"][2] for c in self.calls if c["executed"] and c["cmd"][:2] == [FAKE_PM, "install"]]

    # ── Simulation ──────────────────────────────────────────────

    def _package_manager(self, action: str, args: list[str]) -> dict:
        if action == "query":
            return result(ok=args[0] in self.installed, returncode=0 if args[0] in self.installed else 1)
        if action == "update":
            return result()
        if action == "install":
            package = args[0]
            if package in self.broken:
                return result(ok=False, returncode=100, stdout=f"E: Unable to locate package {package}")
            if package in self.installed:
                return result(stdout=f"{package} is already current")
            self.add_package(package)
            return result(stdout=f"Setting up {package}")
        return result(ok=False, returncode=2)

    def add_package(self, package: str) -> None:
        self.installed.add(package)
        self.binaries.update(self.provides.get(package, [package]))


class FakeAdapter(PackageManagerAdapter):
    """Package-manager adapter whose commands FakeSystem understands."""

    already_current_markers = ("is already current",)

    def __init__(self, name: str = "apt", user_scoped: bool = False):
        self._name = name
        self.user_scoped = user_scoped

    @property
    def name(self) -> str:
        return self._name

    @property
    def binary(self) -> str:
        return FAKE_PM

    def query_command(self, package: str) -> list[str]:
        return [FAKE_PM, "query", package]

    def install_command(self, package: str) -> list[str]:
        return [FAKE_PM, "install", package]

    def update_command(self) -> list[str]:
        return [FAKE_PM, "update"]


class FakeDownloads:
    """URL → payload.  Unknown URLs fail like a network error."""

    def __init__(self, payloads: dict[str, bytes | Callable[[Path], None]] | None = None):
        self.payloads = dict(payloads or {})
        self.requested: list[str] = []

    def __call__(self, url: str, dest: Path, **kwargs: Any) -> bool:
        self.requested.append(url)
        payload = self.payloads.get(url)
        if payload is None:
            return False
        dest = Path(dest)
        dest.parent.mkdir(parents=True, exist_ok=True)
        if callable(payload):
            payload(dest)
        else:
            dest.write_bytes(payload)
        return True


def get_tool(name: str) -> ToolDescriptor:
    """Catalogue entry by canonical name."""
    return next(t for t in ALL_TOOLS if t.canonical_name == name)


def debian_profile(**overrides: Any) -> PlatformProfile:
    fields = {
        "os_family": OsFamily.DEBIAN,
        "package_manager": PackageManagerId.APT,
        "architecture": Architecture.AMD64,
        "os_name": "Ubuntu",
        "os_version": "22.04",
        "machine": "x86_64",
    }
    fields.update(overrides)
    return PlatformProfile(**fields)


def make_ctx(
    home: Path,
    system: FakeSystem,
    *,
    profile: PlatformProfile | None = None,
    privilege: PrivilegeContext | None = None,
    options: RunOptions | None = None,
    shell_kind: ShellKind = ShellKind.BASH,
    download: Callable[..., bool] | None = None,
    confirm: Callable[[str, bool], bool] | None = None,
    backups: ConfigBackupManager | None = None,
) -> RunContext:
    home.mkdir(parents=True, exist_ok=True)
    kwargs: dict[str, Any] = {}
    if confirm is not None:
        kwargs["confirm"] = confirm
    return RunContext(
        options=options or RunOptions(interactive=False),
        profile=profile or debian_profile(),
        privilege=privilege or PrivilegeContext.elevated("sudo"),
        backups=backups or ConfigBackupManager(),
        runner=system.run,
        shell_kind=shell_kind,
        home=home,
        environ={"PATH": "/usr/bin:/bin", "HOME": str(home), "SHELL": f"/bin/{shell_kind}"},
        which=system.which,
        download=download or FakeDownloads(),
        **kwargs,
    )


class FakeInteraction:
    """Scripted operator.

    ``answers`` maps a substring of a question to the answer; anything
    else gets the question's default.  ``selections`` maps a checklist
    title to the indexes chosen; anything else keeps the defaults.
    """

    def __init__(
        self,
        answers: dict[str, bool] | None = None,
        selections: dict[str, list[int]] | None = None,
    ):
        self.answers = dict(answers or {})
        self.selections = dict(selections or {})
        self.questions: list[str] = []
        self.titles: list[str] = []

    def select(self, title: str, items: list[tuple[str, str]], defaults: list[bool]) -> list[int]:
        self.titles.append(title)
        if title in self.selections:
            return list(self.selections[title])
        return [i for i, on in enumerate(defaults) if on]

    def confirm(self, question: str, default: bool = False) -> bool:
        self.questions.append(question)
        for needle, answer in self.answers.items():
            if needle in question:
                return answer
        return default


class StaticDetector:
    def __init__(self, profile: PlatformProfile):
        self.profile = profile

    def detect(self) -> PlatformProfile:
        return self.profile


class StaticPrivilege:
    def __init__(self, privilege: PrivilegeContext):
        self.privilege = privilege

    def resolve(self) -> PrivilegeContext:
        return self.privilege

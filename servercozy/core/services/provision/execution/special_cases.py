"""
L4 Execution — Special-case resolver.

Some tools cannot be installed with one package-manager call: the
package name differs per family, the package ships a differently named
binary, or no package exists and a release binary or a source build is
needed.  For those tools the resolver walks an ordered fallback chain
(see ``data/special_cases.py``) and attributes the outcome to the step
that succeeded.

After a success, a binary whose name differs from the canonical command
gets a symlink in ``~/.local/bin`` (an existing file there is never
replaced), and ``~/.local/bin`` is put on PATH both in the shell startup
file and in the running process.
"""

from __future__ import annotations

import logging
import shutil
import tempfile
from pathlib import Path
from typing import Any

from servercozy.adapters.package_managers.base import InstallResult, PackageManagerAdapter
from servercozy.core.models.context import RunContext
from servercozy.core.models.outcome import InstallationOutcome
from servercozy.core.models.tool import ToolDescriptor
from servercozy.core.services.provision.data.dotfiles import PATH_EXPORT_LINE
from servercozy.core.services.provision.data.special_cases import (
    RUSTUP_INSTALL_URL,
    SPECIAL_CASE_CHAINS,
)
from servercozy.core.services.provision.execution.dotfiles import DotfileWriter
from servercozy.core.services.provision.execution.download import extract_member

logger = logging.getLogger(__name__)

SYSTEM_BIN = Path("/usr/local/bin")
BUILD_TIMEOUT = 1800


def _fail(reason: str, **extra: Any) -> dict[str, Any]:
    return {"ok": False, "reason": reason, **extra}


def _command_reason(what: str, result: dict[str, Any]) -> str:
    detail = result.get("error") or "failed"
    command = result.get("command", "")
    return f"{what}: {detail}" + (f" ({command})" if command else "")


class SpecialCaseResolver:
    def __init__(
        self,
        ctx: RunContext,
        adapter: PackageManagerAdapter | None,
        writer: DotfileWriter,
        chains: dict[str, dict] | None = None,
    ):
        self.ctx = ctx
        self.adapter = adapter
        self.writer = writer
        self.chains = SPECIAL_CASE_CHAINS if chains is None else chains
        self._handlers = {
            "repository": self._repository,
            "third_party_repository": self._third_party_repository,
            "binary_download": self._binary_download,
            "toolchain_build": self._toolchain_build,
        }

    def handles(self, tool: ToolDescriptor) -> bool:
        return tool.canonical_name in self.chains

    def resolve(self, tool: ToolDescriptor) -> InstallationOutcome:
        name = tool.canonical_name
        chain = self.chains[name]
        canonical = chain.get("canonical", tool.binary)

        present = self._already_present(chain, canonical)
        if present is not None:
            logger.info("%s is already installed.", name)
            return InstallationOutcome.already_installed(name, metadata=present)

        last_reason = "no applicable installation method"
        attempted_any = False
        for step in chain["steps"]:
            kind = step["kind"]
            result = self._handlers[kind](tool, step)
            if result.get("not_applicable"):
                logger.debug("%s: %s step not applicable", name, kind)
                continue
            if not result["ok"]:
                # A skipped step never hides the reason an attempted step failed
                if not result.get("skipped"):
                    attempted_any = True
                    last_reason = result["reason"]
                elif not attempted_any:
                    last_reason = result["reason"]
                logger.warning("%s: %s step failed: %s", name, kind, result["reason"])
                continue

            binary = Path(result["binary"])
            metadata = {"binary": str(binary)}
            link = self._link_canonical(canonical, binary)
            if link is not None:
                metadata["symlink"] = str(link)
            logger.info("Installed %s via %s.", name, kind.replace("_", " "))
            return InstallationOutcome.installed(name, kind, metadata=metadata)

        if not attempted_any:
            logger.warning("Skipping %s: %s", name, last_reason)
            return InstallationOutcome.skipped(name, last_reason)
        logger.warning("Could not install %s: %s", name, last_reason)
        return InstallationOutcome.failure(name, last_reason)

    # ── Step kinds ──────────────────────────────────────────────

    def _repository(self, tool: ToolDescriptor, step: dict) -> dict[str, Any]:
        if self.adapter is None:
            return {"not_applicable": True}
        packages_by_family = step["packages"]
        family = self.ctx.profile.os_family.value
        packages = packages_by_family.get(family, packages_by_family.get("_default"))
        if not packages:
            return {"not_applicable": True}

        reason = ""
        for package in packages:
            result = self.adapter.install(package, self.ctx)
            if result["result"] == InstallResult.SKIPPED:
                return _fail("privileged install skipped in user-only mode", skipped=True)
            found = self._find_binary(step["binaries"])
            if found:
                return {"ok": True, "binary": found}
            reason = f"package '{package}' did not provide {' / '.join(step['binaries'])}"
            if result["result"] == InstallResult.FAILED:
                reason = _command_reason(f"installing '{package}' failed", result)
        return _fail(reason)

    def _third_party_repository(self, tool: ToolDescriptor, step: dict) -> dict[str, Any]:
        if self.adapter is None or self.ctx.profile.os_family.value not in step["families"]:
            return {"not_applicable": True}
        if self.ctx.privilege.user_scope_only:
            return _fail("registering a repository needs privileges (user-only mode)", skipped=True)

        for prereq in step.get("prerequisites", ()):
            if not self.ctx.has_command(prereq):
                self.adapter.install(prereq, self.ctx)

        keyring = step["keyring"]
        list_file = step["list_file"]
        with tempfile.TemporaryDirectory(prefix="servercozy-repo-") as tmp:
            tmp_dir = Path(tmp)
            key_file = tmp_dir / "repo.asc"
            if not self.ctx.download(step["key_url"], key_file):
                return _fail(f"could not download repository key {step['key_url']}")
            source_file = tmp_dir / "repo.list"
            source_file.write_text(step["source_line"] + "\n", encoding="utf-8")

            commands = (
                ["mkdir", "-p", str(Path(keyring).parent)],
                ["gpg", "--batch", "--yes", "--dearmor", "-o", keyring, str(key_file)],
                ["install", "-m", "644", str(source_file), list_file],
                ["chmod", "644", keyring],
            )
            for cmd in commands:
                result = self.ctx.run(cmd, needs_privilege=True, timeout=60)
                if not result["ok"]:
                    return _fail(_command_reason("repository setup failed", result))

        self.adapter.update(self.ctx)
        result = self.adapter.install(step["package"], self.ctx)
        found = self._find_binary(step["binaries"])
        if found:
            return {"ok": True, "binary": found}
        return _fail(_command_reason(f"installing '{step['package']}' from repository failed", result))

    def _binary_download(self, tool: ToolDescriptor, step: dict) -> dict[str, Any]:
        families = step.get("families")
        if families is not None and self.ctx.profile.os_family.value not in families:
            return {"not_applicable": True}
        url = step["url"]
        targets = step.get("targets")
        if targets is not None:
            arch = self.ctx.profile.architecture.value
            target = targets.get(arch)
            if target is None:
                return _fail(f"no pre-built binary for architecture '{arch}'")
            url = url.format(target=target)

        binary = step["binary"]
        with tempfile.TemporaryDirectory(prefix="servercozy-dl-") as tmp:
            tmp_dir = Path(tmp)
            archive = tmp_dir / Path(url).name
            if not self.ctx.download(url, archive):
                return _fail(f"download failed: {url}")
            extracted = tmp_dir / f"{binary}.bin"
            if not extract_member(archive, step["member"], extracted, kind=step["archive"]):
                return _fail(f"'{step['member']}' not found in {archive.name}")
            placed = self._place_binary(extracted, binary)

        if placed is None:
            return _fail(f"could not place {binary} in a binary directory")
        return {"ok": True, "binary": str(placed)}

    def _toolchain_build(self, tool: ToolDescriptor, step: dict) -> dict[str, Any]:
        toolchain = step["toolchain"]
        if not self._toolchain_available(toolchain, tool):
            return _fail(f"{toolchain} is not available", skipped=True)

        result = self.ctx.run([toolchain] + list(step["args"]), timeout=BUILD_TIMEOUT)
        if not result["ok"]:
            return _fail(_command_reason(f"{toolchain} build failed", result))
        found = self._find_binary(step["binaries"], extra_dirs=[self._cargo_bin])
        if found:
            return {"ok": True, "binary": found}
        return _fail(f"{toolchain} build finished but {' / '.join(step['binaries'])} not found")

    # ── Helpers ─────────────────────────────────────────────────

    @property
    def _cargo_bin(self) -> Path:
        return self.ctx.home / ".cargo" / "bin"

    def _already_present(self, chain: dict, canonical: str) -> dict[str, str] | None:
        """Metadata for an existing install, or None when the tool is missing.

        Any binary a step could leave behind counts, and so does any
        package the repository steps would install for this family.
        """
        names = [canonical]
        for step in chain["steps"]:
            names += [n for n in step.get("binaries", ()) if n not in names]

        found = self._find_binary(names)
        if found:
            metadata = {"binary": found}
            link = self._link_canonical(canonical, Path(found))
            if link is not None:
                metadata["symlink"] = str(link)
            return metadata

        if self.adapter is None:
            return None
        for package in self._family_packages(chain):
            if self.adapter.check_installed(package, self.ctx):
                return {"package": package}
        return None

    def _family_packages(self, chain: dict) -> list[str]:
        family = self.ctx.profile.os_family.value
        packages: list[str] = []
        for step in chain["steps"]:
            if step["kind"] == "repository":
                by_family = step["packages"]
                packages += by_family.get(family, by_family.get("_default")) or []
            elif step["kind"] == "third_party_repository" and family in step["families"]:
                packages.append(step["package"])
        return list(dict.fromkeys(packages))

    def _toolchain_available(self, toolchain: str, tool: ToolDescriptor) -> bool:
        if self.ctx.has_command(toolchain):
            return True
        if toolchain != "cargo" or not self.ctx.options.allow_toolchain_bootstrap:
            return False
        question = (
            f"Install the Rust toolchain (rustup) into ~/.cargo to build "
            f"{tool.canonical_name} from source?"
        )
        if not self.ctx.confirm(question, False):
            logger.info("Toolchain bootstrap declined by operator.")
            return False
        return self._bootstrap_rustup()

    def _bootstrap_rustup(self) -> bool:
        logger.info("Bootstrapping the Rust toolchain with rustup...")
        with tempfile.TemporaryDirectory(prefix="servercozy-rustup-") as tmp:
            script = Path(tmp) / "rustup-init.sh"
            if not self.ctx.download(RUSTUP_INSTALL_URL, script):
                return False
            result = self.ctx.run(
                ["sh", str(script), "-y", "--no-modify-path", "--profile", "minimal"],
                timeout=BUILD_TIMEOUT,
            )
        if not result["ok"]:
            logger.warning("rustup installation failed: %s", result.get("error"))
            return False
        self.ctx.prepend_path(self._cargo_bin)
        return self.ctx.has_command("cargo")

    def _find_binary(self, names: list[str], extra_dirs: list[Path] | None = None) -> str | None:
        for name in names:
            found = self.ctx.which(name)
            if found:
                return found
        for directory in extra_dirs or ():
            for name in names:
                candidate = directory / name
                if candidate.exists():
                    self.ctx.prepend_path(directory)
                    return str(candidate)
        return None

    def _place_binary(self, source: Path, binary: str) -> Path | None:
        """Install into /usr/local/bin when privileged, else ~/.local/bin."""
        if not self.ctx.privilege.user_scope_only:
            target = SYSTEM_BIN / binary
            result = self.ctx.run(
                ["install", "-m", "755", str(source), str(target)],
                needs_privilege=True,
                timeout=60,
            )
            if result["ok"]:
                return target
            logger.warning("Could not install %s to %s, using ~/.local/bin", binary, SYSTEM_BIN)

        local_bin = self.ctx.local_bin
        try:
            local_bin.mkdir(parents=True, exist_ok=True)
            target = local_bin / binary
            shutil.copy2(source, target)
            target.chmod(0o755)
        except OSError as exc:
            logger.warning("Could not copy %s to %s: %s", binary, local_bin, exc)
            return None
        self.ensure_local_bin_on_path()
        return target

    def _link_canonical(self, canonical: str, binary: Path) -> Path | None:
        """Symlink ``~/.local/bin/<canonical>`` to a differently named binary."""
        if binary.name == canonical:
            return None
        link = self.ctx.local_bin / canonical
        if link.exists() or link.is_symlink():
            logger.info("%s already exists, leaving it untouched", link)
            return None
        try:
            link.parent.mkdir(parents=True, exist_ok=True)
            link.symlink_to(binary)
        except OSError as exc:
            logger.warning("Could not create %s → %s: %s", link, binary, exc)
            return None
        logger.info("Created '%s' symlink in %s", canonical, link.parent)
        self.ensure_local_bin_on_path()
        return link

    def ensure_local_bin_on_path(self) -> None:
        """Persist and export ``~/.local/bin`` on PATH."""
        local_bin = self.ctx.local_bin
        if self.ctx.path_contains(local_bin):
            return
        logger.info("Adding ~/.local/bin to PATH in %s", self.ctx.rc_file)
        self.writer.ensure_line(self.ctx.rc_file, PATH_EXPORT_LINE)
        self.ctx.prepend_path(local_bin)

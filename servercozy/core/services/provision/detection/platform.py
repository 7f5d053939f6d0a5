"""
L3 Detection — Platform detection.

Determines OS family, package manager and architecture.  Read-only:
file reads and PATH lookups, never a system mutation.  Never raises:
anything unrecognised degrades to ``unknown`` with a warning.

Probe order:
    1. macOS (kernel name Darwin)
    2. WSL marker in /proc/version (informational only)
    3. BSD kernel names
    4. /etc/os-release NAME substring match
    5. /etc/lsb-release (Debian family)
    6. package-manager binaries on PATH
"""

from __future__ import annotations

import logging
import platform as _platform
import shlex
import shutil
from collections.abc import Callable
from pathlib import Path

from servercozy.core.models.platform import (
    Architecture,
    OsFamily,
    PackageManagerId,
    PlatformProfile,
)

logger = logging.getLogger(__name__)


# ── Lookup tables ───────────────────────────────────────────────

_ARCH_MAP: dict[str, Architecture] = {
    "x86_64": Architecture.AMD64,
    "amd64": Architecture.AMD64,
    "aarch64": Architecture.ARM64,
    "arm64": Architecture.ARM64,
    "armhf": Architecture.ARMHF,
    "i386": Architecture.I386,
    "i686": Architecture.I386,
}

_BSD_KERNELS = ("FreeBSD", "OpenBSD", "NetBSD")

# First match wins; substrings of os-release NAME
_OS_RELEASE_RULES: tuple[tuple[tuple[str, ...], OsFamily], ...] = (
    (("Ubuntu", "Debian"), OsFamily.DEBIAN),
    (("CentOS", "Red Hat", "Fedora"), OsFamily.REDHAT),
    (("Alpine",), OsFamily.ALPINE),
    (("Arch", "Manjaro"), OsFamily.ARCH),
)

_FIXED_MANAGER: dict[OsFamily, PackageManagerId] = {
    OsFamily.DEBIAN: PackageManagerId.APT,
    OsFamily.ALPINE: PackageManagerId.APK,
    OsFamily.ARCH: PackageManagerId.PACMAN,
}

# Probe order for the binary fallback: (binaries, manager, family)
_BINARY_PROBES: tuple[tuple[tuple[str, ...], PackageManagerId, OsFamily], ...] = (
    (("apt", "apt-get"), PackageManagerId.APT, OsFamily.DEBIAN),
    (("dnf",), PackageManagerId.DNF, OsFamily.REDHAT),
    (("yum",), PackageManagerId.YUM, OsFamily.REDHAT),
    (("apk",), PackageManagerId.APK, OsFamily.ALPINE),
    (("pacman",), PackageManagerId.PACMAN, OsFamily.ARCH),
)


def normalize_architecture(machine: str) -> Architecture:
    """Map a raw ``uname -m`` value to an Architecture."""
    raw = machine.strip().lower()
    if raw.startswith("armv7"):
        return Architecture.ARMHF
    return _ARCH_MAP.get(raw, Architecture.UNKNOWN)


def parse_release_file(text: str) -> dict[str, str]:
    """Parse a KEY=value file such as /etc/os-release."""
    values: dict[str, str] = {}
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, _, raw = line.partition("=")
        try:
            parts = shlex.split(raw)
        except ValueError:
            parts = [raw.strip("\"'")]
        values[key.strip()] = parts[0] if parts else ""
    return values


class PlatformDetector:
    """Computes the PlatformProfile once per run.

    Every system touchpoint is injectable so that detection can be
    exercised against simulated hosts.
    """

    def __init__(
        self,
        *,
        system: Callable[[], str] = _platform.system,
        machine: Callable[[], str] = _platform.machine,
        release: Callable[[], str] = _platform.release,
        which: Callable[[str], str | None] = shutil.which,
        os_release: Path = Path("/etc/os-release"),
        lsb_release: Path = Path("/etc/lsb-release"),
        proc_version: Path = Path("/proc/version"),
        mac_version: Callable[[], str] | None = None,
    ):
        self._system = system
        self._machine = machine
        self._release = release
        self._which = which
        self._os_release = os_release
        self._lsb_release = lsb_release
        self._proc_version = proc_version
        self._mac_version = mac_version or (lambda: _platform.mac_ver()[0])

    def detect(self) -> PlatformProfile:
        machine = self._safe_call(self._machine)
        architecture = normalize_architecture(machine)
        if architecture == Architecture.UNKNOWN:
            logger.warning(
                "Unknown architecture: %s. Some features may not work correctly.",
                machine or "<empty>",
            )

        fields = self._detect_os()
        profile = PlatformProfile(architecture=architecture, machine=machine, **fields)
        logger.info(
            "Detected %s (package manager: %s, arch: %s%s)",
            profile.label,
            profile.package_manager,
            profile.architecture,
            ", WSL" if profile.is_wsl else "",
        )
        if profile.package_manager == PackageManagerId.UNKNOWN:
            logger.warning(
                "Could not detect a package manager. Continuing in degraded mode: "
                "only user-level installation methods are available."
            )
        return profile

    # ── Probes ──────────────────────────────────────────────────

    def _detect_os(self) -> dict:
        kernel = self._safe_call(self._system)

        if kernel == "Darwin":
            has_brew = self._which("brew") is not None
            if not has_brew:
                logger.warning("Homebrew not found. Some features may not work properly.")
            return {
                "os_family": OsFamily.MACOS,
                "package_manager": PackageManagerId.BREW if has_brew else PackageManagerId.NONE,
                "os_name": "macOS (Homebrew)" if has_brew else "macOS",
                "os_version": self._safe_call(self._mac_version) or "Unknown",
            }

        is_wsl = self._detect_wsl()

        if kernel in _BSD_KERNELS:
            return {
                "os_family": OsFamily.BSD,
                "package_manager": PackageManagerId.PKG,
                "os_name": kernel,
                "os_version": self._safe_call(self._release),
                "is_wsl": is_wsl,
            }

        os_release = self._read(self._os_release)
        if os_release is not None:
            return {**self._from_os_release(parse_release_file(os_release)), "is_wsl": is_wsl}

        lsb = self._read(self._lsb_release)
        if lsb is not None:
            values = parse_release_file(lsb)
            return {
                "os_family": OsFamily.DEBIAN,
                "package_manager": PackageManagerId.APT,
                "os_name": values.get("DISTRIB_ID", ""),
                "os_version": values.get("DISTRIB_RELEASE", ""),
                "is_wsl": is_wsl,
            }

        family, manager = self._probe_binaries()
        return {
            "os_family": family,
            "package_manager": manager,
            "os_name": kernel,
            "os_version": self._safe_call(self._release),
            "is_wsl": is_wsl,
        }

    def _from_os_release(self, values: dict[str, str]) -> dict:
        name = values.get("NAME", "")
        version = values.get("VERSION_ID", "")
        for needles, family in _OS_RELEASE_RULES:
            if any(needle in name for needle in needles):
                return {
                    "os_family": family,
                    "package_manager": self._manager_for(family),
                    "os_name": name,
                    "os_version": version,
                }

        logger.warning("Unsupported distribution: %s. Will try to detect package manager.", name)
        _, manager = self._probe_binaries()
        return {
            "os_family": OsFamily.UNKNOWN,
            "package_manager": manager,
            "os_name": name,
            "os_version": version,
        }

    def _manager_for(self, family: OsFamily) -> PackageManagerId:
        if family == OsFamily.REDHAT:
            return PackageManagerId.DNF if self._which("dnf") else PackageManagerId.YUM
        return _FIXED_MANAGER[family]

    def _probe_binaries(self) -> tuple[OsFamily, PackageManagerId]:
        for binaries, manager, family in _BINARY_PROBES:
            if any(self._which(b) for b in binaries):
                return family, manager
        return OsFamily.UNKNOWN, PackageManagerId.UNKNOWN

    def _detect_wsl(self) -> bool:
        text = self._read(self._proc_version)
        if text and ("microsoft" in text.lower() or "wsl" in text.lower()):
            logger.info("Detected Windows Subsystem for Linux")
            return True
        return False

    # ── Helpers ─────────────────────────────────────────────────

    @staticmethod
    def _read(path: Path) -> str | None:
        try:
            return path.read_text(encoding="utf-8", errors="replace")
        except OSError:
            return None

    @staticmethod
    def _safe_call(fn: Callable[[], str]) -> str:
        try:
            return fn() or ""
        except OSError:
            return ""

"""
PlatformProfile — what machine we are provisioning.

Computed once by the PlatformDetector and shared read-only afterwards.
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, model_validator


class OsFamily(StrEnum):
    DEBIAN = "debian"
    REDHAT = "redhat"
    ALPINE = "alpine"
    ARCH = "arch"
    MACOS = "macos"
    BSD = "bsd"
    UNKNOWN = "unknown"


class PackageManagerId(StrEnum):
    APT = "apt"
    DNF = "dnf"
    YUM = "yum"
    APK = "apk"
    BREW = "brew"
    PACMAN = "pacman"
    PKG = "pkg"
    NONE = "none"
    UNKNOWN = "unknown"


class Architecture(StrEnum):
    AMD64 = "amd64"
    ARM64 = "arm64"
    ARMHF = "armhf"
    I386 = "i386"
    UNKNOWN = "unknown"


# Fixed family → package-manager mapping.  UNKNOWN is absent on purpose:
# an unknown family may carry whatever manager direct probing found.
FAMILY_PACKAGE_MANAGERS: dict[OsFamily, tuple[PackageManagerId, ...]] = {
    OsFamily.DEBIAN: (PackageManagerId.APT,),
    OsFamily.REDHAT: (PackageManagerId.DNF, PackageManagerId.YUM),
    OsFamily.ALPINE: (PackageManagerId.APK,),
    OsFamily.ARCH: (PackageManagerId.PACMAN,),
    OsFamily.MACOS: (PackageManagerId.BREW, PackageManagerId.NONE),
    OsFamily.BSD: (PackageManagerId.PKG,),
}


class PlatformProfile(BaseModel):
    """Detected OS family, package manager and architecture."""

    model_config = ConfigDict(frozen=True)

    os_family: OsFamily = OsFamily.UNKNOWN
    package_manager: PackageManagerId = PackageManagerId.UNKNOWN
    architecture: Architecture = Architecture.UNKNOWN
    is_wsl: bool = False

    os_name: str = ""
    os_version: str = ""
    machine: str = ""

    @model_validator(mode="after")
    def _check_family_mapping(self) -> PlatformProfile:
        allowed = FAMILY_PACKAGE_MANAGERS.get(self.os_family)
        if allowed is not None and self.package_manager not in allowed:
            raise ValueError(
                f"package manager '{self.package_manager}' is not valid "
                f"for OS family '{self.os_family}'"
            )
        return self

    @property
    def has_package_manager(self) -> bool:
        return self.package_manager not in (
            PackageManagerId.NONE, PackageManagerId.UNKNOWN,
        )

    @property
    def label(self) -> str:
        """Human-readable description used in logs and the summary."""
        name = " ".join(p for p in (self.os_name, self.os_version) if p)
        return name or self.os_family.value

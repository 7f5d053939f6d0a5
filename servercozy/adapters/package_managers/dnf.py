"""dnf and yum (Fedora, RHEL, CentOS)."""

from __future__ import annotations

from servercozy.adapters.package_managers.base import PackageManagerAdapter


class DnfAdapter(PackageManagerAdapter):
    already_current_markers = ("already installed",)
    # check-update exits 100 when updates are available
    update_ok_codes = (0, 100)

    @property
    def name(self) -> str:
        return "dnf"

    def query_command(self, package: str) -> list[str]:
        return ["rpm", "-q", package]

    def install_command(self, package: str) -> list[str]:
        return [self.name, "install", "-y", package]

    def update_command(self) -> list[str]:
        return [self.name, "check-update", "-y"]


class YumAdapter(DnfAdapter):
    @property
    def name(self) -> str:
        return "yum"

"""pkg (FreeBSD and friends)."""

from __future__ import annotations

from servercozy.adapters.package_managers.base import PackageManagerAdapter


class PkgAdapter(PackageManagerAdapter):
    already_current_markers = ("already installed",)

    @property
    def name(self) -> str:
        return "pkg"

    def query_command(self, package: str) -> list[str]:
        return ["pkg", "info", "-e", package]

    def install_command(self, package: str) -> list[str]:
        return ["pkg", "install", "-y", package]

    def update_command(self) -> list[str]:
        return ["pkg", "update"]

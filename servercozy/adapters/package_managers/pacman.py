"""pacman (Arch, Manjaro)."""

from __future__ import annotations

from servercozy.adapters.package_managers.base import PackageManagerAdapter


class PacmanAdapter(PackageManagerAdapter):
    already_current_markers = ("is up to date",)

    @property
    def name(self) -> str:
        return "pacman"

    def query_command(self, package: str) -> list[str]:
        return ["pacman", "-Q", package]

    def install_command(self, package: str) -> list[str]:
        return ["pacman", "-S", "--noconfirm", "--needed", package]

    def update_command(self) -> list[str]:
        return ["pacman", "-Sy"]

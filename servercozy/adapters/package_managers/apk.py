"""apk (Alpine)."""

from __future__ import annotations

from servercozy.adapters.package_managers.base import PackageManagerAdapter


class ApkAdapter(PackageManagerAdapter):
    already_current_markers = ("already exists", "(no change)")

    @property
    def name(self) -> str:
        return "apk"

    def query_command(self, package: str) -> list[str]:
        return ["apk", "info", "-e", package]

    def install_command(self, package: str) -> list[str]:
        return ["apk", "add", package]

    def update_command(self) -> list[str]:
        return ["apk", "update"]

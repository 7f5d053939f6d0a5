"""apt / dpkg (Debian, Ubuntu)."""

from __future__ import annotations

from typing import Any

from servercozy.adapters.package_managers.base import PackageManagerAdapter


class AptAdapter(PackageManagerAdapter):
    already_current_markers = ("is already the newest version",)

    @property
    def name(self) -> str:
        return "apt"

    @property
    def binary(self) -> str:
        return "apt-get"

    def query_command(self, package: str) -> list[str]:
        return ["dpkg-query", "-W", "-f=${Status}", package]

    def query_says_installed(self, result: dict[str, Any]) -> bool:
        # "deinstall ok config-files" also exits 0
        return bool(result.get("ok")) and "install ok installed" in result.get("stdout", "")

    def install_command(self, package: str) -> list[str]:
        return ["apt-get", "install", "-y", package]

    def update_command(self) -> list[str]:
        return ["apt-get", "update"]

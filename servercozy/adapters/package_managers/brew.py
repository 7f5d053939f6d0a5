"""Homebrew (macOS).  Installs into a user-owned prefix."""

from __future__ import annotations

from typing import Any

from servercozy.adapters.package_managers.base import PackageManagerAdapter


class BrewAdapter(PackageManagerAdapter):
    already_current_markers = ("already installed",)
    user_scoped = True

    @property
    def name(self) -> str:
        return "brew"

    def query_command(self, package: str) -> list[str]:
        return ["brew", "list", "--versions", package]

    def query_says_installed(self, result: dict[str, Any]) -> bool:
        return bool(result.get("ok")) and bool(result.get("stdout", "").strip())

    def install_command(self, package: str) -> list[str]:
        return ["brew", "install", package]

    def update_command(self) -> list[str]:
        return ["brew", "update"]

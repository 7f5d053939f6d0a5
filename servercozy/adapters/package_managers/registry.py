"""
Package-manager registry — lookup of adapters by manager id.

The orchestrator and installer never construct adapters directly; they
ask the registry, which makes swapping in a fake for tests a one-liner.
"""

from __future__ import annotations

import logging

from servercozy.adapters.package_managers.apk import ApkAdapter
from servercozy.adapters.package_managers.apt import AptAdapter
from servercozy.adapters.package_managers.base import PackageManagerAdapter
from servercozy.adapters.package_managers.brew import BrewAdapter
from servercozy.adapters.package_managers.dnf import DnfAdapter, YumAdapter
from servercozy.adapters.package_managers.pacman import PacmanAdapter
from servercozy.adapters.package_managers.pkg import PkgAdapter

logger = logging.getLogger(__name__)


class PackageManagerRegistry:
    """Registered adapters keyed by manager id."""

    def __init__(self) -> None:
        self._adapters: dict[str, PackageManagerAdapter] = {}

    def register(self, adapter: PackageManagerAdapter) -> None:
        name = adapter.name
        if name in self._adapters:
            logger.warning("Overwriting existing package-manager adapter: %s", name)
        self._adapters[name] = adapter
        logger.debug("Registered package-manager adapter: %s", name)

    def get(self, name: str) -> PackageManagerAdapter | None:
        """Adapter for ``name``; None for ``none``/``unknown`` or unregistered ids."""
        return self._adapters.get(str(name))

    def list_adapters(self) -> list[str]:
        return list(self._adapters.keys())


def build_default_registry() -> PackageManagerRegistry:
    """Registry with every supported manager."""
    registry = PackageManagerRegistry()
    for adapter in (
        AptAdapter(),
        DnfAdapter(),
        YumAdapter(),
        ApkAdapter(),
        BrewAdapter(),
        PacmanAdapter(),
        PkgAdapter(),
    ):
        registry.register(adapter)
    return registry

"""
ToolDescriptor — one installable command-line tool.

Descriptors are immutable and defined once at startup as three ordered
tiers (see ``services/provision/data/tools.py``).
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


class Tier(StrEnum):
    """Priority group controlling default selection."""

    ESSENTIAL = "essential"
    RECOMMENDED = "recommended"
    ADVANCED = "advanced"


class ToolDescriptor(BaseModel):
    """A tool, identified by its canonical name on every platform."""

    model_config = ConfigDict(frozen=True)

    canonical_name: str
    display_description: str = ""
    tier: Tier = Tier.ESSENTIAL

    # Binary probed for presence; the canonical name when empty
    command: str = ""
    # Package name overrides keyed by package-manager id
    packages: dict[str, str] = Field(default_factory=dict)

    @property
    def binary(self) -> str:
        """Command expected on PATH once the tool is installed."""
        return self.command or self.canonical_name

    def package_for(self, package_manager: str) -> str:
        """Package name to request from ``package_manager``."""
        return self.packages.get(package_manager, self.canonical_name)

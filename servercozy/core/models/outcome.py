"""
InstallationOutcome — the result of one install attempt for one tool.

Outcomes are values, never exceptions: every selected tool ends up with
exactly one outcome in the run summary.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field


class OutcomeStatus(StrEnum):
    ALREADY_INSTALLED = "already_installed"
    INSTALLED = "installed"
    SKIPPED = "skipped"
    FAILED = "failed"


class InstallationOutcome(BaseModel):
    """What happened to a tool."""

    tool: str
    status: OutcomeStatus
    reason: str = ""
    method: str = ""                # strategy that produced the result
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        """Whether the tool is available after the attempt."""
        return self.status in (OutcomeStatus.ALREADY_INSTALLED, OutcomeStatus.INSTALLED)

    @property
    def failed(self) -> bool:
        return self.status == OutcomeStatus.FAILED

    @classmethod
    def already_installed(cls, tool: str, **kwargs: Any) -> InstallationOutcome:
        return cls(tool=tool, status=OutcomeStatus.ALREADY_INSTALLED, **kwargs)

    @classmethod
    def installed(cls, tool: str, method: str, **kwargs: Any) -> InstallationOutcome:
        return cls(tool=tool, status=OutcomeStatus.INSTALLED, method=method, **kwargs)

    @classmethod
    def skipped(cls, tool: str, reason: str, **kwargs: Any) -> InstallationOutcome:
        return cls(tool=tool, status=OutcomeStatus.SKIPPED, reason=reason, **kwargs)

    @classmethod
    def failure(cls, tool: str, reason: str, **kwargs: Any) -> InstallationOutcome:
        return cls(tool=tool, status=OutcomeStatus.FAILED, reason=reason, **kwargs)

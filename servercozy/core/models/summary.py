"""
RunSummary — what a run did, rendered at the end.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from servercozy.core.models.outcome import InstallationOutcome, OutcomeStatus


@dataclass
class RunSummary:
    """Ordered outcomes plus configured items."""

    outcomes: list[InstallationOutcome] = field(default_factory=list)
    configured: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    elapsed_seconds: float = 0.0
    log_path: Path | None = None

    def record(self, outcome: InstallationOutcome) -> None:
        """Add or replace the outcome for ``outcome.tool``, keeping order."""
        for i, existing in enumerate(self.outcomes):
            if existing.tool == outcome.tool:
                self.outcomes[i] = outcome
                return
        self.outcomes.append(outcome)

    def outcome_for(self, tool: str) -> InstallationOutcome | None:
        for outcome in self.outcomes:
            if outcome.tool == tool:
                return outcome
        return None

    def _count(self, status: OutcomeStatus) -> int:
        return sum(1 for o in self.outcomes if o.status == status)

    @property
    def installed(self) -> int:
        return self._count(OutcomeStatus.INSTALLED)

    @property
    def already_installed(self) -> int:
        return self._count(OutcomeStatus.ALREADY_INSTALLED)

    @property
    def skipped(self) -> int:
        return self._count(OutcomeStatus.SKIPPED)

    @property
    def failed(self) -> int:
        return self._count(OutcomeStatus.FAILED)

    @property
    def available_tools(self) -> set[str]:
        """Canonical names of tools present after the run."""
        return {o.tool for o in self.outcomes if o.ok}

    def to_dict(self) -> dict:
        return {
            "outcomes": [o.model_dump(mode="json") for o in self.outcomes],
            "configured": list(self.configured),
            "warnings": list(self.warnings),
            "elapsed_seconds": round(self.elapsed_seconds, 1),
            "log_path": str(self.log_path) if self.log_path else None,
            "installed": self.installed,
            "already_installed": self.already_installed,
            "skipped": self.skipped,
            "failed": self.failed,
        }

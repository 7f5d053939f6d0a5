"""
L5 Orchestration — ``__init__.py`` re-exports the run coordinator.
"""

from servercozy.core.services.provision.orchestration.orchestrator import (  # noqa: F401
    Interaction,
    Orchestrator,
    profile_summary,
)

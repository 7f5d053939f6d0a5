"""
Domain models — Pydantic types for a provisioning run.

All models are re-exported here for convenient access:

    from servercozy.core.models import ToolDescriptor, PlatformProfile, RunOptions
"""

from servercozy.core.models.backup import BackupRecord
from servercozy.core.models.context import RunContext, ShellKind
from servercozy.core.models.options import RunOptions
from servercozy.core.models.outcome import InstallationOutcome, OutcomeStatus
from servercozy.core.models.platform import (
    FAMILY_PACKAGE_MANAGERS,
    Architecture,
    OsFamily,
    PackageManagerId,
    PlatformProfile,
)
from servercozy.core.models.privilege import PrivilegeContext, PrivilegeMode
from servercozy.core.models.summary import RunSummary
from servercozy.core.models.tool import Tier, ToolDescriptor

__all__ = [
    # backup.py
    "BackupRecord",
    # context.py
    "RunContext",
    "ShellKind",
    # options.py
    "RunOptions",
    # outcome.py
    "InstallationOutcome",
    "OutcomeStatus",
    # platform.py
    "FAMILY_PACKAGE_MANAGERS",
    "Architecture",
    "OsFamily",
    "PackageManagerId",
    "PlatformProfile",
    # privilege.py
    "PrivilegeContext",
    "PrivilegeMode",
    # summary.py
    "RunSummary",
    # tool.py
    "Tier",
    "ToolDescriptor",
]

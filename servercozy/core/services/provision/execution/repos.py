"""
L4 Execution — Repository metadata refresh.  Best-effort.
"""

from __future__ import annotations

import logging

from servercozy.adapters.package_managers.base import PackageManagerAdapter
from servercozy.core.models.context import RunContext

logger = logging.getLogger(__name__)


def update_repositories(ctx: RunContext, adapter: PackageManagerAdapter | None) -> dict:
    """Refresh package lists.  Failures are warnings, never fatal."""
    if adapter is None:
        logger.warning("No suitable package manager found. Skipping repository update.")
        return {"ok": False, "skipped": True}
    if ctx.privilege.user_scope_only and not adapter.user_scoped:
        logger.warning("Skipping system repository updates in user-only mode.")
        return {"ok": False, "skipped": True}

    logger.info("Updating package repositories...")
    result = adapter.update(ctx)
    if result["ok"]:
        logger.info("Package repositories updated.")
    else:
        logger.warning(
            "Failed to update %s repositories (exit %s)",
            adapter.name, result.get("returncode"),
        )
    return result

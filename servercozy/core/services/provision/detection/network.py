"""
L3 Detection — Network probing.

Best-effort, read-only checks: internet reachability and whether a
newer release of servercozy has been published.  Neither ever aborts
a run.
"""

from __future__ import annotations

import logging
import re
import socket
import tempfile
import urllib.request
from collections.abc import Callable
from pathlib import Path

from servercozy import __version__

logger = logging.getLogger(__name__)

CHECK_DOMAINS: tuple[str, ...] = ("google.com", "github.com", "cloudflare.com")
PROBE_TIMEOUT = 2

UPDATE_URL = "https://raw.githubusercontent.com/sudharsan-007/servercozy/main/server-cozy.sh"
UPDATE_ATTEMPTS = 2
UPDATE_DELAY = 3

_VERSION_RE = re.compile(r'^VERSION="([0-9.]+)"', re.MULTILINE)


def _https_head(domain: str, timeout: float) -> bool:
    req = urllib.request.Request(f"https://{domain}", method="HEAD")
    try:
        with urllib.request.urlopen(req, timeout=timeout):
            return True
    except OSError:
        return False


def _tcp_connect(domain: str, timeout: float) -> bool:
    try:
        with socket.create_connection((domain, 443), timeout=timeout):
            return True
    except OSError:
        return False


def check_connectivity(
    domains: tuple[str, ...] = CHECK_DOMAINS,
    *,
    timeout: float = PROBE_TIMEOUT,
    probes: tuple[Callable[[str, float], bool], ...] = (_https_head, _tcp_connect),
) -> bool:
    """Whether any well-known domain answers.

    Tries every probe against every domain and stops at the first
    success.
    """
    logger.info("Checking internet connectivity...")
    for probe in probes:
        for domain in domains:
            if probe(domain, timeout):
                logger.info("Internet connectivity confirmed.")
                return True
    logger.warning("No internet connectivity detected. Some features may not work.")
    return False


def parse_remote_version(text: str) -> str | None:
    match = _VERSION_RE.search(text)
    return match.group(1) if match else None


def _version_tuple(version: str) -> tuple[int, ...]:
    return tuple(int(p) for p in version.split(".") if p.isdigit())


def check_for_updates(
    *,
    current: str = __version__,
    url: str = UPDATE_URL,
    download: Callable[..., bool] | None = None,
) -> dict:
    """Compare the running version with the published one.

    Only reports; it never replaces the running program.

    Returns::

        {"ok": True, "current": "1.9.3", "latest": "1.9.4", "update_available": True}
        or
        {"ok": False, "current": "1.9.3", "error": "..."}
    """
    if download is None:
        from servercozy.core.services.provision.execution.download import download_file

        download = download_file

    logger.info("Checking for updates...")
    with tempfile.TemporaryDirectory(prefix="servercozy-update-") as tmp:
        target = Path(tmp) / "latest"
        if not download(url, target, attempts=UPDATE_ATTEMPTS, delay=UPDATE_DELAY):
            logger.warning("Failed to check for updates. Continuing with current version.")
            return {"ok": False, "current": current, "error": "download failed"}
        latest = parse_remote_version(target.read_text(encoding="utf-8", errors="replace"))

    if not latest:
        logger.warning("Could not determine remote version. Continuing with current version.")
        return {"ok": False, "current": current, "error": "no version found"}

    available = _version_tuple(latest) > _version_tuple(current)
    if available:
        logger.warning("A new version of ServerCozy is available: %s (running %s)", latest, current)
    else:
        logger.info("You are running the latest version (%s).", current)
    return {"ok": True, "current": current, "latest": latest, "update_available": available}

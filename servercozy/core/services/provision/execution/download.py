"""
L4 Execution — File downloads and archive extraction.

Downloads are bounded: a connect/read timeout per request, an overall
deadline per attempt, and a fixed number of attempts with a pause in
between.  Failures are reported as ``False``, never raised.
"""

from __future__ import annotations

import logging
import os
import shutil
import tarfile
import time
import urllib.request
import zipfile
from collections.abc import Callable
from pathlib import Path

from servercozy import __version__

logger = logging.getLogger(__name__)

CONNECT_TIMEOUT = 15
ATTEMPT_DEADLINE = 120
MAX_ATTEMPTS = 3
RETRY_DELAY = 5

_CHUNK = 64 * 1024
_USER_AGENT = f"servercozy/{__version__}"


class _DeadlineExceeded(Exception):
    pass


def download_file(
    url: str,
    dest: Path,
    *,
    attempts: int = MAX_ATTEMPTS,
    delay: float = RETRY_DELAY,
    timeout: float = CONNECT_TIMEOUT,
    deadline: float = ATTEMPT_DEADLINE,
    sleep: Callable[[float], None] = time.sleep,
) -> bool:
    """Download ``url`` to ``dest`` with retries.

    Args:
        url: Source URL.
        dest: Destination file; parent directories are created.
        attempts: Total attempts before giving up.
        delay: Seconds between attempts.
        timeout: Connect/read timeout for each request.
        deadline: Overall seconds allowed for one attempt.
        sleep: Pause function (injectable for tests).

    Returns:
        True when the file was written completely.
    """
    dest = Path(dest)
    dest.parent.mkdir(parents=True, exist_ok=True)
    logger.info("Downloading %s to %s", url, dest)

    for attempt in range(1, attempts + 1):
        if attempt > 1:
            logger.info("Retry attempt %d/%d after %s seconds...", attempt, attempts, delay)
            sleep(delay)
        try:
            _fetch_once(url, dest, timeout=timeout, deadline=deadline)
        except _DeadlineExceeded:
            logger.warning("Download exceeded %ss deadline: %s", deadline, url)
        except (OSError, ValueError) as exc:
            # URLError and HTTPError are OSError subclasses
            logger.warning("Download failed (%s): %s", exc, url)
        else:
            logger.debug("Downloaded %s (%d bytes)", url, dest.stat().st_size)
            return True
        dest.unlink(missing_ok=True)

    logger.error("Failed to download %s after %d attempts", url, attempts)
    return False


def _fetch_once(url: str, dest: Path, *, timeout: float, deadline: float) -> None:
    started = time.monotonic()
    req = urllib.request.Request(url, headers={"User-Agent": _USER_AGENT})
    tmp = dest.with_name(dest.name + ".part")
    try:
        with urllib.request.urlopen(req, timeout=timeout) as resp, open(tmp, "wb") as fh:
            while True:
                if time.monotonic() - started > deadline:
                    raise _DeadlineExceeded(url)
                chunk = resp.read(_CHUNK)
                if not chunk:
                    break
                fh.write(chunk)
        os.replace(tmp, dest)
    finally:
        tmp.unlink(missing_ok=True)


# ── Archives ────────────────────────────────────────────────────

def extract_member(archive: Path, member: str, dest: Path, *, kind: str) -> bool:
    """Extract one file from a ``tar.gz`` or ``zip`` archive to ``dest``.

    ``member`` matches the archive path exactly, or its basename when no
    exact path exists (release tarballs sometimes nest a ``./`` prefix).
    The result is made executable (0o755).
    """
    try:
        if kind == "zip":
            with zipfile.ZipFile(archive) as zf:
                name = _pick_member(zf.namelist(), member)
                if name is None:
                    return False
                with zf.open(name) as src, open(dest, "wb") as out:
                    shutil.copyfileobj(src, out)
        else:
            with tarfile.open(archive, "r:*") as tf:
                name = _pick_member(tf.getnames(), member)
                if name is None:
                    return False
                src = tf.extractfile(name)
                if src is None:
                    return False
                with src, open(dest, "wb") as out:
                    shutil.copyfileobj(src, out)
    except (OSError, tarfile.TarError, zipfile.BadZipFile) as exc:
        logger.warning("Could not extract %s from %s: %s", member, archive, exc)
        return False

    dest.chmod(0o755)
    return True


def extract_all(archive: Path, dest_dir: Path) -> list[Path]:
    """Extract a zip archive, returning the extracted file paths."""
    dest_dir.mkdir(parents=True, exist_ok=True)
    extracted: list[Path] = []
    try:
        with zipfile.ZipFile(archive) as zf:
            for info in zf.infolist():
                if info.is_dir():
                    continue
                target = dest_dir / Path(info.filename).name
                with zf.open(info) as src, open(target, "wb") as out:
                    shutil.copyfileobj(src, out)
                extracted.append(target)
    except (OSError, zipfile.BadZipFile) as exc:
        logger.warning("Could not extract %s: %s", archive, exc)
    return extracted


def _pick_member(names: list[str], member: str) -> str | None:
    normalized = {n.lstrip("./"): n for n in names}
    if member in normalized:
        return normalized[member]
    base = Path(member).name
    for short, original in normalized.items():
        if Path(short).name == base:
            return original
    return None

"""
L4 Execution — Core subprocess runner.

The single place where ``subprocess.run`` is called for provisioning.
Privilege wrapping, timeouts and output capture are centralised here.
Non-zero exits are results, never exceptions.
"""

from __future__ import annotations

import logging
import os
import shlex
import subprocess
import time
from collections.abc import Mapping
from typing import Any

from servercozy.core.models.privilege import PrivilegeContext

logger = logging.getLogger(__name__)

_OUTPUT_TAIL = 4000


def run_command(
    cmd: list[str],
    *,
    privilege: PrivilegeContext | None = None,
    needs_privilege: bool = False,
    timeout: int = 120,
    env: Mapping[str, str] | None = None,
    cwd: str | None = None,
    input_text: str | None = None,
    capture: bool = True,
) -> dict[str, Any]:
    """Run a command, optionally through the privilege wrapper.

    Args:
        cmd: Command list for ``subprocess.run()``.
        privilege: The run's privilege decision.  Required when
            ``needs_privilege`` is set.
        needs_privilege: Whether the command modifies system state.
        timeout: Seconds before the command is abandoned.
        env: Full environment for the child; ``os.environ`` when None.
        cwd: Working directory for the command.
        input_text: Data piped to stdin.
        capture: Collect stdout and stderr.  When False the child shares
            this process's terminal, so its prompts reach the operator.

    Returns:
        ``{"ok": True, "returncode": 0, "stdout": ..., "stderr": ...}`` on
        success; ``ok`` False with ``returncode`` and ``error`` otherwise.
        Privileged commands in user-scope mode are not executed and come
        back with ``skipped: True``.
    """
    if needs_privilege:
        if privilege is None:
            return _not_run(cmd, "No privilege context for a privileged command")
        wrapped = privilege.wrap(cmd)
        if wrapped is None:
            logger.info("Skipping privileged command in user-only mode: %s", shlex.join(cmd))
            return {**_not_run(cmd, "Skipped: privileged command in user-only mode"), "skipped": True}
        cmd = wrapped

    command_line = shlex.join(cmd)
    logger.debug("Running: %s", command_line)

    start = time.monotonic()
    try:
        result = subprocess.run(
            cmd,
            capture_output=capture,
            text=True,
            timeout=timeout,
            input=input_text,
            env=dict(env) if env is not None else os.environ.copy(),
            cwd=cwd,
        )
    except subprocess.TimeoutExpired:
        logger.warning("Command timed out after %ss: %s", timeout, command_line)
        return _not_run(cmd, f"Command timed out ({timeout}s)")
    except FileNotFoundError:
        return _not_run(cmd, f"Command not found: {cmd[0]}")
    except OSError as exc:
        logger.warning("Could not start %s: %s", command_line, exc)
        return _not_run(cmd, str(exc))

    elapsed_ms = int((time.monotonic() - start) * 1000)
    stdout = result.stdout[-_OUTPUT_TAIL:] if result.stdout else ""
    stderr = result.stderr[-_OUTPUT_TAIL:] if result.stderr else ""
    logger.debug("Exit %d after %dms: %s", result.returncode, elapsed_ms, command_line)

    out: dict[str, Any] = {
        "ok": result.returncode == 0,
        "returncode": result.returncode,
        "stdout": stdout,
        "stderr": stderr,
        "command": command_line,
        "skipped": False,
        "elapsed_ms": elapsed_ms,
    }
    if result.returncode != 0:
        out["error"] = f"Command failed (exit {result.returncode})"
    return out


def _not_run(cmd: list[str], error: str) -> dict[str, Any]:
    return {
        "ok": False,
        "returncode": None,
        "stdout": "",
        "stderr": "",
        "command": shlex.join(cmd),
        "skipped": False,
        "error": error,
    }

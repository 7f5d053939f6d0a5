"""
Error taxonomy for a provisioning run.

Only run-level conditions are exceptions.  Per-tool problems never
raise: they are folded into an ``InstallationOutcome`` and reported in
the summary.

    ServerCozyError
    ├── EnvironmentFatalError     abort before any mutation, no restore
    │   ├── PrivilegeDeclinedError
    │   ├── NoPackageManagerError
    │   ├── UnsupportedShellError
    │   └── LockHeldError
    ├── StepFailedError           config-mutating step failed, restore offered
    └── RunInterrupted            SIGINT / SIGTERM, cleanup only
"""

from __future__ import annotations


class ServerCozyError(Exception):
    """Base class for run-level failures."""

    exit_code: int = 1


class EnvironmentFatalError(ServerCozyError):
    """The environment cannot support a run at all."""


class PrivilegeDeclinedError(EnvironmentFatalError):
    """No elevation path and the operator refused user-only mode."""


class NoPackageManagerError(EnvironmentFatalError):
    """No package manager and no user-level toolchain to fall back on."""


class UnsupportedShellError(EnvironmentFatalError):
    """The login shell is not one we know how to configure."""


class LockHeldError(EnvironmentFatalError):
    """Another run owns the process-wide lock file."""

    def __init__(self, pid: int, lock_path: str):
        super().__init__(
            f"Another instance of ServerCozy is already running (PID: {pid}). "
            f"If you're sure no other instance is running, delete {lock_path}"
        )
        self.pid = pid
        self.lock_path = lock_path


class StepFailedError(ServerCozyError):
    """An unexpected failure inside a step of the run."""

    def __init__(self, step: str, message: str):
        super().__init__(f"Step '{step}' failed: {message}")
        self.step = step


class RunInterrupted(ServerCozyError):
    """The run was interrupted by a termination signal."""

    exit_code = 130

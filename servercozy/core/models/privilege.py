"""
PrivilegeContext — how privileged operations are executed this run.
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict


class PrivilegeMode(StrEnum):
    ELEVATED_COMMAND = "elevated_command"   # sudo / doas prefix
    DIRECT_ROOT = "direct_root"             # already uid 0
    USER_SCOPE_ONLY = "user_scope_only"     # privileged ops are skipped


class PrivilegeContext(BaseModel):
    """Resolved once; consulted before every privileged command."""

    model_config = ConfigDict(frozen=True)

    mode: PrivilegeMode
    command: str | None = None
    available: bool = True

    @classmethod
    def elevated(cls, command: str) -> PrivilegeContext:
        return cls(mode=PrivilegeMode.ELEVATED_COMMAND, command=command)

    @classmethod
    def root(cls) -> PrivilegeContext:
        return cls(mode=PrivilegeMode.DIRECT_ROOT)

    @classmethod
    def user_scope(cls) -> PrivilegeContext:
        return cls(mode=PrivilegeMode.USER_SCOPE_ONLY, available=False)

    @property
    def user_scope_only(self) -> bool:
        return self.mode == PrivilegeMode.USER_SCOPE_ONLY

    def wrap(self, cmd: list[str]) -> list[str] | None:
        """Prefix ``cmd`` for privileged execution.

        Returns ``None`` in user-scope mode: the caller must skip the
        command rather than attempt it.
        """
        if self.mode == PrivilegeMode.USER_SCOPE_ONLY:
            return None
        if self.mode == PrivilegeMode.ELEVATED_COMMAND and self.command:
            return [self.command] + list(cmd)
        return list(cmd)

    @property
    def label(self) -> str:
        if self.mode == PrivilegeMode.ELEVATED_COMMAND:
            return f"Available ({self.command})"
        if self.mode == PrivilegeMode.DIRECT_ROOT:
            return "Available (root)"
        return "Not Available (user-only mode)"

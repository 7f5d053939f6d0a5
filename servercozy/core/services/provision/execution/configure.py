"""
L4 Execution — Shell prompt, aliases and editor configuration.

Each writer returns the path it configured.  Conditional aliases are
resolved here, against the tools actually available after installation.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path

from servercozy.core.models.context import RunContext, ShellKind
from servercozy.core.models.platform import OsFamily, PlatformProfile
from servercozy.core.services.provision.data.dotfiles import (
    ALIAS_FILES,
    ALIAS_GROUPS,
    BASE_ALIASES,
    PROMPTS,
    SYSINFO_FALLBACKS,
    TRAILING_ALIASES,
    VIMRC,
    VIMRC_FILE,
)
from servercozy.core.services.provision.execution.dotfiles import DotfileWriter

logger = logging.getLogger(__name__)


def _sysinfo_fallback(profile: PlatformProfile) -> str:
    if profile.os_family == OsFamily.MACOS:
        return SYSINFO_FALLBACKS["macos"]
    if profile.os_family == OsFamily.BSD:
        return SYSINFO_FALLBACKS["bsd"]
    if profile.os_family != OsFamily.UNKNOWN or profile.os_name:
        return SYSINFO_FALLBACKS["linux"]
    return SYSINFO_FALLBACKS["_default"]


def render_aliases(
    available: Callable[[str], bool],
    shell_kind: ShellKind,
    profile: PlatformProfile,
) -> str:
    """Build the alias file body.

    Args:
        available: Capability probe; True when a command can be used.
        shell_kind: Shell the fragments are written for.
        profile: Host platform, for the ``sysinfo`` fallback.
    """
    sections = [BASE_ALIASES]
    for group in ALIAS_GROUPS:
        fragment = None
        for probe, choice in group["choices"]:
            if available(probe):
                fragment = choice[shell_kind] if isinstance(choice, dict) else choice
                break
        if fragment is None and group.get("fallback") == "sysinfo":
            fragment = _sysinfo_fallback(profile)
        if fragment is not None:
            sections.append(f"# {group['label']}\n{fragment}")
    sections.append(TRAILING_ALIASES)
    return "\n\n".join(sections)


def _write(writer: DotfileWriter, ctx: RunContext, path: Path, content: str, **kwargs) -> None:
    if ctx.options.replace_existing_blocks:
        writer.write_block(path, content, **kwargs)
    else:
        writer.append_block(path, content, **kwargs)


def configure_prompt(ctx: RunContext, writer: DotfileWriter) -> Path:
    logger.info("Configuring custom shell prompt...")
    path = ctx.rc_file
    _write(writer, ctx, path, PROMPTS[ctx.shell_kind], shell_kind=ctx.shell_kind, label="prompt")
    logger.info("Custom prompt configured in %s.", path)
    return path


def configure_aliases(
    ctx: RunContext,
    writer: DotfileWriter,
    installed: set[str] | None = None,
) -> Path:
    """Write the alias file and make the startup file source it.

    ``installed`` holds commands known to be present after this run;
    anything else is probed on PATH.
    """
    logger.info("Configuring useful aliases...")
    known = installed or set()

    def available(command: str) -> bool:
        return command in known or ctx.has_command(command)

    content = render_aliases(available, ctx.shell_kind, ctx.profile)
    path = ctx.home / ALIAS_FILES[ctx.shell_kind]
    _write(
        writer, ctx, path, content,
        shell_kind=ctx.shell_kind, label="aliases", rc_file=ctx.rc_file,
    )
    logger.info("Useful aliases configured in %s.", path)
    return path


def configure_vim(ctx: RunContext, writer: DotfileWriter) -> Path:
    logger.info("Configuring vim...")
    path = ctx.home / VIMRC_FILE
    _write(writer, ctx, path, VIMRC, label="vim", comment='"')
    logger.info("Vim configured.")
    return path

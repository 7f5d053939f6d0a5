"""
ServerCozy — CLI entrypoint.

Usage:
    servercozy --help
    servercozy --non-interactive --essential-only
    python -m servercozy.main --user-only
"""

from __future__ import annotations

import contextlib
import logging
import os
import signal
import sys
from pathlib import Path
from typing import Any

import click

from servercozy import __version__
from servercozy.core.config.loader import load_options
from servercozy.core.errors import RunInterrupted, ServerCozyError
from servercozy.core.models.options import RunOptions
from servercozy.core.observability.logging_config import (
    default_log_path,
    resolve_level,
    setup_logging,
)

logger = logging.getLogger(__name__)


class StrictCommand(click.Command):
    """Usage errors (unknown flag, stray argument) exit with status 1."""

    def parse_args(self, ctx: click.Context, args: list[str]) -> list[str]:
        try:
            return super().parse_args(ctx, args)
        except click.UsageError as exc:
            exc.exit_code = 1
            raise


def _flag_overrides(
    *,
    non_interactive: bool,
    no_dialog: bool,
    user_only: bool,
    no_nerd_font: bool,
    skip_update: bool,
) -> dict[str, Any]:
    """Only flags that were given; unset flags leave config-file values alone."""
    overrides: dict[str, Any] = {}
    if non_interactive:
        overrides["interactive"] = False
    if no_dialog:
        overrides["use_dialog"] = False
    if user_only:
        overrides["user_only"] = True
    if no_nerd_font:
        overrides["install_nerd_font"] = False
    if skip_update:
        overrides["skip_update"] = True
    return overrides


def _raise_interrupt(signum: int, frame: Any) -> None:
    raise RunInterrupted(f"Received signal {signal.Signals(signum).name}")


@click.command(cls=StrictCommand, context_settings={"help_option_names": ["--help"]})
@click.version_option(
    __version__, "-v", "--version",
    prog_name="ServerCozy",
    message="%(prog)s v%(version)s",
)
@click.option("--non-interactive", is_flag=True, help="Run with default selections.")
@click.option("--essential-only", is_flag=True, help="Install only essential tools.")
@click.option("--no-dialog", is_flag=True, help="Force the text interface (don't use dialog).")
@click.option("--user-only", is_flag=True, help="Skip system-wide installations, use ~/.local only.")
@click.option("--no-nerd-font", is_flag=True, help="Skip Nerd Font installation.")
@click.option("--skip-update", is_flag=True, help="Skip the check for a newer ServerCozy.")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False, dir_okay=False),
    default=None,
    help="Path to a YAML config (default: ~/.config/servercozy/config.yml).",
)
@click.option("--verbose", is_flag=True, help="Verbose console logging.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
def cli(
    non_interactive: bool,
    essential_only: bool,
    no_dialog: bool,
    user_only: bool,
    no_nerd_font: bool,
    skip_update: bool,
    config_path: str | None,
    verbose: bool,
    debug: bool,
) -> None:
    """ServerCozy — make a fresh server feel like home.

    Installs a curated set of command-line tools with the system package
    manager (or into ~/.local when no privileges are available), then
    sets up a prompt, aliases, Vim and a Nerd Font.
    """
    # ── Logging setup (once, at process start) ──────────────────
    log_path = default_log_path()
    setup_logging(
        level=resolve_level(debug=debug, verbose=verbose),
        log_file=log_path,
        verbose=verbose,
        quiet_third_party=not debug,
    )
    logger.debug("ServerCozy v%s, log file %s", __version__, log_path)

    overrides = _flag_overrides(
        non_interactive=non_interactive,
        no_dialog=no_dialog,
        user_only=user_only,
        no_nerd_font=no_nerd_font,
        skip_update=skip_update,
    )
    if user_only:
        logger.info("User-only mode enabled. System-wide installations will be skipped.")
    if no_nerd_font:
        logger.info("Nerd Font installation will be skipped.")

    try:
        options = load_options(
            Path(config_path) if config_path else None,
            environ=os.environ,
            overrides=overrides,
        )
    except ServerCozyError as exc:
        click.secho(f"❌ {exc}", fg="red", err=True)
        sys.exit(exc.exit_code)

    if essential_only:
        options = options.essential_only()
    if options.interactive and not sys.stdin.isatty():
        logger.warning("stdin is not a terminal, continuing non-interactively")
        options = options.model_copy(update={"interactive": False})

    sys.exit(_run(options, log_path))


def _run(options: RunOptions, log_path: Path) -> int:
    from servercozy.core.persistence.progress import ProgressFile
    from servercozy.core.services.provision.orchestration import Orchestrator, profile_summary
    from servercozy.ui.cli.progress import ProgressReporter
    from servercozy.ui.cli.selection import pick_renderer
    from servercozy.ui.cli.summary import render_header, render_summary

    interaction = pick_renderer(options.use_dialog) if options.interactive else None
    progress = ProgressFile()
    orchestrator = Orchestrator(
        options,
        interaction=interaction,
        progress=progress,
        log_path=log_path,
    )

    # Progress lines would garble the prompts of an interactive run
    reporter = (
        contextlib.nullcontext() if options.interactive
        else ProgressReporter(progress.path)
    )

    previous = signal.signal(signal.SIGTERM, _raise_interrupt)
    try:
        with reporter:
            summary = orchestrator.run()
    except RunInterrupted as exc:
        click.secho(f"\n❌ {exc}. Cleaned up and exiting.", fg="red", bold=True, err=True)
        return exc.exit_code
    except ServerCozyError as exc:
        click.secho(f"❌ {exc}", fg="red", bold=True, err=True)
        click.echo(f"   Log file: {log_path}", err=True)
        return exc.exit_code
    finally:
        signal.signal(signal.SIGTERM, previous)

    ctx = orchestrator.ctx
    render_header(profile_summary(ctx.profile))
    render_summary(
        summary,
        privilege_label=ctx.privilege.label,
        shell_kind=ctx.shell_kind,
    )
    return 0


def main() -> None:
    try:
        cli()
    except KeyboardInterrupt:
        click.secho("\n❌ Interrupted.", fg="red", err=True)
        sys.exit(130)


if __name__ == "__main__":
    main()

"""
End-of-run output: platform header and the run summary.
"""

from __future__ import annotations

import click

from servercozy.core.models.context import ShellKind
from servercozy.core.models.outcome import OutcomeStatus
from servercozy.core.models.summary import RunSummary

_STATUS_STYLE = {
    OutcomeStatus.INSTALLED: ("✓", "green", "installed"),
    OutcomeStatus.ALREADY_INSTALLED: ("✓", "green", "already installed"),
    OutcomeStatus.SKIPPED: ("–", "yellow", "skipped"),
    OutcomeStatus.FAILED: ("✗", "red", "failed"),
}


def format_elapsed(seconds: float) -> str:
    minutes, secs = divmod(int(round(seconds)), 60)
    return f"{minutes}m {secs}s"


def render_header(facts: dict[str, str]) -> None:
    click.secho("\n🛋  System Information", fg="cyan", bold=True)
    width = max((len(k) for k in facts), default=0)
    for key, value in facts.items():
        click.echo(f"   {key:<{width}} : {value}")
    click.echo()


def render_summary(
    summary: RunSummary,
    *,
    privilege_label: str = "",
    shell_kind: ShellKind = ShellKind.BASH,
) -> None:
    click.secho("\n📋 Installation Summary", fg="cyan", bold=True)
    if privilege_label:
        click.echo(f"   Privileged access: {privilege_label}")

    if summary.outcomes:
        click.echo()
        for outcome in summary.outcomes:
            icon, color, text = _STATUS_STYLE[outcome.status]
            detail = ""
            if outcome.status == OutcomeStatus.INSTALLED and outcome.method:
                detail = f" via {outcome.method.replace('_', ' ')}"
            elif outcome.reason:
                detail = f": {outcome.reason}"
            click.secho(f"   {icon} ", fg=color, nl=False)
            click.echo(f"{outcome.tool} ({text}{detail})")

    if summary.configured:
        click.echo()
        click.secho("   Customizations:", fg="white", bold=True)
        for item in summary.configured:
            click.secho("   ✓ ", fg="green", nl=False)
            click.echo(item)

    if summary.warnings:
        click.echo()
        for warning in summary.warnings:
            click.secho(f"   ⚠️  {warning}", fg="yellow")

    click.echo()
    click.echo(
        f"   {summary.installed} installed, {summary.already_installed} already present, "
        f"{summary.skipped} skipped, {summary.failed} failed"
    )
    click.echo(f"   Time taken: {format_elapsed(summary.elapsed_seconds)}")
    if summary.log_path:
        click.echo(f"   Log file: {summary.log_path}")

    rc = "~/.zshrc" if shell_kind == ShellKind.ZSH else "~/.bashrc"
    click.echo()
    click.secho(f"   Run 'source {rc}' or open a new terminal to apply the changes.", fg="cyan")
    click.echo()

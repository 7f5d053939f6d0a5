"""
Operator interaction — tool checklists and yes/no questions.

Two renderers share one interface:

    DialogRenderer   ``dialog --checklist`` when the binary is available
    TextRenderer     numbered list with toggles, driven by click.prompt

A cancelled dialog keeps the defaults; it never aborts the run.
"""

from __future__ import annotations

import logging
import shlex
import shutil
import subprocess
from abc import ABC, abstractmethod
from collections.abc import Callable

import click

logger = logging.getLogger(__name__)

DIALOG_HEIGHT = 20
DIALOG_WIDTH = 76
DIALOG_LIST_HEIGHT = 12


class SelectionRenderer(ABC):
    """Interface the orchestrator talks to."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Renderer identifier, e.g. 'dialog'."""

    @abstractmethod
    def select(
        self, title: str, items: list[tuple[str, str]], defaults: list[bool],
    ) -> list[int]:
        """Return the indexes of the chosen items."""

    @abstractmethod
    def confirm(self, question: str, default: bool = False) -> bool:
        """Ask a yes/no question."""

    def __repr__(self) -> str:
        return f"<{type(self).__name__} name={self.name!r}>"


def _default_indexes(defaults: list[bool]) -> list[int]:
    return [i for i, on in enumerate(defaults) if on]


# ── dialog(1) ───────────────────────────────────────────────────


class DialogRenderer(SelectionRenderer):
    def __init__(self, binary: str = "dialog", run: Callable[..., subprocess.CompletedProcess] = subprocess.run):
        self.binary = binary
        self._run = run

    @property
    def name(self) -> str:
        return "dialog"

    def select(
        self, title: str, items: list[tuple[str, str]], defaults: list[bool],
    ) -> list[int]:
        if not items:
            return []
        cmd = [
            self.binary, "--stdout", "--title", title,
            "--checklist", f"Select {title.lower()} to install:",
            str(DIALOG_HEIGHT), str(DIALOG_WIDTH), str(DIALOG_LIST_HEIGHT),
        ]
        for (tag, description), on in zip(items, defaults):
            cmd += [tag, description, "on" if on else "off"]

        try:
            # stdin/stderr stay attached to the terminal; only the answer is captured
            proc = self._run(cmd, stdout=subprocess.PIPE, text=True)
        except OSError as exc:
            logger.warning("dialog failed (%s), keeping defaults for %s", exc, title)
            return _default_indexes(defaults)

        if proc.returncode != 0:
            logger.info("Selection cancelled, keeping defaults for %s", title)
            return _default_indexes(defaults)

        chosen = set(shlex.split(proc.stdout or ""))
        return [i for i, (tag, _) in enumerate(items) if tag in chosen]

    def confirm(self, question: str, default: bool = False) -> bool:
        cmd = [self.binary, "--stdout", "--yesno", question, "8", str(DIALOG_WIDTH)]
        if not default:
            cmd.insert(2, "--defaultno")
        try:
            proc = self._run(cmd, stdout=subprocess.PIPE, text=True)
        except OSError as exc:
            logger.warning("dialog failed (%s), using default answer", exc)
            return default
        if proc.returncode == 0:
            return True
        if proc.returncode == 1:
            return False
        # ESC or error
        return default


# ── Plain text ──────────────────────────────────────────────────


class TextRenderer(SelectionRenderer):
    """Numbered checklist: type a number to toggle it, ENTER to accept."""

    @property
    def name(self) -> str:
        return "text"

    def select(
        self, title: str, items: list[tuple[str, str]], defaults: list[bool],
    ) -> list[int]:
        if not items:
            return []
        state = list(defaults)
        while True:
            click.echo()
            click.secho(f"   {title}", fg="cyan", bold=True)
            for i, (tag, description) in enumerate(items, start=1):
                mark = "x" if state[i - 1] else " "
                click.echo(f"   [{mark}] {i:2d}. {tag:<12} {description}")
            answer = click.prompt(
                "   Toggle number(s), 'a' for all, 'n' for none, ENTER to accept",
                default="",
                show_default=False,
            ).strip().lower()

            if not answer:
                return [i for i, on in enumerate(state) if on]
            if answer == "a":
                state = [True] * len(items)
                continue
            if answer == "n":
                state = [False] * len(items)
                continue
            for token in answer.replace(",", " ").split():
                if token.isdigit() and 1 <= int(token) <= len(items):
                    state[int(token) - 1] = not state[int(token) - 1]
                else:
                    click.secho(f"   Ignoring '{token}'", fg="yellow")

    def confirm(self, question: str, default: bool = False) -> bool:
        return click.confirm(question, default=default)


def pick_renderer(
    use_dialog: bool = True,
    which: Callable[[str], str | None] = shutil.which,
) -> SelectionRenderer:
    """``dialog`` when asked for and installed, otherwise plain text."""
    if use_dialog:
        binary = which("dialog")
        if binary:
            return DialogRenderer(binary)
        logger.debug("dialog not found, using text prompts")
    return TextRenderer()

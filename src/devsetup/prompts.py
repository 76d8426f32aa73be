"""Interactive prompt capability.

All yes/no and free-text questions go through a :class:`Prompter` so tests
can supply scripted answers instead of reading the controlling terminal.
"""
from __future__ import annotations

from typing import Protocol

import typer


class Prompter(Protocol):
    """Single capability: ask a question, return the answer."""

    def ask(self, question: str, default: str = "") -> str:
        """Return the user's answer to *question* (``default`` on empty input)."""
        ...


class TerminalPrompter:
    """Prompter backed by Typer's blocking terminal prompts."""

    def ask(self, question: str, default: str = "") -> str:
        """Read one line from the terminal."""
        answer = typer.prompt(question, default=default, show_default=False)
        return str(answer).strip()


def confirm(prompter: Prompter, question: str, *, default: bool) -> bool:
    """Ask a yes/no *question*; empty input selects *default*.

    Only answers starting with ``y`` or ``n`` (any case) are honoured, any
    other reply falls back to *default* like the ``(y/N)`` shell prompts.
    """
    suffix = "(Y/n)" if default else "(y/N)"
    reply = prompter.ask(f"{question} {suffix}", "").strip().lower()
    if reply.startswith("y"):
        return True
    if reply.startswith("n"):
        return False
    return default


__all__ = ["Prompter", "TerminalPrompter", "confirm"]

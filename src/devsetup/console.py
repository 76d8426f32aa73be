"""Leveled, colored console output shared by every step."""
from __future__ import annotations

import logging

from rich.console import Console
from rich.markup import escape

LOGGER = logging.getLogger(__name__)

BANNER_RULE = "=" * 42

_LEVEL_STYLE = {
    "info": "[green][INFO][/green]",
    "warn": "[yellow][WARN][/yellow]",
    "error": "[red][ERROR][/red]",
}


class StatusPrinter:
    """Print ``[INFO]``/``[WARN]``/``[ERROR]`` lines through a Rich console."""

    def __init__(self, console: Console | None = None) -> None:
        """Wrap *console* (a fresh stdout console by default)."""
        self.console = console or Console(highlight=False)

    def info(self, message: str) -> None:
        """Print an informational line."""
        self._emit("info", message)

    def warn(self, message: str) -> None:
        """Print a warning line."""
        self._emit("warn", message)

    def error(self, message: str) -> None:
        """Print an error line."""
        self._emit("error", message)

    def blank(self) -> None:
        """Print an empty info line."""
        self.console.print(_LEVEL_STYLE["info"])

    def banner(self, title: str) -> None:
        """Print *title* framed by separator rules."""
        self.info(BANNER_RULE)
        self.info(title)
        self.info(BANNER_RULE)

    def raw(self, text: str) -> None:
        """Print *text* verbatim, without markup or level prefix."""
        self.console.print(text, markup=False, highlight=False, soft_wrap=True)

    def _emit(self, level: str, message: str) -> None:
        LOGGER.debug("%s: %s", level, message)
        self.console.print(f"{_LEVEL_STYLE[level]} {escape(message)}", soft_wrap=True)


__all__ = ["StatusPrinter"]

"""Persisted and interactive selection of steps to skip."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from .console import StatusPrinter
from .prompts import Prompter, confirm

LOGGER = logging.getLogger(__name__)

SkipSet = frozenset[int]

EMPTY_SKIP_SET: SkipSet = frozenset()


@dataclass(frozen=True, slots=True)
class SavedSkipState:
    """Skip configuration read back from disk."""

    raw: str
    steps: SkipSet


def parse_skip_set(raw: str, *, printer: StatusPrinter | None = None) -> SkipSet:
    """Parse a comma-separated list of step ordinals.

    Whitespace around each token is trimmed and empty tokens are ignored.
    Tokens that are not positive integers can never match a step, so they are
    dropped (with a warning when *printer* is supplied).
    """
    ordinals: set[int] = set()
    for token in raw.split(","):
        token = token.strip()
        if not token:
            continue
        try:
            value = int(token)
        except ValueError:
            value = 0
        if value <= 0:
            LOGGER.debug("Ignoring skip token %r", token)
            if printer is not None:
                printer.warn(f"Ignoring '{token}': not a step number")
            continue
        ordinals.add(value)
    return frozenset(ordinals)


def format_skip_set(steps: SkipSet) -> str:
    """Render *steps* the way users type them (``3,4,8``)."""
    return ",".join(str(step) for step in sorted(steps))


class SkipStateStore:
    """Load, prompt for and persist the set of steps to skip."""

    def __init__(self, path: Path, prompter: Prompter, printer: StatusPrinter) -> None:
        """Bind the store to the skip file at *path*."""
        self.path = path
        self.prompter = prompter
        self.printer = printer

    def load(self) -> SavedSkipState | None:
        """Return the persisted skip configuration, ``None`` when absent."""
        try:
            raw = self.path.read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as exc:
            LOGGER.debug("Unreadable skip file %s", self.path, exc_info=True)
            self.printer.warn(f"Ignoring unreadable skip configuration at {self.path}: {exc}")
            return None
        return SavedSkipState(raw=raw, steps=parse_skip_set(raw, printer=self.printer))

    def prompt_for_skips(self) -> tuple[str, SkipSet]:
        """Ask which steps to skip; an empty answer skips nothing."""
        self.printer.info("Enter the numbers of steps to skip (comma-separated, e.g., '3,4,8').")
        self.printer.info("Press Enter to run all steps.")
        raw = self.prompter.ask("Steps to skip", "").strip()
        return raw, parse_skip_set(raw, printer=self.printer)

    def save(self, raw: str) -> None:
        """Overwrite the skip file with the raw input text."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(raw + "\n", encoding="utf-8")

    def resolve(self) -> SkipSet:
        """Return the effective skip set for this run.

        A saved configuration is offered first (default yes). Declining, or
        having none, falls through to the interactive prompt, after which a
        non-empty answer may be persisted (default no).
        """
        saved = self.load()
        if saved is not None:
            self.printer.info(f"Found existing configuration at {self.path}")
            self.printer.info(f"Saved skip steps: {saved.raw}")
            if confirm(self.prompter, "Do you want to use this configuration?", default=True):
                self.printer.info("Using saved configuration")
                return saved.steps
            self.printer.info("Ignoring saved configuration")

        raw, steps = self.prompt_for_skips()
        if not raw:
            self.printer.info("No steps will be skipped")
            return EMPTY_SKIP_SET

        if confirm(
            self.prompter,
            "Do you want to save this configuration for future use?",
            default=False,
        ):
            self.save(raw)
            self.printer.info(f"Configuration saved to {self.path}")
        return steps


__all__ = [
    "EMPTY_SKIP_SET",
    "SavedSkipState",
    "SkipSet",
    "SkipStateStore",
    "format_skip_set",
    "parse_skip_set",
]

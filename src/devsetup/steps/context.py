"""Explicit state shared by the steps of one run."""
from __future__ import annotations

from collections.abc import MutableMapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from ..prompts import confirm

if TYPE_CHECKING:
    from ..commands import CommandRunner
    from ..config import AppConfig
    from ..console import StatusPrinter
    from ..logging import OperationScope
    from ..platform_probe import PlatformInfo
    from ..prompts import Prompter
    from ..providers import Downloader, GitConfig, PackageManagerProvider
    from ..templating import TemplateEngine

SESSION_GIT_EMAIL = "git_email"
SESSION_SSH_KEY = "ssh_key"


@dataclass(slots=True)
class ProvisionContext:
    """Collaborators and mutable session values passed to every step.

    Environment changes made by a step (PATH entries, ``GOPATH``,
    ``CARGO_HOME``, agent sockets) land in ``runner.env`` and are seen by
    every later command. ``session`` carries values captured earlier in the
    same run, such as the git email entered in the Git step.
    """

    platform: PlatformInfo
    config: AppConfig
    prompter: Prompter
    printer: StatusPrinter
    runner: CommandRunner
    packages: PackageManagerProvider | None
    downloader: Downloader
    git: GitConfig
    templates: TemplateEngine
    scope: OperationScope | None = None
    session: dict[str, str] = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)

    @property
    def env(self) -> MutableMapping[str, str]:
        """Return the environment used for every command of the run."""
        return self.runner.env

    @property
    def home(self) -> Path:
        """Return the home directory being provisioned."""
        return self.config.home

    @property
    def dry_run(self) -> bool:
        """Return ``True`` when mutating commands are only logged."""
        return self.runner.dry_run

    def ask(self, question: str, default: str = "") -> str:
        """Ask a free-text question and return the stripped answer."""
        return self.prompter.ask(question, default).strip()

    def confirm(self, question: str, *, default: bool = False) -> bool:
        """Ask a yes/no question."""
        return confirm(self.prompter, question, default=default)

    def warn(self, message: str) -> None:
        """Report a recoverable problem; it is surfaced again in the summary."""
        self.printer.warn(message)
        self.warnings.append(message)


__all__ = ["ProvisionContext", "SESSION_GIT_EMAIL", "SESSION_SSH_KEY"]

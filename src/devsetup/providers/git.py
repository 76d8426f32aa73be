"""Access to the global git identity."""
from __future__ import annotations

from dataclasses import dataclass

from ..commands import CommandRunner


@dataclass(slots=True)
class GitIdentity:
    """Name and email stored in the global git configuration."""

    name: str | None
    email: str | None

    @property
    def complete(self) -> bool:
        """Return ``True`` when both name and email are set."""
        return bool(self.name) and bool(self.email)


class GitConfig:
    """Read and write ``git config --global`` values."""

    def __init__(self, runner: CommandRunner, *, git_bin: str = "git") -> None:
        """Bind to a command runner."""
        self.runner = runner
        self.git_bin = git_bin

    def get(self, key: str) -> str | None:
        """Return the global value for *key*, ``None`` when unset or git is missing."""
        value = self.runner.output([self.git_bin, "config", "--global", key])
        return value or None

    def set(self, key: str, value: str) -> None:
        """Persist *value* under *key* in the global configuration."""
        self.runner.run([self.git_bin, "config", "--global", key, value])

    def identity(self) -> GitIdentity:
        """Return the configured identity."""
        return GitIdentity(name=self.get("user.name"), email=self.get("user.email"))


__all__ = ["GitConfig", "GitIdentity"]

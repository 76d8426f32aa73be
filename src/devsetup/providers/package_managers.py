"""Package manager providers (brew, dnf, apt, winget)."""
from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from pathlib import Path

from ..commands import CommandError, CommandRunner
from ..platform_probe import PackageManager

LOGGER = logging.getLogger(__name__)

HOMEBREW_PREFIXES = (Path("/opt/homebrew"), Path("/usr/local"))


class PackageManagerError(RuntimeError):
    """Raised when the package manager is missing or a transaction fails."""


class PackageManagerProvider:
    """Common behaviour for package manager frontends."""

    manager: PackageManager
    binary: str

    def __init__(self, runner: CommandRunner) -> None:
        """Bind the provider to a command runner."""
        self.runner = runner

    def is_available(self) -> bool:
        """Return ``True`` when the frontend binary is on PATH."""
        return self.runner.exists(self.binary)

    def require(self) -> None:
        """Raise :class:`PackageManagerError` when the frontend is missing."""
        if not self.is_available():
            raise PackageManagerError(
                f"Required package manager '{self.binary}' not found on PATH."
            )

    def update(self) -> None:
        """Refresh metadata and upgrade installed packages."""
        self.require()
        for command in self._update_commands():
            self._run(command)

    def install(self, packages: Sequence[str]) -> list[str]:
        """Install *packages*, returning the names that were requested."""
        requested = [package for package in packages if package]
        if not requested:
            return []
        self.require()
        self._run(self._install_command(requested))
        return requested

    def is_installed(self, package: str) -> bool:
        """Return ``True`` when *package* is already installed."""
        result = self.runner.run(
            self._query_command(package),
            check=False,
            capture=True,
            mutating=False,
        )
        return result.returncode == 0

    def missing(self, packages: Iterable[str]) -> list[str]:
        """Return the subset of *packages* not yet installed."""
        return [package for package in packages if not self.is_installed(package)]

    # ------------------------------------------------------------------
    def _update_commands(self) -> list[list[str]]:
        raise NotImplementedError

    def _install_command(self, packages: Sequence[str]) -> list[str]:
        raise NotImplementedError

    def _query_command(self, package: str) -> list[str]:
        raise NotImplementedError

    def _run(self, command: Sequence[str]) -> None:
        try:
            self.runner.run(command)
        except CommandError as exc:
            LOGGER.debug("%s transaction failed", self.binary, exc_info=True)
            raise PackageManagerError(str(exc)) from exc


class BrewProvider(PackageManagerProvider):
    """Homebrew on macOS."""

    manager = PackageManager.BREW
    binary = "brew"

    def prefix(self) -> Path | None:
        """Return the Homebrew prefix present on disk (Apple Silicon first)."""
        for candidate in HOMEBREW_PREFIXES:
            if (candidate / "bin" / "brew").exists():
                return candidate
        return None

    def ensure_on_path(self) -> Path | None:
        """Add the Homebrew bin directories to the runner PATH when installed."""
        prefix = self.prefix()
        if prefix is not None:
            self.runner.prepend_path(str(prefix / "bin"), str(prefix / "sbin"))
        return prefix

    def _update_commands(self) -> list[list[str]]:
        return [[self.binary, "update"]]

    def _install_command(self, packages: Sequence[str]) -> list[str]:
        return [self.binary, "install", *packages]

    def _query_command(self, package: str) -> list[str]:
        return [self.binary, "list", "--versions", package]


class DnfProvider(PackageManagerProvider):
    """dnf on Fedora."""

    manager = PackageManager.DNF
    binary = "dnf"

    def _update_commands(self) -> list[list[str]]:
        return [["sudo", self.binary, "update", "-y"]]

    def _install_command(self, packages: Sequence[str]) -> list[str]:
        return ["sudo", self.binary, "install", "-y", *packages]

    def _query_command(self, package: str) -> list[str]:
        return ["rpm", "-q", package]


class AptProvider(PackageManagerProvider):
    """apt on Ubuntu."""

    manager = PackageManager.APT
    binary = "apt-get"

    def _update_commands(self) -> list[list[str]]:
        return [
            ["sudo", self.binary, "update"],
            ["sudo", "DEBIAN_FRONTEND=noninteractive", self.binary, "upgrade", "-y"],
        ]

    def _install_command(self, packages: Sequence[str]) -> list[str]:
        return ["sudo", "DEBIAN_FRONTEND=noninteractive", self.binary, "install", "-y", *packages]

    def _query_command(self, package: str) -> list[str]:
        return ["dpkg", "-s", package]


class WingetProvider(PackageManagerProvider):
    """winget on Windows.

    ``winget install`` fails for packages that are already present, so
    installs are filtered through :meth:`missing` first.
    """

    manager = PackageManager.WINGET
    binary = "winget"

    _AGREEMENTS = ("--accept-source-agreements", "--accept-package-agreements")

    def install(self, packages: Sequence[str]) -> list[str]:
        """Install the packages from *packages* that are not yet present."""
        requested = [package for package in packages if package]
        if not requested:
            return []
        self.require()
        pending = self.missing(requested)
        for package in pending:
            self._run(self._install_command([package]))
        return pending

    def _update_commands(self) -> list[list[str]]:
        return [[self.binary, "upgrade", "--all", "--silent", *self._AGREEMENTS]]

    def _install_command(self, packages: Sequence[str]) -> list[str]:
        return [
            self.binary, "install", "--id", packages[0], "--exact", "--silent", *self._AGREEMENTS
        ]

    def _query_command(self, package: str) -> list[str]:
        return [self.binary, "list", "--id", package, "--exact", "--accept-source-agreements"]


_PROVIDERS: dict[PackageManager, type[PackageManagerProvider]] = {
    PackageManager.BREW: BrewProvider,
    PackageManager.DNF: DnfProvider,
    PackageManager.APT: AptProvider,
    PackageManager.WINGET: WingetProvider,
}


def provider_for(manager: PackageManager, runner: CommandRunner) -> PackageManagerProvider:
    """Instantiate the provider class for *manager*."""
    return _PROVIDERS[manager](runner)


__all__ = [
    "AptProvider",
    "BrewProvider",
    "DnfProvider",
    "PackageManagerError",
    "PackageManagerProvider",
    "WingetProvider",
    "provider_for",
]

"""Helpers shared by step actions."""
from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping, Sequence
from contextlib import contextmanager
from pathlib import Path

from ..commands import CommandError
from ..providers import DownloadError, PackageManagerError, PackageManagerProvider
from ..steps import (
    FatalActionError,
    MissingPrerequisiteError,
    OptionalActionError,
    ProvisionContext,
)

LOGGER = logging.getLogger(__name__)

RECOVERABLE_ERRORS = (CommandError, PackageManagerError, DownloadError, OSError)


@contextmanager
def fatal_errors(what: str) -> Iterator[None]:
    """Translate provider failures raised in the block into :class:`FatalActionError`."""
    try:
        yield
    except RECOVERABLE_ERRORS as exc:
        raise FatalActionError(f"{what}: {exc}") from exc


@contextmanager
def optional_errors(context: ProvisionContext, what: str) -> Iterator[None]:
    """Record failures raised in the block as warnings and carry on."""
    try:
        yield
    except (*RECOVERABLE_ERRORS, OptionalActionError) as exc:
        LOGGER.debug("Optional action failed: %s", what, exc_info=True)
        context.warn(f"{what}: {exc}")


def require_packages(context: ProvisionContext) -> PackageManagerProvider:
    """Return the package manager provider, aborting when it is unusable."""
    provider = context.packages
    if provider is None:
        raise MissingPrerequisiteError(
            f"No package manager is available on {context.platform.describe()}."
        )
    try:
        provider.require()
    except PackageManagerError as exc:
        raise MissingPrerequisiteError(f"Package manager check: {exc}") from exc
    return provider


def install_packages(context: ProvisionContext, packages: Sequence[str]) -> list[str]:
    """Install *packages* with the platform package manager."""
    provider = require_packages(context)
    with fatal_errors(f"Installing {', '.join(packages)}"):
        return provider.install(packages)


def run_remote_script(
    context: ProvisionContext,
    url: str,
    *,
    shell: str = "sh",
    args: Sequence[str] = (),
    env: Mapping[str, str] | None = None,
) -> None:
    """Fetch the installer at *url* and run it with *shell*."""
    if context.dry_run:
        context.printer.info(f"dry-run: would run installer from {url}")
        return
    with fatal_errors(f"Running installer from {url}"):
        script = context.downloader.fetch_text(url)
        context.runner.run([shell, "-c", script, shell, *args], env=env)


def append_profile_block(context: ProvisionContext, marker: str, block: str) -> bool:
    """Append *block* to ``~/.profile`` unless *marker* already appears in it.

    Returns ``True`` when the block was (or, in dry-run, would be) added.
    """
    profile = context.home / ".profile"
    existing = read_text_or_empty(profile)
    if marker in existing:
        return False
    context.printer.info(f"Adding {marker} to ~/.profile...")
    if context.dry_run:
        return True
    with fatal_errors(f"Updating {profile}"):
        with profile.open("a", encoding="utf-8") as handle:
            handle.write("\n" + block.strip("\n") + "\n")
    return True


def read_text_or_empty(path: Path) -> str:
    """Return the contents of *path*, or an empty string when it does not exist."""
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return ""


__all__ = [
    "append_profile_block",
    "fatal_errors",
    "install_packages",
    "optional_errors",
    "read_text_or_empty",
    "require_packages",
    "run_remote_script",
]

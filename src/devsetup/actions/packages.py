"""Package manager driven steps."""
from __future__ import annotations

from ..platform_probe import Family
from ..providers import BrewProvider
from ..steps import FatalActionError, ProvisionContext
from .base import fatal_errors, install_packages, optional_errors, require_packages

FEDORA_PREREQUISITES = ("dnf-plugins-core",)

FZF_INSTALL_FLAGS = (
    "--key-bindings",
    "--completion",
    "--no-update-rc",
    "--no-bash",
    "--no-fish",
)


def update_system(context: ProvisionContext) -> None:
    """Refresh package metadata and upgrade installed packages."""
    provider = require_packages(context)
    context.printer.info("Updating system packages...")
    with fatal_errors("System update"):
        provider.update()


def install_dev_tools(context: ProvisionContext) -> None:
    """Install compilers and base development utilities."""
    family = context.platform.family
    if family is Family.FEDORA:
        context.printer.info("Ensuring required repositories are enabled...")
        install_packages(context, FEDORA_PREREQUISITES)
    packages = context.config.packages.for_family("dev_tools", family.value)
    if not packages:
        context.printer.info("No development tools configured for this platform")
        return
    context.printer.info("Installing development tools and utilities...")
    install_packages(context, packages)


def install_cli_tools(context: ProvisionContext) -> None:
    """Install the command line utilities (and fzf key bindings on macOS)."""
    family = context.platform.family
    packages = context.config.packages.for_family("cli_tools", family.value)
    if packages:
        context.printer.info(f"Installing {', '.join(packages)}...")
        install_packages(context, packages)
    if family is Family.MACOS:
        install_fzf_key_bindings(context)


def install_fzf_key_bindings(context: ProvisionContext) -> None:
    """Run fzf's bundled installer for zsh key bindings and completion."""
    provider = context.packages
    if not isinstance(provider, BrewProvider):
        raise FatalActionError("fzf key bindings are installed through Homebrew.")
    prefix = context.runner.output([provider.binary, "--prefix"])
    if not prefix:
        prefix_path = provider.prefix()
        if prefix_path is None:
            raise FatalActionError("Cannot determine the Homebrew prefix.")
        prefix = str(prefix_path)
    context.printer.info("Installing fzf key bindings...")
    with optional_errors(context, "fzf key bindings"):
        context.runner.run([f"{prefix}/opt/fzf/install", *FZF_INSTALL_FLAGS])


__all__ = [
    "install_cli_tools",
    "install_dev_tools",
    "install_fzf_key_bindings",
    "update_system",
]

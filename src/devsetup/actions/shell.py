"""Zsh, Oh My Zsh and login shell steps."""
from __future__ import annotations

import getpass
import shutil
from pathlib import Path

from ..platform_probe import Family
from ..providers import BrewProvider
from ..steps import MissingPrerequisiteError, ProvisionContext, StepOutcome
from .base import fatal_errors, read_text_or_empty, run_remote_script

MANAGED_MARKER = "Managed by devsetup"

ZSHRC_TEMPLATE = "zshrc.j2"

_BASE_PLUGINS = {
    Family.MACOS: ("git", "golang", "rust", "fzf", "macos"),
    Family.FEDORA: ("git", "golang", "fzf"),
    Family.UBUNTU: ("git", "golang", "rust", "fzf"),
}

_FZF_SOURCES = {
    Family.MACOS: "~/.fzf.zsh",
    Family.FEDORA: "/usr/share/fzf/shell/key-bindings.zsh",
    Family.UBUNTU: "/usr/share/doc/fzf/examples/key-bindings.zsh",
}


def oh_my_zsh_dir(context: ProvisionContext) -> Path:
    """Return the Oh My Zsh installation directory."""
    return context.home / ".oh-my-zsh"


def install_oh_my_zsh(context: ProvisionContext) -> StepOutcome | None:
    """Install Oh My Zsh (asking before a reinstall) and its extra plugins."""
    printer = context.printer
    target = oh_my_zsh_dir(context)
    declined = False
    if target.is_dir():
        printer.warn("Oh My Zsh is already installed")
        if context.confirm("Do you want to reinstall Oh My Zsh?", default=False):
            printer.info("Removing existing Oh My Zsh installation...")
            if not context.dry_run:
                shutil.rmtree(target)
        else:
            declined = True

    if not declined:
        printer.info("Installing Oh My Zsh...")
        run_remote_script(
            context,
            context.config.urls.ohmyzsh_install,
            env={"RUNZSH": "no", "KEEP_ZSHRC": "yes", "CHSH": "no"},
        )

    install_zsh_plugins(context)
    return StepOutcome.DECLINED if declined else None


def install_zsh_plugins(context: ProvisionContext) -> list[str]:
    """Clone the configured custom plugins that are not present yet."""
    plugins_dir = oh_my_zsh_dir(context) / "custom" / "plugins"
    installed: list[str] = []
    for name, url in context.config.urls.zsh_plugins.items():
        destination = plugins_dir / name
        if destination.is_dir():
            continue
        context.printer.info(f"Installing {name}...")
        with fatal_errors(f"Cloning {name}"):
            context.runner.run(["git", "clone", "--depth", "1", url, str(destination)])
        installed.append(name)
    return installed


def zshrc_context(context: ProvisionContext) -> dict[str, object]:
    """Return the template variables for the ``.zshrc`` of this host."""
    family = context.platform.family
    brew_prefix: str | None = None
    if family is Family.MACOS:
        provider = context.packages if isinstance(context.packages, BrewProvider) else None
        prefix = provider.prefix() if provider is not None else None
        brew_prefix = str(prefix) if prefix is not None else "/usr/local"
    rustup = family in {Family.MACOS, Family.UBUNTU}
    return {
        "theme": context.config.shell.zsh_theme,
        "plugins": [*_BASE_PLUGINS.get(family, ("git",)), *context.config.urls.zsh_plugins],
        "brew_prefix": brew_prefix,
        "go_root": "/usr/local/go" if family is Family.UBUNTU else None,
        "cargo_env": rustup,
        "local_bin": rustup,
        "editor": context.config.shell.editor,
        "bat_command": "batcat" if family is Family.UBUNTU else "bat",
        "fd_command": "fdfind" if family is Family.UBUNTU else "fd",
        "fzf_source": _FZF_SOURCES.get(family, "~/.fzf.zsh"),
    }


def configure_zshrc(context: ProvisionContext) -> None:
    """Render ``~/.zshrc``; an unmanaged file is backed up once before replacement."""
    printer = context.printer
    target = context.home / ".zshrc"
    if context.dry_run:
        printer.info(f"dry-run: would render {target}")
        return

    existing = read_text_or_empty(target)
    if existing and MANAGED_MARKER not in existing:
        backup = target.with_name(".zshrc.pre-devsetup")
        if not backup.exists():
            with fatal_errors(f"Backing up {target}"):
                shutil.copy2(target, backup)
            printer.info(f"Existing .zshrc saved to {backup}")

    with fatal_errors(f"Writing {target}"):
        changed = context.templates.render_to_path(ZSHRC_TEMPLATE, target, zshrc_context(context))
    if changed:
        printer.info("✓ .zshrc configured")
    else:
        printer.info("✓ .zshrc already up to date")


def change_default_shell(context: ProvisionContext) -> None:
    """Make zsh the login shell of the current user."""
    printer = context.printer
    zsh = context.runner.which("zsh")
    if zsh is None:
        raise MissingPrerequisiteError("zsh is not installed; run the CLI tools step first.")
    if context.env.get("SHELL") == zsh:
        printer.info("Default shell is already zsh")
        return
    user = context.env.get("USER") or getpass.getuser()
    printer.info("Changing default shell to zsh...")
    with fatal_errors("chsh"):
        context.runner.run(["sudo", "chsh", "-s", zsh, user])
    context.env["SHELL"] = zsh
    printer.warn("You'll need to log out and back in for the shell change to take effect")


__all__ = [
    "MANAGED_MARKER",
    "change_default_shell",
    "configure_zshrc",
    "install_oh_my_zsh",
    "install_zsh_plugins",
    "oh_my_zsh_dir",
    "zshrc_context",
]

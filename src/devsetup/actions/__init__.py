"""Idempotent step actions, one module per concern."""
from __future__ import annotations

from .git_identity import configure_git
from .packages import install_cli_tools, install_dev_tools, update_system
from .shell import change_default_shell, configure_zshrc, install_oh_my_zsh
from .ssh_keys import configure_ssh_key
from .terminal import configure_oh_my_posh, configure_powershell_profile, configure_prompt
from .tmux import configure_tmux
from .toolchains import (
    install_go,
    install_homebrew,
    install_python_uv,
    install_rust,
    install_xcode_clt,
)

__all__ = [
    "change_default_shell",
    "configure_git",
    "configure_oh_my_posh",
    "configure_powershell_profile",
    "configure_prompt",
    "configure_ssh_key",
    "configure_tmux",
    "configure_zshrc",
    "install_cli_tools",
    "install_dev_tools",
    "install_go",
    "install_homebrew",
    "install_oh_my_zsh",
    "install_python_uv",
    "install_rust",
    "install_xcode_clt",
    "update_system",
]

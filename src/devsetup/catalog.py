"""Fixed step registries per platform family."""
from __future__ import annotations

from collections.abc import Sequence

from . import actions
from .console import StatusPrinter
from .platform_probe import Family, PlatformInfo
from .steps import Step

_MACOS = (
    Step(1, "Xcode Command Line Tools", actions.install_xcode_clt),
    Step(2, "Homebrew Installation", actions.install_homebrew),
    Step(3, "Development Tools Installation", actions.install_dev_tools),
    Step(4, "Git Configuration", actions.configure_git),
    Step(5, "SSH Key Generation", actions.configure_ssh_key),
    Step(6, "CLI Tools Installation (fzf, ripgrep, bat, tmux)", actions.install_cli_tools),
    Step(7, "Go Installation", actions.install_go),
    Step(8, "Rust Installation", actions.install_rust),
    Step(9, "Python and uv Installation", actions.install_python_uv),
    Step(10, "Tmux Configuration", actions.configure_tmux),
    Step(11, "Oh My Zsh Installation", actions.install_oh_my_zsh),
    Step(12, "Zsh Configuration", actions.configure_zshrc),
)

_FEDORA = (
    Step(1, "System Update", actions.update_system),
    Step(2, "Development Tools Installation", actions.install_dev_tools),
    Step(3, "Git Configuration", actions.configure_git),
    Step(4, "SSH Key Generation", actions.configure_ssh_key),
    Step(5, "CLI Tools Installation (zsh, fzf, ripgrep, bat, tmux)", actions.install_cli_tools),
    Step(6, "Go Installation", actions.install_go),
    Step(7, "Rust Installation", actions.install_rust),
    Step(8, "Tmux Configuration", actions.configure_tmux),
    Step(9, "Oh My Zsh Installation", actions.install_oh_my_zsh),
    Step(10, "Zsh Configuration", actions.configure_zshrc),
    Step(11, "Default Shell Change", actions.change_default_shell),
)

_UBUNTU = (
    Step(1, "System Update", actions.update_system),
    Step(2, "Development Tools Installation", actions.install_dev_tools),
    Step(3, "Git Configuration", actions.configure_git),
    Step(4, "SSH Key Generation", actions.configure_ssh_key),
    Step(5, "CLI Tools Installation (zsh, fzf, ripgrep, bat, fd)", actions.install_cli_tools),
    Step(6, "Go Installation", actions.install_go),
    Step(7, "Rust Installation", actions.install_rust),
    Step(8, "Python and uv Installation", actions.install_python_uv),
    Step(9, "Tmux Configuration", actions.configure_tmux),
    Step(10, "Oh My Zsh Installation", actions.install_oh_my_zsh),
    Step(11, "Zsh Configuration", actions.configure_zshrc),
    Step(12, "Default Shell Change", actions.change_default_shell),
)

_WINDOWS = (
    Step(1, "System Update", actions.update_system),
    Step(2, "Development Tools Installation", actions.install_dev_tools),
    Step(3, "Git Configuration", actions.configure_git),
    Step(4, "SSH Key Generation", actions.configure_ssh_key),
    Step(5, "CLI Tools Installation (fzf, ripgrep, bat, fd)", actions.install_cli_tools),
    Step(6, "Go Installation", actions.install_go),
    Step(7, "Rust Installation", actions.install_rust),
    Step(8, "Python and uv Installation", actions.install_python_uv),
    Step(9, "Oh My Posh and PowerShell Profile", actions.configure_prompt),
)

_REGISTRIES = {
    Family.MACOS: _MACOS,
    Family.FEDORA: _FEDORA,
    Family.UBUNTU: _UBUNTU,
    Family.WINDOWS: _WINDOWS,
}


def build_steps(info: PlatformInfo) -> list[Step]:
    """Return the step registry for the host family (empty when unsupported)."""
    return list(_REGISTRIES.get(info.family, ()))


def describe_steps(steps: Sequence[Step], printer: StatusPrinter) -> None:
    """Print the numbered list of available steps."""
    printer.blank()
    printer.info("Available installation steps:")
    for step in steps:
        printer.info(f"{step.ordinal:>3}. {step.label}")
    printer.blank()


__all__ = ["build_steps", "describe_steps"]

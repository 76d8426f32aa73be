"""tmux configuration step."""
from __future__ import annotations

from ..steps import ProvisionContext, StepDeclined
from .base import fatal_errors


def configure_tmux(context: ProvisionContext) -> None:
    """Download the shared ``~/.tmux.conf`` when the user opts in (default no)."""
    printer = context.printer
    target = context.home / ".tmux.conf"
    if target.exists():
        printer.warn(f"tmux configuration already exists at {target}")
    if not context.confirm("Do you want to use the provided tmux.conf?", default=False):
        raise StepDeclined("Skipping tmux configuration")

    printer.info("Downloading tmux configuration...")
    with fatal_errors("Downloading tmux configuration"):
        context.downloader.download(context.config.urls.tmux_conf, target, mode=0o644)
    printer.info("✓ tmux configuration installed successfully")


__all__ = ["configure_tmux"]

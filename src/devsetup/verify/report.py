"""Human-readable rendering of verification results and the closing guide."""
from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

from ..console import StatusPrinter
from ..platform_probe import Family
from ..providers.git import GitIdentity
from .models import CheckResult, RunReport

GITHUB_KEYS_URL = "https://github.com/settings/keys"

_COPY_HINTS = {
    Family.MACOS: "pbcopy < {path}",
    Family.WINDOWS: "Get-Content {path} | Set-Clipboard",
}

_INSTALLED_TOOLS = {
    Family.MACOS: (
        "Go (via Homebrew)",
        "Rust (via rustup)",
        "Python (via uv)",
        "uv (Python package manager)",
        "Zsh with Oh My Zsh",
        "fzf (fuzzy finder)",
        "ripgrep (fast grep alternative)",
        "bat (cat with syntax highlighting)",
        "fd (fast find alternative)",
        "tmux (terminal multiplexer)",
    ),
    Family.FEDORA: (
        "Go (via dnf)",
        "Rust (via dnf)",
        "Zsh with Oh My Zsh",
        "fzf (fuzzy finder)",
        "ripgrep (fast grep alternative)",
        "bat (cat with syntax highlighting)",
        "tmux (terminal multiplexer)",
    ),
    Family.UBUNTU: (
        "Go (official release tarball)",
        "Rust (via rustup)",
        "Python (via uv)",
        "uv (Python package manager)",
        "Zsh with Oh My Zsh",
        "fzf (fuzzy finder)",
        "ripgrep (fast grep alternative)",
        "bat (cat with syntax highlighting, as batcat)",
        "fd (fast find alternative, as fdfind)",
        "tmux (terminal multiplexer)",
    ),
    Family.WINDOWS: (
        "Go (via winget)",
        "Rust (via rustup)",
        "Python (via uv)",
        "uv (Python package manager)",
        "PowerShell with Oh My Posh",
        "fzf (fuzzy finder)",
        "ripgrep (fast grep alternative)",
        "bat (cat with syntax highlighting)",
        "fd (fast find alternative)",
    ),
}


def print_checks(results: Sequence[CheckResult], printer: StatusPrinter) -> None:
    """Print one pass/fail line per check."""
    printer.info("Verifying installations...")
    for result in results:
        if result.passed:
            if result.version:
                printer.info(f"✓ {result.name}: {result.version}")
            else:
                printer.info(f"✓ {result.name} installed")
        else:
            printer.error(f"✗ {result.name} installation failed ({result.detail})")


def print_public_key(
    printer: StatusPrinter,
    public_key: Path,
    family: Family,
    *,
    title: str = "Your SSH public key:",
) -> None:
    """Print the public key and instructions for registering it with GitHub."""
    printer.banner(title)
    printer.raw(public_key.read_text(encoding="utf-8").rstrip("\n"))
    printer.info("=" * 42)
    printer.blank()
    printer.info("To add this key to GitHub:")
    hint = _COPY_HINTS.get(family)
    if hint:
        printer.info(f"1. Copy the key: {hint.format(path=public_key)}")
    else:
        printer.info("1. Copy the key above")
    printer.info(f"2. Go to {GITHUB_KEYS_URL}")
    printer.info("3. Click 'New SSH key'")
    printer.info("4. Paste your key and save")
    printer.blank()


def next_steps(family: Family, *, has_public_key: bool) -> list[str]:
    """Return the numbered follow-up instructions for *family*."""
    steps: list[str] = []
    if family in {Family.FEDORA, Family.UBUNTU}:
        steps.append("Log out and log back in (or reboot) for shell changes to take effect")
    if family is Family.WINDOWS:
        steps.append("Restart Windows Terminal to load the new profile and font")
    else:
        steps.append("Run 'source ~/.zshrc' or start a new terminal session")
    steps.append("Verify Go installation with: go version")
    if has_public_key:
        steps.append("Add your SSH key to GitHub (see above)")
    return [f"{index}. {text}" for index, text in enumerate(steps, start=1)]


def print_closing(
    report: RunReport,
    printer: StatusPrinter,
    *,
    family: Family,
    public_key: Path,
    identity: GitIdentity,
) -> None:
    """Print the summary, SSH key block, next steps and git identity."""
    printer.blank()
    printer.banner("Setup completed successfully!")
    printer.blank()
    printer.info(report.summary().describe())
    if report.warnings:
        printer.warn("Completed with warnings:")
        for warning in report.warnings:
            printer.warn(f"  - {warning}")
    if report.failed:
        printer.warn("Some tools could not be verified; re-run the matching steps to retry.")
    printer.blank()

    has_public_key = public_key.exists()
    if has_public_key:
        print_public_key(printer, public_key, family, title="Your SSH public key for GitHub:")

    printer.info("Next steps:")
    for line in next_steps(family, has_public_key=has_public_key):
        printer.info(line)
    printer.blank()

    tools = _INSTALLED_TOOLS.get(family, ())
    if tools:
        printer.info("Installed tools:")
        for tool in tools:
            printer.info(f"  - {tool}")
        printer.blank()

    printer.info("Git configuration:")
    printer.info(f"  - Name: {identity.name or 'Not configured'}")
    printer.info(f"  - Email: {identity.email or 'Not configured'}")
    printer.blank()
    printer.info("Happy coding!")


__all__ = ["next_steps", "print_checks", "print_closing", "print_public_key"]

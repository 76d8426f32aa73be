"""Verification probes run after every step has finished.

A probe never raises: a missing or broken tool is reported as a failed
:class:`CheckResult` with a detail string explaining why.
"""
from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from functools import partial
from pathlib import Path

from ..commands import CommandRunner, format_command
from ..platform_probe import Family, PlatformInfo
from .models import CheckDefinition, CheckResult

LOGGER = logging.getLogger(__name__)

VersionParser = Callable[[str], str]


def column(index: int) -> VersionParser:
    """Return a parser picking the whitespace separated *index* of the first line."""

    def _parse(output: str) -> str:
        return output.splitlines()[0].split()[index]

    return _parse


def first_line(output: str) -> str:
    """Return the first line of *output*."""
    return output.splitlines()[0].strip()


def probe(
    tool_name: str,
    command: Sequence[str],
    *,
    runner: CommandRunner,
    version_parser: VersionParser | None = None,
) -> CheckResult:
    """Run *command* and report whether *tool_name* is present and working.

    When *version_parser* is given, the reported version is extracted from
    the command output with it; otherwise the check only reports presence.
    """
    executable = command[0]
    if not runner.exists(executable):
        return CheckResult(tool_name, False, f"{executable} not found on PATH")
    output = runner.output(command)
    if output is None:
        return CheckResult(tool_name, False, f"'{format_command(command)}' failed")
    if version_parser is None:
        return CheckResult(tool_name, True, "installed")
    try:
        version = version_parser(output)
    except (IndexError, ValueError):
        LOGGER.debug("Could not parse version for %s from %r", tool_name, output)
        return CheckResult(tool_name, True, "installed")
    return CheckResult(tool_name, True, version, version=version)


def path_check(name: str, path: Path) -> CheckResult:
    """Report whether the directory resource *path* exists."""
    if path.is_dir():
        return CheckResult(name, True, "installed")
    return CheckResult(name, False, f"{path} does not exist")


def _tool(
    name: str,
    *command: str,
    parser: VersionParser | None = None,
) -> CheckDefinition:
    return CheckDefinition(name, partial(_run_tool, name, command, parser))


def _run_tool(
    name: str,
    command: Sequence[str],
    parser: VersionParser | None,
    runner: CommandRunner,
) -> CheckResult:
    return probe(name, command, runner=runner, version_parser=parser)


def _directory(name: str, path: Path) -> CheckDefinition:
    return CheckDefinition(name, lambda _runner: path_check(name, path))


def checks_for(info: PlatformInfo, home: Path) -> list[CheckDefinition]:
    """Return the verification battery for the host family."""
    go = _tool("Go", "go", "version", parser=column(2))
    rust = _tool("Rust", "rustc", "--version", parser=column(1))
    cargo = _tool("Cargo", "cargo", "--version", parser=column(1))
    uv = _tool("uv", "uv", "--version", parser=first_line)
    zsh = _tool("Zsh", "zsh", "--version", parser=first_line)
    fzf = _tool("fzf", "fzf", "--version")
    ripgrep = _tool("ripgrep", "rg", "--version")
    tmux = _tool("tmux", "tmux", "-V")
    oh_my_zsh = _directory("Oh My Zsh", home / ".oh-my-zsh")

    if info.family is Family.MACOS:
        return [
            _tool("Homebrew", "brew", "--version", parser=first_line),
            go,
            rust,
            cargo,
            uv,
            _tool("Python", "python3", "--version", parser=column(1)),
            zsh,
            fzf,
            ripgrep,
            _tool("bat", "bat", "--version"),
            _tool("fd", "fd", "--version"),
            tmux,
            oh_my_zsh,
        ]
    if info.family is Family.FEDORA:
        return [
            go,
            rust,
            cargo,
            zsh,
            fzf,
            ripgrep,
            _tool("bat", "bat", "--version"),
            tmux,
            oh_my_zsh,
        ]
    if info.family is Family.UBUNTU:
        return [
            go,
            rust,
            cargo,
            uv,
            _tool("Python", "python3", "--version", parser=column(1)),
            zsh,
            fzf,
            ripgrep,
            _tool("bat", "batcat", "--version"),
            _tool("fd", "fdfind", "--version"),
            tmux,
            oh_my_zsh,
        ]
    if info.family is Family.WINDOWS:
        return [
            _tool("Git", "git", "--version", parser=column(2)),
            go,
            rust,
            cargo,
            uv,
            _tool("Python", "python", "--version", parser=column(1)),
            _tool("Oh My Posh", "oh-my-posh", "--version", parser=first_line),
            fzf,
            ripgrep,
            _tool("bat", "bat", "--version"),
            _tool("fd", "fd", "--version"),
        ]
    return []


def run_checks(checks: Sequence[CheckDefinition], runner: CommandRunner) -> list[CheckResult]:
    """Run every check in order; a crashing check is reported as failed."""
    results: list[CheckResult] = []
    for check in checks:
        try:
            result = check.run(runner)
        except Exception as exc:  # noqa: BLE001
            LOGGER.debug("Check %s raised", check.name, exc_info=True)
            result = CheckResult(check.name, False, f"check raised an unexpected error: {exc}")
        results.append(result)
    return results


__all__ = [
    "checks_for",
    "column",
    "first_line",
    "path_check",
    "probe",
    "run_checks",
]

"""Command runner tests."""
from __future__ import annotations

from pathlib import Path

import pytest

from devsetup.commands import CommandError, CommandRunner, format_command


def _runner(tmp_path: Path, **kwargs: bool) -> CommandRunner:
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir(exist_ok=True)
    tool = bin_dir / "devtool"
    tool.write_text("#!/bin/sh\necho \"devtool 1.2.3 $DEVTOOL_FLAG\"\n", encoding="utf-8")
    tool.chmod(0o755)
    return CommandRunner({"PATH": f"{bin_dir}:/usr/bin:/bin"}, **kwargs)


def test_which_uses_runner_path(tmp_path: Path) -> None:
    """Executables are resolved against the runner's own PATH."""
    runner = _runner(tmp_path)

    assert runner.which("devtool") == str(tmp_path / "bin" / "devtool")
    assert not runner.exists("definitely-not-installed")


def test_output_captures_stdout_with_env(tmp_path: Path) -> None:
    """Read-only commands return stripped stdout and see extra variables."""
    runner = _runner(tmp_path)
    runner.env["DEVTOOL_FLAG"] = "on"

    assert runner.output(["devtool"]) == "devtool 1.2.3 on"


def test_output_returns_none_on_failure(tmp_path: Path) -> None:
    """Failures and missing executables both yield ``None``."""
    runner = _runner(tmp_path)

    assert runner.output(["sh", "-c", "exit 3"]) is None
    assert runner.output(["definitely-not-installed"]) is None


def test_run_check_raises_with_exit_status(tmp_path: Path) -> None:
    """Non-zero exits raise under ``check``."""
    runner = _runner(tmp_path)

    with pytest.raises(CommandError) as excinfo:
        runner.run(["sh", "-c", "echo broken >&2; exit 3"], capture=True)

    assert excinfo.value.returncode == 3
    assert "broken" in str(excinfo.value)
    assert runner.run(["sh", "-c", "exit 3"], check=False).returncode == 3


def test_dry_run_skips_mutating_commands(tmp_path: Path) -> None:
    """Mutating commands are only logged in dry-run mode."""
    runner = _runner(tmp_path, dry_run=True)
    marker = tmp_path / "marker"

    result = runner.run(["touch", str(marker)])

    assert result.returncode == 0
    assert not marker.exists()
    assert runner.run(["sh", "-c", "echo read"], capture=True, mutating=False).stdout == "read\n"


def test_path_helpers_skip_duplicates() -> None:
    """PATH entries are added once, at the requested end."""
    runner = CommandRunner({"PATH": "/usr/bin:/bin"})

    runner.prepend_path("/opt/homebrew/bin", "/usr/bin")
    runner.append_path("/home/dev/go/bin", "/bin")

    assert runner.env["PATH"] == "/opt/homebrew/bin:/usr/bin:/bin:/home/dev/go/bin"


def test_format_command_quotes_arguments() -> None:
    """Rendered commands are shell-quoted."""
    assert format_command(["git", "config", "user.name", "Dev Person"]) == (
        "git config user.name 'Dev Person'"
    )

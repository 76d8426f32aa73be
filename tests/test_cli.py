"""Tests for the devsetup CLI."""
from __future__ import annotations

import json
from pathlib import Path

import pytest
import yaml
from typer.testing import CliRunner

from devsetup import __version__, cli
from devsetup.cli import app
from devsetup.exit_codes import ExitCode
from devsetup.platform_probe import (
    Architecture,
    Family,
    PlatformInfo,
    package_manager_for,
    preflight,
)
from devsetup.steps import FatalActionError, Step

runner = CliRunner()


def _extract_json(output: str) -> dict[str, object]:
    """Extract the first JSON object embedded in *output*."""
    start = output.find("{")
    end = output.rfind("}")
    assert start != -1 and end != -1, f"No JSON payload found in output: {output}"
    return json.loads(output[start : end + 1])


def _prepare_environment(
    tmp_path: Path,
    *,
    config_overrides: dict[str, object] | None = None,
) -> tuple[dict[str, str], Path]:
    home = tmp_path / "home"
    home.mkdir()
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()
    config = {
        "home": str(home),
        "logs_dir": str(tmp_path / "logs"),
    }
    if config_overrides:
        config.update(config_overrides)
    config_path = tmp_path / "config.yml"
    config_path.write_text(yaml.safe_dump(config), encoding="utf-8")
    env = {
        "DEVSETUP_CONFIG_FILE": str(config_path),
        "PATH": str(bin_dir),
    }
    return env, home


def _platform(family: Family) -> PlatformInfo:
    return PlatformInfo(
        family=family,
        architecture=Architecture.AMD64,
        package_manager=package_manager_for(family),
        system="Linux" if family is not Family.UNSUPPORTED else "FreeBSD",
        distro_id=family.value if family in {Family.FEDORA, Family.UBUNTU} else None,
    )


def _operations(tmp_path: Path) -> list[dict[str, object]]:
    path = tmp_path / "logs" / "operations.jsonl"
    return [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]


@pytest.fixture
def host(monkeypatch: pytest.MonkeyPatch):
    """Pretend to run on a chosen platform without root checks."""

    def choose(family: Family) -> None:
        monkeypatch.setattr(cli, "detect", lambda: _platform(family))
        monkeypatch.setattr(cli, "preflight", lambda info: None)

    return choose


def test_version_option_outputs_package_version(tmp_path: Path) -> None:
    """CLI ``--version`` flag emits the package version."""
    env, _ = _prepare_environment(tmp_path)
    result = runner.invoke(app, ["--version"], env=env)

    assert result.exit_code == 0
    assert __version__ in result.stdout


def test_invalid_config_exits_with_validation_code(tmp_path: Path) -> None:
    """Configuration errors stop the CLI before anything else runs."""
    env, _ = _prepare_environment(tmp_path, config_overrides={"colour": "blue"})

    result = runner.invoke(app, ["steps"], env=env)

    assert result.exit_code == ExitCode.VALIDATION
    assert "Unknown configuration keys: colour" in result.stdout


def test_config_show_json(tmp_path: Path) -> None:
    """`config show --json` emits JSON with the resolved configuration."""
    env, home = _prepare_environment(tmp_path, config_overrides={"shell": {"editor": "nvim"}})

    result = runner.invoke(app, ["config", "show", "--json"], env=env)

    assert result.exit_code == 0
    payload = _extract_json(result.stdout)
    assert payload["home"] == str(home)
    assert payload["skip_file"] == str(home / ".install.conf")
    assert payload["shell"]["editor"] == "nvim"  # type: ignore[index]


def test_config_show_renders_table(tmp_path: Path) -> None:
    """`config show` prints the merged configuration in a table."""
    env, _ = _prepare_environment(tmp_path)

    result = runner.invoke(app, ["config", "show"], env=env)

    assert result.exit_code == 0
    assert "skip_file" in result.stdout
    assert "ssh_key_path" in result.stdout


def test_unsupported_platform_exits_before_any_step(tmp_path: Path, host) -> None:
    """An unsupported host exits with the environment code and lists alternatives."""
    host(Family.UNSUPPORTED)
    env, home = _prepare_environment(tmp_path)

    result = runner.invoke(app, [], env=env)

    assert result.exit_code == ExitCode.ENVIRONMENT
    assert "No installation script is currently available for FreeBSD." in result.stdout
    assert "fedora: bash -c" in result.stdout
    assert "Step 1" not in result.stdout
    assert not (home / ".install.conf").exists()
    (record,) = _operations(tmp_path)
    assert record["result"]["rc"] == ExitCode.ENVIRONMENT  # type: ignore[index]


def test_root_is_rejected(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Preflight failures exit with the environment code."""
    monkeypatch.setattr(cli, "detect", lambda: _platform(Family.FEDORA))
    monkeypatch.setattr(cli, "preflight", lambda info: preflight(info, euid=0))
    env, _ = _prepare_environment(tmp_path)

    result = runner.invoke(app, [], env=env)

    assert result.exit_code == ExitCode.ENVIRONMENT
    assert "do not run devsetup as root" in result.stdout


def test_provision_with_saved_skip_set(tmp_path: Path, host) -> None:
    """A saved skip set that covers every step runs only verification."""
    host(Family.FEDORA)
    env, home = _prepare_environment(tmp_path)
    (home / ".install.conf").write_text("1,2,3,4,5,6,7,8,9,10,11\n")

    result = runner.invoke(app, [], env=env, input="\n")

    assert result.exit_code == 0, result.stdout
    assert "Saved skip steps: 1,2,3,4,5,6,7,8,9,10,11" in result.stdout
    assert "Skipping Step 1: System Update" in result.stdout
    assert "Skipping Step 11: Default Shell Change" in result.stdout
    assert "✗ Go installation failed (go not found on PATH)" in result.stdout
    assert "Setup completed successfully!" in result.stdout
    (record,) = _operations(tmp_path)
    assert record["command"] == "provision"
    assert record["result"]["status"] == "warning"  # type: ignore[index]
    assert record["steps"][0]["name"] == "skip-set"  # type: ignore[index]


def test_fatal_step_exits_with_action_code(tmp_path: Path, host, monkeypatch) -> None:
    """A fatal step failure stops the run with the action exit code."""
    host(Family.FEDORA)
    executed: list[int] = []

    def broken(_context: object) -> None:
        raise FatalActionError("dnf is broken")

    monkeypatch.setattr(
        cli,
        "build_steps",
        lambda info: [
            Step(1, "First", lambda _context: executed.append(1)),
            Step(2, "Broken", broken),
            Step(3, "Never", lambda _context: executed.append(3)),
        ],
    )
    env, _ = _prepare_environment(tmp_path)

    # Empty answer to the skip prompt runs everything.
    result = runner.invoke(app, [], env=env, input="\n")

    assert result.exit_code == ExitCode.ACTION
    assert executed == [1]
    assert "Step 2 (Broken) failed: dnf is broken" in result.stdout
    (record,) = _operations(tmp_path)
    assert record["result"]["context"]["completed"] == [1]  # type: ignore[index]


def test_missing_package_manager_exits_with_environment_code(tmp_path: Path, host) -> None:
    """A Fedora host without dnf on PATH stops at the first step with the environment code."""
    host(Family.FEDORA)
    env, _ = _prepare_environment(tmp_path)

    result = runner.invoke(app, [], env=env, input="\n")

    assert result.exit_code == ExitCode.ENVIRONMENT
    assert "Step 1 (System Update) failed: Package manager check" in result.stdout
    assert "'dnf' not found on PATH" in result.stdout
    (record,) = _operations(tmp_path)
    assert record["result"]["rc"] == ExitCode.ENVIRONMENT  # type: ignore[index]
    assert record["result"]["context"]["completed"] == []  # type: ignore[index]


def test_steps_command_lists_registry(tmp_path: Path, host) -> None:
    """`steps` prints the registry for the detected platform."""
    host(Family.UBUNTU)
    env, home = _prepare_environment(tmp_path)
    (home / ".install.conf").write_text("2,5\n")

    result = runner.invoke(app, ["steps"], env=env)

    assert result.exit_code == 0
    assert " 12. Default Shell Change" in result.stdout
    assert "Saved skip steps" in result.stdout
    assert "2,5" in result.stdout


def test_verify_reports_failures_without_failing(tmp_path: Path, host) -> None:
    """`verify` exits zero even when tools are missing."""
    host(Family.WINDOWS)
    env, _ = _prepare_environment(tmp_path)

    result = runner.invoke(app, ["verify"], env=env)

    assert result.exit_code == 0
    assert "✗ Oh My Posh installation failed" in result.stdout
    assert "Checks: 0 passed, 11 failed." in result.stdout

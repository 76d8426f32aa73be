"""Tests for the structured operation log."""
from __future__ import annotations

import json
from pathlib import Path

import pytest

from devsetup.logging import StructuredLogger


def _records(path: Path) -> list[dict[str, object]]:
    return [json.loads(line) for line in path.read_text().splitlines()]


def test_operation_writes_single_json_line(tmp_path: Path) -> None:
    """Each operation is appended as one JSON record with its steps."""
    logger = StructuredLogger(tmp_path / "logs")

    with logger.operation("provision", args={"dry_run": True, "home": tmp_path}) as op:
        op.add_step("1:System Update", status="completed")
        op.add_step("2:Development Tools Installation", status="skipped", detail="in skip set")
        op.success("Provisioning completed.", changed=1)

    (record,) = _records(logger.path)
    assert record["command"] == "provision"
    assert record["args"] == {"dry_run": True, "home": str(tmp_path)}
    assert [step["status"] for step in record["steps"]] == ["completed", "skipped"]
    assert record["steps"][1]["detail"] == "in skip set"
    assert record["result"]["status"] == "success"
    assert record["result"]["changed"] == 1
    assert isinstance(record["duration_ms"], int)


def test_exception_inside_operation_is_recorded_and_reraised(tmp_path: Path) -> None:
    """Unhandled exceptions become an error result and still propagate."""
    logger = StructuredLogger(tmp_path / "logs")

    with pytest.raises(ValueError):
        with logger.operation("verify"):
            raise ValueError("boom")

    (record,) = _records(logger.path)
    assert record["result"]["status"] == "error"
    assert record["result"]["errors"] == ["ValueError: boom"]


def test_explicit_result_survives_exit_exception(tmp_path: Path) -> None:
    """A result set before raising (e.g. a CLI exit) is not overwritten."""
    logger = StructuredLogger(tmp_path / "logs")

    with pytest.raises(SystemExit):
        with logger.operation("provision") as op:
            op.error("Unsupported platform", rc=3)
            raise SystemExit(3)

    (record,) = _records(logger.path)
    assert record["result"]["message"] == "Unsupported platform"
    assert record["result"]["rc"] == 3


def test_warning_result_lists_warnings(tmp_path: Path) -> None:
    """Warnings are stored as a list of strings."""
    logger = StructuredLogger(tmp_path / "logs")

    with logger.operation("provision") as op:
        op.warning("Completed with warnings.", warnings=("Nerd Font installation: failed",))

    (record,) = _records(logger.path)
    assert record["result"]["status"] == "warning"
    assert record["result"]["warnings"] == ["Nerd Font installation: failed"]


def test_structured_logger_disables_when_directory_unavailable(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """Logger gracefully disables itself when log directory cannot be created."""
    log_dir = tmp_path / "logs"

    original_mkdir = Path.mkdir

    def fail_mkdir(self: Path, *args: object, **kwargs: object) -> None:
        if self == log_dir:
            raise PermissionError("no access")
        original_mkdir(self, *args, **kwargs)

    monkeypatch.setattr(Path, "mkdir", fail_mkdir)

    logger = StructuredLogger(log_dir)
    assert logger._enabled is False  # type: ignore[attr-defined]

    with logger.operation("demo", args={"foo": "bar"}) as op:
        op.success("done", changed=0)


def test_structured_logger_disables_after_write_failure(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """Write failures mark the logger disabled so subsequent writes are skipped."""
    logger = StructuredLogger(tmp_path / "logs")
    operations_path = logger._operations_log_path  # type: ignore[attr-defined]

    original_open = Path.open

    def fail_open(self: Path, *args: object, **kwargs: object) -> object:
        if self == operations_path:
            raise OSError("disk full")
        return original_open(self, *args, **kwargs)

    monkeypatch.setattr(Path, "open", fail_open)

    with logger.operation("demo") as op:
        op.success("done", changed=0)

    assert logger._enabled is False  # type: ignore[attr-defined]

    # Subsequent operations should not raise even though logger is disabled.
    with logger.operation("demo-2") as op:
        op.success("done", changed=0)

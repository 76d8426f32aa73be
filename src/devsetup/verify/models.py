"""Data models for verification checks and the run report."""
from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from ..steps.models import StepOutcome, StepResult

if TYPE_CHECKING:
    from ..commands import CommandRunner


@dataclass(slots=True, frozen=True)
class CheckResult:
    """Outcome of one verification probe."""

    name: str
    passed: bool
    detail: str
    version: str | None = None


@dataclass(slots=True, frozen=True)
class CheckDefinition:
    """Name + callable for a verification probe."""

    name: str
    run: Callable[[CommandRunner], CheckResult]


@dataclass(slots=True, frozen=True)
class RunSummary:
    """Totals derived from a :class:`RunReport`."""

    steps: Mapping[StepOutcome, int]
    checks_passed: int
    checks_failed: int

    def describe(self) -> str:
        """Return a one-line human readable rendition."""
        parts = [f"{self.steps.get(outcome, 0)} {outcome.value}" for outcome in StepOutcome]
        return (
            f"Steps: {', '.join(parts)}. "
            f"Checks: {self.checks_passed} passed, {self.checks_failed} failed."
        )


@dataclass(slots=True, frozen=True)
class RunReport:
    """Step results followed by verification results, in execution order."""

    steps: Sequence[StepResult] = field(default_factory=tuple)
    checks: Sequence[CheckResult] = field(default_factory=tuple)
    warnings: Sequence[str] = field(default_factory=tuple)

    @property
    def passed(self) -> list[CheckResult]:
        """Return the checks that passed."""
        return [check for check in self.checks if check.passed]

    @property
    def failed(self) -> list[CheckResult]:
        """Return the checks that failed."""
        return [check for check in self.checks if not check.passed]

    def summary(self) -> RunSummary:
        """Aggregate step outcomes and check results."""
        totals: dict[StepOutcome, int] = {outcome: 0 for outcome in StepOutcome}
        for result in self.steps:
            totals[result.outcome] += 1
        return RunSummary(
            steps=totals,
            checks_passed=len(self.passed),
            checks_failed=len(self.failed),
        )

    def to_dict(self) -> dict[str, object]:
        """Return a JSON-serialisable representation for the operation log."""
        summary = self.summary()
        return {
            "steps": [
                {
                    "ordinal": result.ordinal,
                    "label": result.label,
                    "outcome": result.outcome.value,
                    "detail": result.detail,
                }
                for result in self.steps
            ],
            "checks": [
                {"name": check.name, "passed": check.passed, "detail": check.detail}
                for check in self.checks
            ],
            "totals": {outcome.value: count for outcome, count in summary.steps.items()},
            "checks_passed": summary.checks_passed,
            "checks_failed": summary.checks_failed,
            "warnings": list(self.warnings),
        }


__all__ = ["CheckDefinition", "CheckResult", "RunReport", "RunSummary"]

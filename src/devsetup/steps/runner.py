"""Sequential execution of a step registry."""
from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from typing import TYPE_CHECKING

from ..skip_state import SkipSet
from .errors import (
    FatalActionError,
    MissingPrerequisiteError,
    OptionalActionError,
    RunAborted,
    StepDeclined,
)
from .models import Step, StepOutcome, StepResult

if TYPE_CHECKING:
    from ..verify.models import CheckDefinition, RunReport
    from .context import ProvisionContext

LOGGER = logging.getLogger(__name__)


class RegistryError(ValueError):
    """Raised when a step registry is malformed."""


def validate_registry(steps: Iterable[Step]) -> list[Step]:
    """Return *steps* sorted by ordinal, rejecting duplicate or non-positive ordinals."""
    ordered = sorted(steps, key=lambda step: step.ordinal)
    seen: set[int] = set()
    for step in ordered:
        if step.ordinal <= 0:
            raise RegistryError(f"Step ordinal must be positive: {step.ordinal} ({step.label})")
        if step.ordinal in seen:
            raise RegistryError(f"Duplicate step ordinal: {step.ordinal}")
        seen.add(step.ordinal)
    return ordered


def run_steps(
    steps: Sequence[Step],
    skip: SkipSet,
    context: ProvisionContext,
) -> list[StepResult]:
    """Run *steps* in ascending ordinal order, honouring *skip*.

    Ordinals in *skip* that match no step are ignored. A fatal failure stops
    the run immediately and raises :class:`RunAborted`; earlier steps are not
    rolled back.
    """
    printer = context.printer
    results: list[StepResult] = []
    for step in validate_registry(steps):
        if step.skippable and step.ordinal in skip:
            printer.warn(f"Skipping Step {step.ordinal}: {step.label}")
            results.append(_record(context, step, StepOutcome.SKIPPED))
            continue

        printer.info(f"Step {step.ordinal}: {step.label}...")
        warnings_before = len(context.warnings)
        try:
            outcome = step.action(context) or StepOutcome.COMPLETED
        except StepDeclined as exc:
            printer.info(str(exc))
            results.append(_record(context, step, StepOutcome.DECLINED, str(exc)))
            continue
        except OptionalActionError as exc:
            context.warn(str(exc))
            results.append(_record(context, step, StepOutcome.WARNING, str(exc)))
            continue
        except FatalActionError as exc:
            _log_step(context, step, "error", str(exc))
            raise RunAborted(
                step,
                results,
                str(exc),
                missing_prerequisite=isinstance(exc, MissingPrerequisiteError),
            ) from exc
        except Exception as exc:
            LOGGER.debug("Step %s raised", step.ordinal, exc_info=True)
            reason = f"{type(exc).__name__}: {exc}"
            _log_step(context, step, "error", reason)
            raise RunAborted(step, results, reason) from exc

        step_warnings = context.warnings[warnings_before:]
        if step_warnings and outcome is StepOutcome.COMPLETED:
            outcome = StepOutcome.WARNING
        detail = "; ".join(step_warnings)
        results.append(_record(context, step, outcome, detail))
    return results


def run(
    steps: Sequence[Step],
    skip: SkipSet,
    context: ProvisionContext,
    checks: Sequence[CheckDefinition],
) -> RunReport:
    """Run every step, then the verification battery, and return the report.

    Verification failures never change the outcome of the run.
    """
    from ..verify.models import RunReport
    from ..verify.report import print_checks
    from ..verify.probes import run_checks

    results = run_steps(steps, skip, context)
    context.printer.blank()
    check_results = run_checks(checks, context.runner)
    print_checks(check_results, context.printer)
    return RunReport(
        steps=tuple(results),
        checks=tuple(check_results),
        warnings=tuple(context.warnings),
    )


def _record(
    context: ProvisionContext,
    step: Step,
    outcome: StepOutcome,
    detail: str = "",
) -> StepResult:
    _log_step(context, step, outcome.value, detail)
    return StepResult(ordinal=step.ordinal, label=step.label, outcome=outcome, detail=detail)


def _log_step(context: ProvisionContext, step: Step, status: str, detail: str) -> None:
    if context.scope is not None:
        context.scope.add_step(f"{step.ordinal}:{step.label}", status=status, detail=detail or None)


__all__ = ["RegistryError", "run", "run_steps", "validate_registry"]

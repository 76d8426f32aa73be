"""Failure taxonomy for step actions.

Actions decide which category a failure belongs to; the runner only knows
how to abort or continue.
"""
from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import Step, StepResult


class ProvisionError(RuntimeError):
    """Base class for provisioning failures."""


class FatalActionError(ProvisionError):
    """The step cannot complete and the run must stop."""


class MissingPrerequisiteError(FatalActionError):
    """A tool the step depends on is not installed or not on PATH."""


class OptionalActionError(ProvisionError):
    """A non-essential enhancement failed; the run continues with a warning."""


class StepDeclined(ProvisionError):
    """The user chose to keep existing state. Not a failure."""


class RunAborted(ProvisionError):
    """Raised by the runner after a fatal action failure."""

    def __init__(
        self,
        step: Step,
        results: Sequence[StepResult],
        reason: str,
        *,
        missing_prerequisite: bool = False,
    ) -> None:
        """Record the failing step and the results gathered before it."""
        super().__init__(f"Step {step.ordinal} ({step.label}) failed: {reason}")
        self.step = step
        self.results = tuple(results)
        self.reason = reason
        self.missing_prerequisite = missing_prerequisite


__all__ = [
    "FatalActionError",
    "MissingPrerequisiteError",
    "OptionalActionError",
    "ProvisionError",
    "RunAborted",
    "StepDeclined",
]

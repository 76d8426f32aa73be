"""Data models for provisioning steps."""
from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .context import ProvisionContext


class StepOutcome(str, Enum):
    """How a step finished."""

    COMPLETED = "completed"
    SKIPPED = "skipped"
    DECLINED = "declined"
    WARNING = "warning"


StepAction = Callable[["ProvisionContext"], "StepOutcome | None"]


@dataclass(slots=True, frozen=True)
class Step:
    """One numbered unit of provisioning work.

    The action returns ``None`` (completed) or an explicit
    :class:`StepOutcome`, and signals failures by raising one of the
    exceptions in :mod:`devsetup.steps.errors`.
    """

    ordinal: int
    label: str
    action: StepAction
    skippable: bool = True


@dataclass(slots=True, frozen=True)
class StepResult:
    """Recorded outcome of a single step."""

    ordinal: int
    label: str
    outcome: StepOutcome
    detail: str = ""

    @property
    def ran(self) -> bool:
        """Return ``True`` when the step action was invoked."""
        return self.outcome is not StepOutcome.SKIPPED


__all__ = ["Step", "StepAction", "StepOutcome", "StepResult"]

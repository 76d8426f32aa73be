"""Step registry, failure taxonomy and sequential runner."""
from __future__ import annotations

from .context import SESSION_GIT_EMAIL, SESSION_SSH_KEY, ProvisionContext
from .errors import (
    FatalActionError,
    MissingPrerequisiteError,
    OptionalActionError,
    ProvisionError,
    RunAborted,
    StepDeclined,
)
from .models import Step, StepAction, StepOutcome, StepResult
from .runner import RegistryError, run, run_steps, validate_registry

__all__ = [
    "FatalActionError",
    "MissingPrerequisiteError",
    "OptionalActionError",
    "ProvisionContext",
    "ProvisionError",
    "RegistryError",
    "RunAborted",
    "SESSION_GIT_EMAIL",
    "SESSION_SSH_KEY",
    "Step",
    "StepAction",
    "StepDeclined",
    "StepOutcome",
    "StepResult",
    "run",
    "run_steps",
    "validate_registry",
]

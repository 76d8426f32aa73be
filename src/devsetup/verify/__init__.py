"""Post-run verification probes and the run report."""
from __future__ import annotations

from .models import CheckDefinition, CheckResult, RunReport, RunSummary
from .probes import checks_for, column, first_line, path_check, probe, run_checks
from .report import next_steps, print_checks, print_closing, print_public_key

__all__ = [
    "CheckDefinition",
    "CheckResult",
    "RunReport",
    "RunSummary",
    "checks_for",
    "column",
    "first_line",
    "next_steps",
    "path_check",
    "print_checks",
    "print_closing",
    "print_public_key",
    "probe",
    "run_checks",
]

"""Git identity configuration step."""
from __future__ import annotations

from ..steps import (
    SESSION_GIT_EMAIL,
    MissingPrerequisiteError,
    ProvisionContext,
    StepDeclined,
    StepOutcome,
)
from .base import fatal_errors


def configure_git(context: ProvisionContext) -> StepOutcome | None:
    """Set ``user.name`` and ``user.email``, keeping an existing identity by default."""
    if not context.runner.exists(context.git.git_bin):
        raise MissingPrerequisiteError(
            "git is not installed; run the development tools step first."
        )

    printer = context.printer
    current = context.git.identity()
    if current.complete:
        printer.info("Git is already configured:")
        printer.info(f"  Name: {current.name}")
        printer.info(f"  Email: {current.email}")
        if not context.confirm("Do you want to reconfigure Git?", default=False):
            raise StepDeclined("Keeping existing Git configuration")

    name = context.ask("Enter your Git username")
    email = context.ask("Enter your Git email")
    if email:
        context.session[SESSION_GIT_EMAIL] = email
    if not name or not email:
        printer.warn("Git configuration skipped (empty values provided)")
        return StepOutcome.DECLINED

    with fatal_errors("Writing git configuration"):
        context.git.set("user.name", name)
        context.git.set("user.email", email)
    printer.info("✓ Git configured successfully")
    printer.info(f"  Name: {name}")
    printer.info(f"  Email: {email}")
    return None


__all__ = ["configure_git"]

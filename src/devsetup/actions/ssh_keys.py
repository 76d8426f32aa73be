"""SSH key generation step.

Keys are ed25519 pairs generated with :mod:`cryptography` and written in
OpenSSH format. The comment label comes from, in order: the email entered
earlier in this run, the persisted git email, an interactive prompt.
"""
from __future__ import annotations

import logging
import os
import re
from pathlib import Path

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey

from ..platform_probe import Family
from ..steps import (
    SESSION_GIT_EMAIL,
    SESSION_SSH_KEY,
    OptionalActionError,
    ProvisionContext,
    StepDeclined,
    StepOutcome,
)
from ..verify.report import print_public_key
from .base import fatal_errors, optional_errors

LOGGER = logging.getLogger(__name__)

_AGENT_VAR = re.compile(r"(SSH_AUTH_SOCK|SSH_AGENT_PID)=([^;]+);")


def resolve_key_label(context: ProvisionContext) -> str | None:
    """Return the comment for a new key, prompting only as a last resort."""
    session_email = context.session.get(SESSION_GIT_EMAIL)
    if session_email:
        return session_email
    persisted = context.git.get("user.email")
    if persisted:
        return persisted
    answer = context.ask("Enter your email for SSH key")
    return answer or None


def generate_keypair(comment: str) -> tuple[bytes, bytes]:
    """Return ``(private, public)`` OpenSSH encodings of a new ed25519 key."""
    key = Ed25519PrivateKey.generate()
    private = key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.OpenSSH,
        encryption_algorithm=serialization.NoEncryption(),
    )
    public = key.public_key().public_bytes(
        encoding=serialization.Encoding.OpenSSH,
        format=serialization.PublicFormat.OpenSSH,
    )
    return private, public + f" {comment}\n".encode()


def write_keypair(path: Path, comment: str) -> Path:
    """Write a new key pair to *path* and ``path.pub``, returning the public key path."""
    private, public = generate_keypair(comment)
    path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
    path.parent.chmod(0o700)
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    with os.fdopen(fd, "wb") as handle:
        handle.write(private)
    path.chmod(0o600)
    public_path = path.with_name(path.name + ".pub")
    public_path.write_bytes(public)
    public_path.chmod(0o644)
    return public_path


def add_to_agent(context: ProvisionContext, key_path: Path) -> None:
    """Load *key_path* into ssh-agent, starting one when none is reachable."""
    runner = context.runner
    if not runner.exists("ssh-add"):
        raise OptionalActionError("ssh-add is not available")
    if not context.env.get("SSH_AUTH_SOCK"):
        output = runner.output(["ssh-agent", "-s"])
        if not output:
            raise OptionalActionError("could not start ssh-agent")
        for name, value in _AGENT_VAR.findall(output):
            context.env[name] = value
    runner.run(["ssh-add", str(key_path)], capture=True)
    if context.platform.family is Family.MACOS:
        runner.run(["ssh-add", "--apple-use-keychain", str(key_path)], check=False, capture=True)


def configure_ssh_key(context: ProvisionContext) -> StepOutcome | None:
    """Generate an ed25519 key, keeping an existing one by default."""
    printer = context.printer
    key_path = context.config.ssh_key_path
    if key_path.exists():
        printer.warn(f"SSH key already exists at {key_path}")
        if not context.confirm("Do you want to generate a new SSH key?", default=False):
            raise StepDeclined("Keeping existing SSH key")

    label = resolve_key_label(context)
    if not label:
        printer.warn("SSH key generation skipped (no email provided)")
        return StepOutcome.DECLINED

    printer.info("Generating SSH key...")
    if context.dry_run:
        printer.info(f"dry-run: would write {key_path} for {label}")
        return None
    with fatal_errors("Writing SSH key"):
        public_path = write_keypair(key_path, label)
    context.session[SESSION_SSH_KEY] = str(key_path)

    if context.platform.is_posix:
        with optional_errors(context, "Adding SSH key to ssh-agent"):
            add_to_agent(context, key_path)

    printer.info("✓ SSH key generated successfully")
    printer.blank()
    print_public_key(printer, public_path, context.platform.family)
    return None


__all__ = [
    "add_to_agent",
    "configure_ssh_key",
    "generate_keypair",
    "resolve_key_label",
    "write_keypair",
]

"""Subprocess execution shared by providers, actions and verification."""
from __future__ import annotations

import logging
import os
import shlex
import shutil
import subprocess
from collections.abc import Mapping, MutableMapping, Sequence

LOGGER = logging.getLogger(__name__)


class CommandError(RuntimeError):
    """Raised when a command is missing or exits non-zero under ``check``."""

    def __init__(self, message: str, *, returncode: int | None = None) -> None:
        """Store the message and the exit status (``None`` when not started)."""
        super().__init__(message)
        self.returncode = returncode


def format_command(args: Sequence[str]) -> str:
    """Return a shell-quoted rendition of *args* for logs and messages."""
    return " ".join(shlex.quote(str(arg)) for arg in args)


class CommandRunner:
    """Run commands against an explicit, mutable environment.

    The environment mapping is shared with the provisioning context, so PATH
    changes made by earlier steps are visible to later commands without
    touching ``os.environ``.
    """

    def __init__(
        self,
        env: MutableMapping[str, str] | None = None,
        *,
        dry_run: bool = False,
    ) -> None:
        """Bind the runner to *env* (a copy of ``os.environ`` by default)."""
        self.env: MutableMapping[str, str] = env if env is not None else dict(os.environ)
        self.dry_run = dry_run

    def which(self, name: str) -> str | None:
        """Resolve *name* against the runner's PATH."""
        return shutil.which(name, path=self.env.get("PATH"))

    def exists(self, name: str) -> bool:
        """Return ``True`` when *name* resolves to an executable."""
        return self.which(name) is not None

    def run(
        self,
        args: Sequence[str],
        *,
        check: bool = True,
        capture: bool = False,
        input_text: str | None = None,
        env: Mapping[str, str] | None = None,
        mutating: bool = True,
    ) -> subprocess.CompletedProcess[str]:
        """Execute *args* and return the completed process.

        Commands flagged ``mutating`` are only logged in dry-run mode. Output
        is streamed to the terminal unless *capture* is set, so installers can
        show progress and ``sudo`` can ask for a password.
        """
        command = [str(arg) for arg in args]
        rendered = format_command(command)
        if self.dry_run and mutating:
            LOGGER.info("dry-run: %s", rendered)
            return subprocess.CompletedProcess(command, returncode=0, stdout="", stderr="")

        LOGGER.debug("exec: %s", rendered)
        run_env = dict(self.env)
        if env:
            run_env.update(env)
        try:
            result = subprocess.run(  # noqa: S603
                command,
                capture_output=capture,
                text=True,
                input=input_text,
                env=run_env,
                check=False,
            )
        except FileNotFoundError as exc:
            raise CommandError(f"{command[0]} not found: {exc}") from exc
        if check and result.returncode != 0:
            stdout = (result.stdout or "") if capture else ""
            stderr = (result.stderr or "") if capture else ""
            message = stderr.strip() or stdout.strip() or "no output"
            raise CommandError(
                f"{rendered} failed (exit {result.returncode}): {message}",
                returncode=result.returncode,
            )
        return result

    def output(self, args: Sequence[str], *, check: bool = False) -> str | None:
        """Return stripped stdout of a read-only command, ``None`` on failure."""
        try:
            result = self.run(args, check=check, capture=True, mutating=False)
        except CommandError:
            return None
        if result.returncode != 0:
            return None
        return (result.stdout or "").strip()

    def prepend_path(self, *entries: str) -> None:
        """Put *entries* in front of PATH, skipping ones already present."""
        current = [part for part in self.env.get("PATH", "").split(os.pathsep) if part]
        new = [entry for entry in entries if entry not in current]
        self.env["PATH"] = os.pathsep.join([*new, *current])

    def append_path(self, *entries: str) -> None:
        """Add *entries* at the end of PATH, skipping ones already present."""
        current = [part for part in self.env.get("PATH", "").split(os.pathsep) if part]
        new = [entry for entry in entries if entry not in current]
        self.env["PATH"] = os.pathsep.join([*current, *new])


__all__ = ["CommandError", "CommandRunner", "format_command"]

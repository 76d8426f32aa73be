"""Shared fixtures: scripted prompts, fake commands and provisioning contexts."""

from __future__ import annotations

import io
import os
import subprocess
from collections.abc import Callable, Iterable, Mapping, Sequence
from pathlib import Path

import pytest
from rich.console import Console

from devsetup.commands import CommandError, CommandRunner
from devsetup.config import AppConfig, load_config
from devsetup.console import StatusPrinter
from devsetup.platform_probe import (
    Architecture,
    Family,
    PlatformInfo,
    package_manager_for,
)
from devsetup.providers import Downloader, DownloadError, GitConfig, provider_for
from devsetup.steps import ProvisionContext
from devsetup.templating import TemplateEngine


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Skip expensive tests during mutation runs."""
    if not os.environ.get("MUTANT_UNDER_TEST"):
        return
    skip_marker = pytest.mark.skip(reason="Skipped during mutation run to avoid timeouts.")
    for item in items:
        if "mutation_timeout" in item.keywords:
            item.add_marker(skip_marker)


class ScriptedPrompter:
    """Prompter returning queued answers; the default once the queue is empty."""

    def __init__(self, answers: Iterable[str] = ()) -> None:
        """Queue *answers* in the order they will be given."""
        self.answers = list(answers)
        self.questions: list[str] = []

    def ask(self, question: str, default: str = "") -> str:
        """Record *question* and return the next scripted answer."""
        self.questions.append(question)
        if self.answers:
            return self.answers.pop(0)
        return default


class FakeRunner(CommandRunner):
    """Command runner that records commands instead of executing them."""

    def __init__(
        self,
        *,
        available: Iterable[str] = (),
        outputs: Mapping[str, str] | None = None,
        failures: Iterable[str] = (),
        env: dict[str, str] | None = None,
        dry_run: bool = False,
    ) -> None:
        """Configure which binaries exist, their outputs and failing commands."""
        super().__init__(env if env is not None else {"PATH": "/usr/bin"}, dry_run=dry_run)
        self.available = set(available)
        self.outputs = dict(outputs or {})
        self.failures = set(failures)
        self.calls: list[list[str]] = []

    def which(self, name: str) -> str | None:
        """Resolve only the binaries declared available."""
        return f"/usr/bin/{name}" if name in self.available else None

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
        """Record the command and return a scripted result."""
        command = [str(arg) for arg in args]
        key = " ".join(command)
        if self.dry_run and mutating:
            return subprocess.CompletedProcess(command, 0, "", "")
        self.calls.append(command)
        if key in self.failures:
            if check:
                raise CommandError(f"{key} failed", returncode=1)
            return subprocess.CompletedProcess(command, 1, "", "boom")
        return subprocess.CompletedProcess(command, 0, self.outputs.get(key, ""), "")

    def ran(self, prefix: str) -> bool:
        """Return ``True`` when a recorded command starts with *prefix*."""
        return any(" ".join(call).startswith(prefix) for call in self.calls)


class FakeDownloader(Downloader):
    """Downloader serving canned bodies keyed by URL."""

    def __init__(self, bodies: Mapping[str, bytes | str] | None = None) -> None:
        """Serve *bodies*; unknown URLs raise :class:`DownloadError`."""
        super().__init__()
        self.bodies = {
            url: body.encode() if isinstance(body, str) else body
            for url, body in (bodies or {}).items()
        }
        self.requested: list[str] = []

    def fetch_bytes(self, url: str) -> bytes:
        """Return the canned body for *url*."""
        self.requested.append(url)
        if url not in self.bodies:
            raise DownloadError(f"Failed to download {url}: not found")
        return self.bodies[url]


class RecordingPrinter(StatusPrinter):
    """Printer writing plain text into an in-memory buffer."""

    def __init__(self) -> None:
        """Create the buffer and a colourless console bound to it."""
        self.buffer = io.StringIO()
        super().__init__(Console(file=self.buffer, width=200, color_system=None, highlight=False))

    def output(self) -> str:
        """Return everything printed so far."""
        return self.buffer.getvalue()


def make_config(tmp_path: Path, **overrides: object) -> AppConfig:
    """Load configuration rooted at ``tmp_path/home`` without touching the real host."""
    values: dict[str, object] = {
        "home": str(tmp_path / "home"),
        "logs_dir": str(tmp_path / "logs"),
    }
    values.update(overrides)
    return load_config(config_file=tmp_path / "missing.yml", env={}, overrides=values)


ContextFactory = Callable[..., ProvisionContext]


@pytest.fixture
def printer() -> RecordingPrinter:
    """Printer capturing its output."""
    return RecordingPrinter()


@pytest.fixture
def make_context(tmp_path: Path) -> ContextFactory:
    """Factory building a :class:`ProvisionContext` backed by fakes."""

    def factory(
        family: Family = Family.FEDORA,
        *,
        answers: Iterable[str] = (),
        runner: FakeRunner | None = None,
        downloader: FakeDownloader | None = None,
        architecture: Architecture = Architecture.AMD64,
        config: AppConfig | None = None,
    ) -> ProvisionContext:
        home = tmp_path / "home"
        home.mkdir(exist_ok=True)
        fake_runner = runner or FakeRunner()
        manager = package_manager_for(family)
        info = PlatformInfo(
            family=family,
            architecture=architecture,
            package_manager=manager,
            system="Linux",
            distro_id=family.value,
        )
        context = ProvisionContext(
            platform=info,
            config=config or make_config(tmp_path),
            prompter=ScriptedPrompter(answers),
            printer=RecordingPrinter(),
            runner=fake_runner,
            packages=provider_for(manager, fake_runner) if manager else None,
            downloader=downloader or FakeDownloader(),
            git=GitConfig(fake_runner),
            templates=TemplateEngine.with_overrides(None),
        )
        return context

    return factory


@pytest.fixture
def fake_runner() -> Callable[..., FakeRunner]:
    """Factory for :class:`FakeRunner` instances."""
    return FakeRunner


@pytest.fixture
def fake_downloader() -> Callable[..., FakeDownloader]:
    """Factory for :class:`FakeDownloader` instances."""
    return FakeDownloader

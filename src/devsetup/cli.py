"""Typer-powered command line for ``devsetup``.

Invoked without a subcommand the CLI provisions the current host: it probes
the platform, asks which steps to skip, runs the step registry and finishes
with the verification report. ``steps``, ``verify`` and ``config show``
expose the individual pieces.
"""
from __future__ import annotations

import json
import textwrap
from dataclasses import dataclass
from pathlib import Path
from typing import NoReturn

import typer
from rich.console import Console
from rich.table import Table

from . import __version__
from .catalog import build_steps, describe_steps
from .commands import CommandRunner
from .config import AppConfig, ConfigError, load_config
from .console import StatusPrinter
from .exit_codes import ExitCode
from .logging import OperationScope, StructuredLogger
from .platform_probe import (
    EnvironmentCheckError,
    PlatformInfo,
    UnsupportedPlatformError,
    detect,
    preflight,
    require_supported,
)
from .prompts import Prompter, TerminalPrompter
from .providers import BrewProvider, Downloader, GitConfig, provider_for
from .skip_state import SkipStateStore, format_skip_set
from .steps import ProvisionContext, RunAborted, run
from .templating import TemplateEngine
from .verify import checks_for, print_checks, print_closing, run_checks

console = Console(highlight=False)

CONFIG_FILE_OPTION = typer.Option(
    None,
    "--config-file",
    dir_okay=False,
    help="Override the path to devsetup's YAML config file.",
)

DRY_RUN_OPTION = typer.Option(
    False,
    "--dry-run",
    help="Log the commands that would change the host instead of running them.",
)

app = typer.Typer(
    add_completion=False,
    help=textwrap.dedent(
        """
        Developer workstation provisioning.

        Run without a subcommand to provision this machine through its numbered
        steps. Steps can be skipped interactively and the choice saved for the
        next run.
        """
    ).strip(),
)

config_app = typer.Typer(help="Inspect the effective configuration.")
app.add_typer(config_app, name="config")


@dataclass
class RuntimeContext:
    """Aggregated runtime objects shared by commands."""

    config: AppConfig
    logger: StructuredLogger
    printer: StatusPrinter
    prompter: Prompter
    templates: TemplateEngine


def _ensure_runtime(
    ctx: typer.Context,
    config_file: Path | None,
    dry_run: bool = False,
) -> RuntimeContext:
    runtime = ctx.obj
    if isinstance(runtime, RuntimeContext):
        return runtime

    overrides: dict[str, object] = {}
    if dry_run:
        overrides["dry_run"] = True

    try:
        config = load_config(config_file=config_file, overrides=overrides)
    except ConfigError as exc:
        console.print(f"[red]Configuration error:[/red] {exc}")
        raise typer.Exit(code=ExitCode.VALIDATION) from exc

    runtime = RuntimeContext(
        config=config,
        logger=StructuredLogger(config.logs_dir),
        printer=StatusPrinter(console),
        prompter=TerminalPrompter(),
        templates=TemplateEngine.with_overrides(config.templates_dir),
    )
    ctx.obj = runtime
    return runtime


def _get_runtime(ctx: typer.Context) -> RuntimeContext:
    runtime = ctx.obj
    if isinstance(runtime, RuntimeContext):
        return runtime
    return _ensure_runtime(ctx, None)


def _command_error(
    op: OperationScope,
    printer: StatusPrinter,
    message: str,
    *,
    rc: int,
    details: list[str] | None = None,
) -> NoReturn:
    """Print an error, record it on the operation and terminate the command."""
    printer.error(message)
    for line in details or []:
        printer.info(line)
    op.error(message, rc=rc)
    raise typer.Exit(code=rc)


def _supported_platform(op: OperationScope, printer: StatusPrinter) -> PlatformInfo:
    """Detect the host, exiting with ``ENVIRONMENT`` when it is unsupported."""
    info = detect()
    try:
        require_supported(info)
    except UnsupportedPlatformError as exc:
        details = ["Available entry points for supported platforms:"]
        details.extend(f"  - {alternative}" for alternative in exc.alternatives)
        _command_error(op, printer, str(exc), rc=ExitCode.ENVIRONMENT, details=details)
    return info


def build_context(
    runtime: RuntimeContext,
    info: PlatformInfo,
    op: OperationScope | None = None,
) -> ProvisionContext:
    """Wire the collaborators every step receives."""
    config = runtime.config
    runner = CommandRunner(dry_run=config.dry_run)
    packages = provider_for(info.package_manager, runner) if info.package_manager else None
    if isinstance(packages, BrewProvider):
        packages.ensure_on_path()
    return ProvisionContext(
        platform=info,
        config=config,
        prompter=runtime.prompter,
        printer=runtime.printer,
        runner=runner,
        packages=packages,
        downloader=Downloader(dry_run=config.dry_run),
        git=GitConfig(runner),
        templates=runtime.templates,
        scope=op,
    )


def _public_key_path(config: AppConfig) -> Path:
    return config.ssh_key_path.with_name(config.ssh_key_path.name + ".pub")


@app.callback(invoke_without_command=True)
def _root(  # noqa: D401 - Typer displays help for us, docstring optional.
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        help="Show the devsetup version and exit.",
    ),
    config_file: Path | None = CONFIG_FILE_OPTION,
    dry_run: bool = DRY_RUN_OPTION,
) -> None:
    """Entry point callback invoked for every CLI execution."""
    runtime = _ensure_runtime(ctx, config_file, dry_run)
    if version:
        with runtime.logger.operation(
            "root --version",
            args={"version": True},
            target={"kind": "meta", "scope": "version"},
        ) as op:
            console.print(f"devsetup {__version__}")
            op.success("Reported CLI version.", changed=0)
        raise typer.Exit(code=ExitCode.OK)

    if ctx.invoked_subcommand is None:
        provision(runtime)


def provision(runtime: RuntimeContext) -> None:
    """Provision the current host end to end."""
    printer = runtime.printer
    config = runtime.config
    with runtime.logger.operation(
        "provision",
        args={"dry_run": config.dry_run, "config_file": config.config_file},
        target={"kind": "host"},
    ) as op:
        info = _supported_platform(op, printer)
        try:
            preflight(info)
        except EnvironmentCheckError as exc:
            _command_error(op, printer, str(exc), rc=ExitCode.ENVIRONMENT)

        printer.info(f"✓ Detected {info.describe()} - continuing with setup...")
        if config.dry_run:
            printer.warn("Dry run: commands that change the host are only logged")
        printer.info("Starting workstation setup...")

        steps = build_steps(info)
        describe_steps(steps, printer)
        skip = SkipStateStore(config.skip_file, runtime.prompter, printer).resolve()
        op.add_step("skip-set", status="resolved", detail=format_skip_set(skip) or None)

        context = build_context(runtime, info, op)
        printer.blank()
        printer.info("Starting installation...")
        printer.blank()
        try:
            report = run(steps, skip, context, checks_for(info, config.home))
        except RunAborted as exc:
            rc = ExitCode.ENVIRONMENT if exc.missing_prerequisite else ExitCode.ACTION
            printer.error(str(exc))
            printer.error(
                "Earlier steps were left in place. Fix the problem and run devsetup again."
            )
            op.error(
                str(exc),
                rc=rc,
                context={"completed": [result.ordinal for result in exc.results]},
            )
            raise typer.Exit(code=rc) from exc

        print_closing(
            report,
            printer,
            family=info.family,
            public_key=_public_key_path(config),
            identity=context.git.identity(),
        )

        log_context = {"platform": info.describe(), "report": report.to_dict()}
        warnings = [*report.warnings, *(f"{check.name}: {check.detail}" for check in report.failed)]
        if warnings:
            op.warning(
                "Provisioning completed with warnings.",
                warnings=warnings,
                context=log_context,
            )
        else:
            op.success("Provisioning completed.", context=log_context)


@app.command("steps")
def steps_command(ctx: typer.Context) -> None:
    """List the numbered steps available on this host."""
    runtime = _get_runtime(ctx)
    with runtime.logger.operation("steps", target={"kind": "host"}) as op:
        info = _supported_platform(op, runtime.printer)
        registry = build_steps(info)
        runtime.printer.info(f"Platform: {info.describe()}")
        describe_steps(registry, runtime.printer)
        saved = SkipStateStore(runtime.config.skip_file, runtime.prompter, runtime.printer).load()
        if saved is not None:
            runtime.printer.info(f"Saved skip steps ({runtime.config.skip_file}): {saved.raw}")
        op.success("Listed steps.", changed=0, context={"count": len(registry)})


@app.command("verify")
def verify_command(ctx: typer.Context) -> None:
    """Run only the verification probes for this host.

    Failed checks are reported but never change the exit code.
    """
    runtime = _get_runtime(ctx)
    with runtime.logger.operation("verify", target={"kind": "host"}) as op:
        info = _supported_platform(op, runtime.printer)
        context = build_context(runtime, info, op)
        results = run_checks(checks_for(info, runtime.config.home), context.runner)
        print_checks(results, runtime.printer)
        failed = [result for result in results if not result.passed]
        runtime.printer.blank()
        runtime.printer.info(
            f"Checks: {len(results) - len(failed)} passed, {len(failed)} failed."
        )
        payload = {
            "checks": [
                {"name": result.name, "passed": result.passed, "detail": result.detail}
                for result in results
            ]
        }
        if failed:
            op.warning(
                "Verification found missing tools.",
                warnings=[f"{result.name}: {result.detail}" for result in failed],
                context=payload,
            )
        else:
            op.success("All verification checks passed.", changed=0, context=payload)


@config_app.command("show")
def config_show(
    ctx: typer.Context,
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Emit configuration as JSON instead of a table.",
    ),
) -> None:
    """Display the effective configuration after merges."""
    runtime = _get_runtime(ctx)
    data = runtime.config.to_dict()

    with runtime.logger.operation(
        "config show",
        args={"json": json_output},
        target={"kind": "config"},
    ) as op:
        if json_output:
            console.print_json(data=data)
            op.success("Rendered configuration as JSON.", changed=0)
            return

        table = Table(show_header=True, header_style="bold magenta")
        table.add_column("Key", style="bold")
        table.add_column("Value")

        for key, value in data.items():
            if isinstance(value, dict):
                rendered = json.dumps(value, indent=2, sort_keys=True)
            else:
                rendered = str(value)
            table.add_row(key, rendered)

        console.print(table)
        op.success("Rendered configuration table.", changed=0)


def main() -> None:
    """Console script entry point."""
    app()


__all__ = ["app", "build_context", "main", "provision"]

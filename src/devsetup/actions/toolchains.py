"""Compiler and language toolchain steps."""
from __future__ import annotations

import logging
import tempfile
from pathlib import Path

from packaging.version import InvalidVersion, Version

from ..platform_probe import Architecture, Family
from ..providers import BrewProvider
from ..steps import FatalActionError, ProvisionContext, StepOutcome
from .base import (
    append_profile_block,
    fatal_errors,
    install_packages,
    run_remote_script,
)

LOGGER = logging.getLogger(__name__)

GO_INSTALL_ROOT = Path("/usr/local/go")

GO_PROFILE_BLOCK = """
# Go language
export GOPATH=$HOME/go
export PATH=$PATH:$GOPATH/bin
"""

GO_ROOT_PROFILE_BLOCK = """
# Go toolchain
export PATH=$PATH:/usr/local/go/bin
"""

CARGO_PROFILE_BLOCK = """
# Rust language
export CARGO_HOME=$HOME/.cargo
export PATH=$PATH:$CARGO_HOME/bin
"""

_GO_PACKAGES = {
    Family.MACOS: ("go",),
    Family.FEDORA: ("golang",),
    Family.WINDOWS: ("GoLang.Go",),
}

_RUST_PACKAGES = {
    Family.FEDORA: ("rust", "cargo"),
    Family.WINDOWS: ("Rustlang.Rustup",),
}


# ---------------------------------------------------------------------------
# macOS prerequisites
# ---------------------------------------------------------------------------


def install_xcode_clt(context: ProvisionContext) -> None:
    """Install the Xcode Command Line Tools unless already present."""
    printer = context.printer
    probe = context.runner.run(["xcode-select", "-p"], check=False, capture=True, mutating=False)
    if probe.returncode == 0:
        printer.info("✓ Xcode Command Line Tools already installed")
        return
    printer.info("Installing Xcode Command Line Tools...")
    with fatal_errors("xcode-select --install"):
        context.runner.run(["xcode-select", "--install"])
    printer.info("Please complete the Xcode Command Line Tools installation in the popup window")
    context.ask("Press Enter when the installation is complete...")


def install_homebrew(context: ProvisionContext) -> None:
    """Install Homebrew, or update it when already installed."""
    printer = context.printer
    brew = context.packages
    if not isinstance(brew, BrewProvider):
        brew = BrewProvider(context.runner)
    if brew.is_available():
        printer.info("✓ Homebrew already installed")
        printer.info("Updating Homebrew...")
        with fatal_errors("brew update"):
            brew.update()
        return
    printer.info("Installing Homebrew...")
    run_remote_script(
        context,
        context.config.urls.homebrew_install,
        shell="/bin/bash",
        env={"NONINTERACTIVE": "1"},
    )
    brew.ensure_on_path()
    printer.info("✓ Homebrew installed successfully")


# ---------------------------------------------------------------------------
# Go
# ---------------------------------------------------------------------------


def install_go(context: ProvisionContext) -> None:
    """Install Go and prepare the ``GOPATH`` workspace."""
    family = context.platform.family
    if family is Family.UBUNTU:
        install_go_release(context)
    else:
        install_packages(context, _GO_PACKAGES[family])

    gopath = context.home / "go"
    context.env["GOPATH"] = str(gopath)
    context.runner.append_path(str(gopath / "bin"))
    if not context.platform.is_posix:
        return
    append_profile_block(context, "GOPATH", GO_PROFILE_BLOCK)
    if not context.dry_run:
        for child in ("bin", "src", "pkg"):
            (gopath / child).mkdir(parents=True, exist_ok=True)


def installed_go_version(context: ProvisionContext) -> str | None:
    """Return the version reported by ``go version`` (``go1.22.1``), if any."""
    output = context.runner.output(["go", "version"])
    if not output:
        return None
    parts = output.split()
    return parts[2] if len(parts) > 2 else None


def latest_go_version(context: ProvisionContext) -> str:
    """Return the newest published Go release (``go1.23.2``)."""
    with fatal_errors("Looking up the latest Go release"):
        text = context.downloader.fetch_text(context.config.urls.go_version)
    latest = text.strip().splitlines()[0].strip() if text.strip() else ""
    if not latest.startswith("go"):
        raise FatalActionError(f"Unexpected Go version document: {text[:40]!r}")
    return latest


def go_is_current(installed: str | None, latest: str) -> bool:
    """Return ``True`` when *installed* is at least *latest*."""
    if not installed:
        return False
    try:
        return Version(installed.removeprefix("go")) >= Version(latest.removeprefix("go"))
    except InvalidVersion:
        LOGGER.debug("Cannot compare Go versions %r and %r", installed, latest)
        return False


def go_download_url(template: str, version: str, os_name: str, arch: Architecture) -> str:
    """Return the release archive URL for *version* on the given platform."""
    if arch is Architecture.OTHER:
        raise FatalActionError("No Go release is published for this CPU architecture.")
    return template.format(version=version, os=os_name, arch=arch.value)


def install_go_release(context: ProvisionContext) -> None:
    """Install the latest official Go tarball under ``/usr/local/go``."""
    printer = context.printer
    context.runner.append_path(str(GO_INSTALL_ROOT / "bin"))
    latest = latest_go_version(context)
    installed = installed_go_version(context)
    if go_is_current(installed, latest):
        printer.info(f"✓ Go {installed} is up to date")
    else:
        url = go_download_url(
            context.config.urls.go_download,
            latest,
            context.platform.go_os,
            context.platform.architecture,
        )
        printer.info(f"Downloading {latest} from {url}...")
        with tempfile.TemporaryDirectory(prefix="devsetup-go-") as tmp:
            archive = Path(tmp) / url.rsplit("/", 1)[-1]
            with fatal_errors(f"Installing {latest}"):
                context.downloader.download(url, archive)
                context.runner.run(["sudo", "rm", "-rf", str(GO_INSTALL_ROOT)])
                context.runner.run(
                    ["sudo", "tar", "-C", str(GO_INSTALL_ROOT.parent), "-xzf", str(archive)]
                )
        printer.info(f"✓ {latest} installed to {GO_INSTALL_ROOT}")
    append_profile_block(context, "/usr/local/go/bin", GO_ROOT_PROFILE_BLOCK)


# ---------------------------------------------------------------------------
# Rust
# ---------------------------------------------------------------------------


def install_rust(context: ProvisionContext) -> StepOutcome | None:
    """Install Rust, asking before reinstalling an existing toolchain."""
    printer = context.printer
    family = context.platform.family
    declined = False
    if family is Family.FEDORA:
        install_packages(context, _RUST_PACKAGES[family])
    else:
        if context.runner.exists("rustc"):
            printer.warn("Rust is already installed")
            if not context.confirm("Do you want to reinstall Rust?", default=False):
                printer.info("Keeping existing Rust installation")
                declined = True
        if not declined:
            _install_rustup(context)
            printer.info("✓ Rust installed successfully")

    cargo_home = context.home / ".cargo"
    context.env["CARGO_HOME"] = str(cargo_home)
    context.runner.append_path(str(cargo_home / "bin"))
    if context.platform.is_posix:
        append_profile_block(context, "CARGO_HOME", CARGO_PROFILE_BLOCK)
    return StepOutcome.DECLINED if declined else None


def _install_rustup(context: ProvisionContext) -> None:
    family = context.platform.family
    if family is Family.MACOS:
        install_packages(context, ("rustup-init",))
        with fatal_errors("rustup-init"):
            context.runner.run(["rustup-init", "-y", "--no-modify-path"])
    elif family is Family.WINDOWS:
        install_packages(context, _RUST_PACKAGES[family])
        with fatal_errors("rustup default stable"):
            context.runner.run(["rustup", "default", "stable"])
    else:
        run_remote_script(
            context,
            context.config.urls.rustup_install,
            args=("-y", "--no-modify-path"),
        )


# ---------------------------------------------------------------------------
# Python and uv
# ---------------------------------------------------------------------------


def install_python_uv(context: ProvisionContext) -> None:
    """Install uv and let it provision the latest stable Python."""
    printer = context.printer
    family = context.platform.family
    local_bin = context.home / ".local" / "bin"
    context.runner.prepend_path(str(local_bin))
    if family is Family.MACOS:
        install_packages(context, ("uv",))
    elif family is Family.WINDOWS:
        install_packages(context, ("astral-sh.uv",))
    elif context.runner.exists("uv"):
        printer.info("✓ uv already installed")
    else:
        run_remote_script(
            context,
            context.config.urls.uv_install,
            env={"UV_NO_MODIFY_PATH": "1"},
        )

    printer.info("Installing Python via uv...")
    uv = context.runner.which("uv") or "uv"
    with fatal_errors("uv python install"):
        context.runner.run([uv, "python", "install"])
    printer.info("✓ Python and uv installed successfully")


__all__ = [
    "go_download_url",
    "go_is_current",
    "install_go",
    "install_go_release",
    "install_homebrew",
    "install_python_uv",
    "install_rust",
    "install_xcode_clt",
    "installed_go_version",
    "latest_go_version",
]

"""Host platform detection.

The probe inspects the kernel name, the distribution identifier in
``/etc/os-release`` and the CPU architecture, and resolves which backend
implementations apply. Every host input is injectable so detection is
deterministic under test.
"""
from __future__ import annotations

import os
import platform
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

OS_RELEASE_PATH = Path("/etc/os-release")

INSTALL_BASE_URL = "https://raw.githubusercontent.com/marcoshack/install/refs/heads/main"


class Family(str, Enum):
    """Supported platform families."""

    MACOS = "macos"
    FEDORA = "fedora"
    UBUNTU = "ubuntu"
    WINDOWS = "windows"
    UNSUPPORTED = "unsupported"


class Architecture(str, Enum):
    """CPU architectures, named the way release downloads name them."""

    AMD64 = "amd64"
    ARM64 = "arm64"
    ARMV6L = "armv6l"
    OTHER = "other"


class PackageManager(str, Enum):
    """Package manager frontends used per family."""

    BREW = "brew"
    DNF = "dnf"
    APT = "apt"
    WINGET = "winget"


class UnsupportedPlatformError(RuntimeError):
    """Raised when the host is not one of the supported families."""

    def __init__(self, message: str, alternatives: tuple[str, ...] = ()) -> None:
        """Store the message and the entry points that would work instead."""
        super().__init__(message)
        self.alternatives = alternatives


class EnvironmentCheckError(RuntimeError):
    """Raised when a mandatory host precondition is not met."""


@dataclass(frozen=True, slots=True)
class PlatformInfo:
    """Immutable description of the host, resolved once at startup."""

    family: Family
    architecture: Architecture
    package_manager: PackageManager | None
    system: str
    distro_id: str | None = None
    machine: str = ""

    @property
    def is_supported(self) -> bool:
        """Return ``True`` for every family except ``UNSUPPORTED``."""
        return self.family is not Family.UNSUPPORTED

    @property
    def is_posix(self) -> bool:
        """Return ``True`` for macOS and Linux families."""
        return self.family in {Family.MACOS, Family.FEDORA, Family.UBUNTU}

    @property
    def go_os(self) -> str:
        """Return the operating system name used in Go release archives."""
        return {
            Family.MACOS: "darwin",
            Family.WINDOWS: "windows",
        }.get(self.family, "linux")

    def describe(self) -> str:
        """Return a short human readable summary."""
        name = self.distro_id or self.system or "unknown"
        manager = self.package_manager.value if self.package_manager else "none"
        return f"{self.family.value} ({name}, {self.architecture.value}, {manager})"


_ARCH_ALIASES = {
    "x86_64": Architecture.AMD64,
    "amd64": Architecture.AMD64,
    "aarch64": Architecture.ARM64,
    "arm64": Architecture.ARM64,
    "armv6l": Architecture.ARMV6L,
    "armv7l": Architecture.ARMV6L,
}

_PACKAGE_MANAGERS = {
    Family.MACOS: PackageManager.BREW,
    Family.FEDORA: PackageManager.DNF,
    Family.UBUNTU: PackageManager.APT,
    Family.WINDOWS: PackageManager.WINGET,
}

ENTRY_POINTS = {
    Family.MACOS: f'sh -c "$(curl -fsSL {INSTALL_BASE_URL}/macos.sh)"',
    Family.FEDORA: f'bash -c "$(curl -fsSL {INSTALL_BASE_URL}/fedora.sh)"',
    Family.UBUNTU: f'sh -c "$(curl -fsSL {INSTALL_BASE_URL}/ubuntu.sh)"',
    Family.WINDOWS: f"irm {INSTALL_BASE_URL}/windows.ps1 | iex",
}


def normalize_architecture(machine: str) -> Architecture:
    """Map a ``platform.machine()`` value onto :class:`Architecture`."""
    return _ARCH_ALIASES.get(machine.strip().lower(), Architecture.OTHER)


def package_manager_for(family: Family) -> PackageManager | None:
    """Return the package manager used on *family*."""
    return _PACKAGE_MANAGERS.get(family)


def read_os_release(path: Path = OS_RELEASE_PATH) -> dict[str, str] | None:
    """Parse an ``os-release`` file into a mapping, ``None`` when missing."""
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    fields: dict[str, str] = {}
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        fields[key.strip()] = value.strip().strip('"').strip("'")
    return fields


def detect(
    *,
    system: str | None = None,
    machine: str | None = None,
    os_release: Path = OS_RELEASE_PATH,
) -> PlatformInfo:
    """Inspect the host and return its :class:`PlatformInfo`.

    Parameters
    ----------
    system:
        Kernel name override (defaults to :func:`platform.system`).
    machine:
        CPU architecture override (defaults to :func:`platform.machine`).
    os_release:
        Location of the Linux distribution identifier file.
    """
    system_name = system if system is not None else platform.system()
    machine_name = machine if machine is not None else platform.machine()
    architecture = normalize_architecture(machine_name)

    distro_id: str | None = None
    if system_name == "Darwin":
        family = Family.MACOS
    elif system_name == "Windows":
        family = Family.WINDOWS
    elif system_name == "Linux":
        fields = read_os_release(os_release)
        if fields is None:
            family = Family.UNSUPPORTED
        else:
            distro_id = fields.get("ID", "").lower() or None
            family = {
                "fedora": Family.FEDORA,
                "ubuntu": Family.UBUNTU,
            }.get(distro_id or "", Family.UNSUPPORTED)
    else:
        family = Family.UNSUPPORTED

    return PlatformInfo(
        family=family,
        architecture=architecture,
        package_manager=package_manager_for(family),
        system=system_name,
        distro_id=distro_id,
        machine=machine_name,
    )


def require_supported(info: PlatformInfo) -> PlatformInfo:
    """Return *info* or raise :class:`UnsupportedPlatformError`."""
    if info.is_supported:
        return info
    if info.system == "Linux" and info.distro_id is None:
        message = "Cannot detect Linux distribution (missing /etc/os-release)."
    else:
        running = info.distro_id or info.system or "unknown"
        message = f"No installation script is currently available for {running}."
    alternatives = tuple(
        f"{family.value}: {command}" for family, command in ENTRY_POINTS.items()
    )
    raise UnsupportedPlatformError(message, alternatives)


def preflight(info: PlatformInfo, *, euid: int | None = None) -> None:
    """Reject hosts where provisioning must not start (running as root)."""
    if not info.is_posix:
        return
    effective = euid if euid is not None else _effective_uid()
    if effective == 0:
        raise EnvironmentCheckError(
            "Please do not run devsetup as root. It will prompt for sudo when needed."
        )


def _effective_uid() -> int | None:
    geteuid = getattr(os, "geteuid", None)
    return geteuid() if geteuid is not None else None


__all__ = [
    "Architecture",
    "ENTRY_POINTS",
    "EnvironmentCheckError",
    "Family",
    "PackageManager",
    "PlatformInfo",
    "UnsupportedPlatformError",
    "detect",
    "normalize_architecture",
    "package_manager_for",
    "preflight",
    "read_os_release",
    "require_supported",
]

"""Provider interfaces for devsetup."""
from __future__ import annotations

from .downloads import Downloader, DownloadError
from .git import GitConfig, GitIdentity
from .package_managers import (
    AptProvider,
    BrewProvider,
    DnfProvider,
    PackageManagerError,
    PackageManagerProvider,
    WingetProvider,
    provider_for,
)

__all__ = [
    "AptProvider",
    "BrewProvider",
    "DnfProvider",
    "DownloadError",
    "Downloader",
    "GitConfig",
    "GitIdentity",
    "PackageManagerError",
    "PackageManagerProvider",
    "WingetProvider",
    "provider_for",
]

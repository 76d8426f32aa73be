"""Blocking HTTP fetches for bootstrap scripts and release archives."""
from __future__ import annotations

import logging
import os
import tempfile
import urllib.error
import urllib.request
from pathlib import Path

from .. import __version__

LOGGER = logging.getLogger(__name__)

USER_AGENT = f"devsetup/{__version__}"


class DownloadError(RuntimeError):
    """Raised when a remote resource cannot be fetched."""


class Downloader:
    """Fetch remote resources with ``urllib``.

    Calls block until the transfer finishes; no retry is attempted.
    """

    def __init__(self, *, dry_run: bool = False) -> None:
        """Configure the downloader (dry-run skips writes to disk)."""
        self.dry_run = dry_run

    def fetch_bytes(self, url: str) -> bytes:
        """Return the body of *url*."""
        LOGGER.debug("GET %s", url)
        request = urllib.request.Request(url, headers={"User-Agent": USER_AGENT})
        try:
            with urllib.request.urlopen(request) as response:  # noqa: S310
                return response.read()
        except (urllib.error.URLError, OSError) as exc:
            raise DownloadError(f"Failed to download {url}: {exc}") from exc

    def fetch_text(self, url: str) -> str:
        """Return the body of *url* decoded as UTF-8."""
        return self.fetch_bytes(url).decode("utf-8", errors="replace")

    def download(self, url: str, dest: Path, *, mode: int | None = None) -> Path:
        """Atomically write the body of *url* to *dest*."""
        if self.dry_run:
            LOGGER.info("dry-run: download %s -> %s", url, dest)
            return dest
        payload = self.fetch_bytes(url)
        dest.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=str(dest.parent), prefix=f".{dest.name}.")
        tmp_path = Path(tmp_name)
        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(payload)
            if mode is not None:
                tmp_path.chmod(mode)
            os.replace(tmp_path, dest)
        finally:
            tmp_path.unlink(missing_ok=True)
        return dest


__all__ = ["DownloadError", "Downloader"]

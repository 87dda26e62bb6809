"""
Plugin Source Fetching.

This module retrieves a plugin source into a local working directory.

Key features:
- Local directories are copied, local archives extracted
- HTTP(S) archives downloaded with httpx.AsyncClient
- Git repositories cloned (git::<url>, *.git, ssh, host-prefixed paths)
- Archive members escaping the destination are rejected
- Downloads and clones are cancellable by cancelling the awaiting task
"""

import logging
import os
import shutil
import tarfile
import tempfile
import zipfile
from pathlib import Path
from urllib.parse import urlparse

import httpx

from tpm.plugin.errors import FetchError
from tpm.plugin.git_ops import GitError, clone_repository

logger = logging.getLogger(__name__)

ARCHIVE_SUFFIXES = (".tar.gz", ".tgz", ".tar", ".zip")

_GIT_SCHEMES = ("ssh", "git", "git+ssh", "git+https")
_IGNORED_NAMES = (".git",)


class Fetcher:
    """
    Fetches plugin sources into a destination directory.

    Example:
        fetcher = Fetcher()
        await fetcher.fetch("github.com/aquasecurity/trivy-plugin-kubectl", Path(tmp))
    """

    def __init__(
        self,
        timeout: float = 60.0,
        git_depth: int = 1,
        grace_period: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize Fetcher.

        Args:
            timeout: HTTP timeout in seconds
            git_depth: Clone depth for git sources, 0 for full history
            grace_period: Seconds between terminating and killing a cancelled clone
            transport: Optional httpx transport (used by tests)
        """
        self.timeout = timeout
        self.git_depth = git_depth
        self.grace_period = grace_period
        self._transport = transport

    async def fetch(self, source: str, dest: Path) -> None:
        """
        Retrieve source into dest.

        Args:
            source: Local path, archive URL or git locator
            dest: Existing, empty destination directory

        Raises:
            FetchError: If the source cannot be retrieved
        """
        try:
            await self._fetch(source, dest)
        except FetchError:
            raise
        except (OSError, GitError, httpx.HTTPError, tarfile.TarError, zipfile.BadZipFile) as e:
            raise FetchError(f"failed to fetch {source}: {e}") from e

    async def _fetch(self, source: str, dest: Path) -> None:
        if source.startswith("git::"):
            await self._clone(source[len("git::"):], dest)
            return

        local = Path(source).expanduser()
        if local.exists():
            self._fetch_local(local, dest)
            return

        parsed = urlparse(source)
        if parsed.scheme in ("http", "https"):
            if _is_archive(parsed.path):
                await self._download(source, dest)
            else:
                await self._clone(source, dest)
            return

        if parsed.scheme in _GIT_SCHEMES or source.startswith("git@") or source.endswith(".git"):
            await self._clone(source, dest)
            return

        if _looks_like_host_path(source):
            await self._clone(f"https://{source}", dest)
            return

        # Not a remote locator: surface the OS error for the missing path
        os.stat(local)

    def _fetch_local(self, source: Path, dest: Path) -> None:
        if source.is_dir():
            logger.debug("Copying %s", source)
            shutil.copytree(
                source,
                dest,
                dirs_exist_ok=True,
                ignore=shutil.ignore_patterns(*_IGNORED_NAMES),
            )
        elif _is_archive(source.name):
            extract_archive(source, dest)
        else:
            raise FetchError(f"unsupported plugin source {source}: not a directory or archive")

    async def _download(self, url: str, dest: Path) -> None:
        logger.debug("Downloading %s", url)
        archive_name = Path(urlparse(url).path).name
        with tempfile.TemporaryDirectory(prefix="tpm-download-") as tmpdir:
            archive = Path(tmpdir) / archive_name
            async with httpx.AsyncClient(
                timeout=self.timeout,
                follow_redirects=True,
                transport=self._transport,
            ) as client:
                async with client.stream("GET", url) as response:
                    response.raise_for_status()
                    with open(archive, "wb") as f:
                        async for chunk in response.aiter_bytes():
                            f.write(chunk)
            extract_archive(archive, dest)

    async def _clone(self, url: str, dest: Path) -> None:
        url, _, ref = url.partition("?ref=")
        logger.debug("Cloning %s", url)
        await clone_repository(
            url, dest, ref=ref or None, depth=self.git_depth, grace_period=self.grace_period
        )


def extract_archive(archive: Path, dest: Path) -> None:
    """
    Extract a tar or zip archive into dest.

    Raises:
        FetchError: If a member would be written outside dest
    """
    if archive.name.endswith(".zip"):
        root = dest.resolve()
        with zipfile.ZipFile(archive) as zf:
            for member in zf.infolist():
                target = (root / member.filename).resolve()
                if not target.is_relative_to(root):
                    raise FetchError(f"archive member {member.filename!r} escapes destination")
            zf.extractall(dest)
            # zipfile drops permission bits, restore them for executables
            for member in zf.infolist():
                mode = (member.external_attr >> 16) & 0o777
                if mode and not member.is_dir():
                    (dest / member.filename).chmod(mode)
        return

    with tarfile.open(archive) as tf:
        try:
            tf.extractall(dest, filter="data")
        except tarfile.FilterError as e:
            raise FetchError(f"unsafe archive member: {e}") from e


def _is_archive(name: str) -> bool:
    return name.lower().endswith(ARCHIVE_SUFFIXES)


def _looks_like_host_path(source: str) -> bool:
    """github.com/owner/repo style locators."""
    host, sep, rest = source.partition("/")
    return bool(sep and rest) and "." in host and not host.startswith(".")

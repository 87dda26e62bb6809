"""
Plugin Installer.

This module installs a plugin from a source locator into the store.

Key features:
- Fetch into a temporary directory, then validate plugin.yaml
- Download of the platform asset when its uri is a remote archive
- Copy into a staging directory inside the store root and swap it in,
  so a failed copy never leaves a half-written plugin behind
- Relocation of platform uri/bin to ./-relative paths of the install dir
- Overwrite semantics: installing the same source twice is not an error
"""

import logging
import posixpath
import shutil
import tempfile
from dataclasses import replace
from pathlib import Path
from urllib.parse import urlparse

from tpm.plugin.errors import ManifestError, PluginIOError
from tpm.plugin.fetch import Fetcher
from tpm.plugin.manifest import MANIFEST_FILE, Plugin, dump_manifest, load_manifest
from tpm.plugin.selector import Target, effective_target, select_platform
from tpm.plugin.store import PluginStore

logger = logging.getLogger(__name__)


class Installer:
    """
    Installs plugins into a PluginStore.

    Example:
        installer = Installer(PluginStore())
        plugin = await installer.install("github.com/aquasecurity/trivy-plugin-kubectl")
    """

    def __init__(self, store: PluginStore | None = None, fetcher: Fetcher | None = None):
        """
        Initialize Installer.

        Args:
            store: Destination store (default: PluginStore())
            fetcher: Source fetcher (default: Fetcher())
        """
        self.store = store or PluginStore()
        self.fetcher = fetcher or Fetcher()

    async def install(
        self,
        source: str,
        force: bool = False,
        target: Target | None = None,
    ) -> Plugin:
        """
        Install a plugin.

        Args:
            source: Local path, archive URL or git locator
            force: Caller confirmed overwriting an existing install
            target: OS/arch whose remote asset is downloaded (default: running system)

        Returns:
            The installed Plugin, as Store.load() will return it

        Raises:
            FetchError: If the source or a platform asset cannot be retrieved
            ManifestError: If plugin.yaml is missing or invalid
            PlatformNotFoundError: If a remote asset is declared but none matches the target
            PluginIOError: If the plugin cannot be written to the store
        """
        logger.info("Installing the plugin from %s...", source)
        with tempfile.TemporaryDirectory(prefix="tpm-plugin-") as tmpdir:
            fetched = Path(tmpdir) / "source"
            fetched.mkdir()
            await self.fetcher.fetch(source, fetched)

            logger.info("Loading the plugin metadata...")
            plugin = load_manifest(fetched / MANIFEST_FILE)
            plugin = await self._fetch_asset(plugin, fetched, target)
            plugin = relocate(plugin)

            install_dir = self.store.path(plugin.name)
            if install_dir.exists() and not force:
                logger.info("Plugin %s is already installed, overwriting", plugin.name)

            self._place(fetched, plugin, install_dir)

        logger.info("Installed %s %s to %s", plugin.name, plugin.version, install_dir)
        return plugin

    async def _fetch_asset(self, plugin: Plugin, fetched: Path, target: Target | None) -> Plugin:
        """
        Download the remote asset of the platform selected for target.

        The asset is merged into the fetched tree and its uri becomes the
        install root. Remote platforms of other targets are dropped since
        nothing of theirs lands on disk.
        """
        if not any(_is_remote(platform.uri) for platform in plugin.platforms):
            return plugin

        selected = select_platform(plugin.platforms, effective_target(target))
        platforms = []
        for platform in plugin.platforms:
            if platform is selected and _is_remote(platform.uri):
                logger.info("Downloading the plugin asset from %s...", platform.uri)
                with tempfile.TemporaryDirectory(prefix="tpm-asset-") as assetdir:
                    await self.fetcher.fetch(platform.uri, Path(assetdir))
                    shutil.copytree(assetdir, fetched, dirs_exist_ok=True)
                platforms.append(replace(platform, uri="."))
            elif _is_remote(platform.uri):
                logger.debug("Skipping %s, not selected for this system", platform.uri)
            else:
                platforms.append(platform)
        return replace(plugin, platforms=platforms)

    def _place(self, fetched: Path, plugin: Plugin, install_dir: Path) -> None:
        root = install_dir.parent
        try:
            root.mkdir(parents=True, exist_ok=True)
            staging = Path(tempfile.mkdtemp(prefix=f".{plugin.name}-", dir=root))
        except OSError as e:
            raise PluginIOError(f"failed to prepare plugin directory {root}: {e}") from e

        previous = None
        try:
            shutil.copytree(
                fetched,
                staging,
                dirs_exist_ok=True,
                ignore=shutil.ignore_patterns(".git"),
            )
            (staging / MANIFEST_FILE).write_text(dump_manifest(plugin), encoding="utf-8")

            if install_dir.exists():
                previous = root / f"{staging.name}.old"
                install_dir.rename(previous)
            try:
                staging.rename(install_dir)
            except OSError:
                if previous is not None:
                    previous.rename(install_dir)
                    previous = None
                raise
        except OSError as e:
            shutil.rmtree(staging, ignore_errors=True)
            raise PluginIOError(f"failed to install plugin {plugin.name}: {e}") from e

        if previous is not None:
            shutil.rmtree(previous, ignore_errors=True)


def relocate(plugin: Plugin) -> Plugin:
    """
    Rewrite platform uri/bin as ./-relative paths of the install directory.

    Raises:
        ManifestError: If no platform is declared, a uri is still remote,
            or a path escapes the plugin directory
    """
    if not plugin.platforms:
        raise ManifestError(f"plugin {plugin.name} declares no platforms")

    platforms = []
    for platform in plugin.platforms:
        if _is_remote(platform.uri):
            raise ManifestError(f"remote uri {platform.uri!r} was not downloaded")
        platforms.append(
            replace(platform, uri=_relative_path(platform.uri), bin=_relative_path(platform.bin))
        )
    return replace(plugin, platforms=platforms)


def _is_remote(uri: str) -> bool:
    # One-letter schemes are Windows drive letters
    return len(urlparse(uri).scheme) > 1


def _relative_path(path: str) -> str:
    if not path:
        return path

    normalized = posixpath.normpath(path.replace("\\", "/"))
    if posixpath.isabs(normalized) or normalized == ".." or normalized.startswith("../"):
        raise ManifestError(f"path {path!r} escapes the plugin directory")
    if normalized == ".":
        return "./"
    return f"./{normalized}"

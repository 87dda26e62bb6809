"""
Plugin Store.

This module provides the on-disk layout of installed plugins.

Key features:
- One directory per plugin under <data-home>/.trivy/plugins
- Loading a single plugin or enumerating all of them
- Recursive removal
"""

import logging
import shutil
from pathlib import Path

from tpm.config import trivy_dir
from tpm.plugin.errors import NotFoundError, PluginIOError
from tpm.plugin.manifest import MANIFEST_FILE, Plugin, load_manifest, validate_name

logger = logging.getLogger(__name__)


def default_root() -> Path:
    """Plugin root derived from $XDG_DATA_HOME (or the home directory)."""
    return trivy_dir() / "plugins"


class PluginStore:
    """
    Filesystem store of installed plugins.

    The root is resolved lazily when not given, so changes to
    $XDG_DATA_HOME after construction are honoured.
    """

    def __init__(self, root: Path | None = None):
        """
        Initialize PluginStore.

        Args:
            root: Plugin root directory (default: derived from the data home)
        """
        self._root = root

    @property
    def root(self) -> Path:
        return self._root if self._root is not None else default_root()

    def path(self, name: str) -> Path:
        """
        Directory of the named plugin (no I/O).

        Raises:
            ManifestError: If the name could escape the plugin root
        """
        validate_name(name)
        return self.root / name

    def exists(self, name: str) -> bool:
        """
        Whether the named plugin has a manifest.

        Raises:
            PluginIOError: If the plugin directory cannot be inspected
        """
        manifest_path = self.path(name) / MANIFEST_FILE
        try:
            return manifest_path.is_file()
        except OSError as e:
            raise PluginIOError(f"failed to read plugin {name!r}: {e}") from e

    def load(self, name: str) -> Plugin:
        """
        Load an installed plugin.

        Args:
            name: Plugin name

        Returns:
            Plugin object

        Raises:
            NotFoundError: If the plugin directory or manifest is absent
            ManifestError: If the manifest cannot be decoded
            PluginIOError: If the plugin directory cannot be inspected
        """
        manifest_path = self.path(name) / MANIFEST_FILE
        if not self.exists(name):
            raise NotFoundError(f"plugin {name!r} not found: {manifest_path} does not exist")
        return load_manifest(manifest_path)

    def load_all(self) -> list[Plugin]:
        """
        Load every installed plugin, ordered by directory name.

        Raises:
            PluginIOError: If the root directory cannot be listed
            NotFoundError, ManifestError: If any plugin fails to load
        """
        try:
            entries = sorted(self.root.iterdir(), key=lambda p: p.name)
        except OSError as e:
            raise PluginIOError(f"failed to read plugin directory: {e}") from e

        plugins = []
        for entry in entries:
            # Dot-prefixed directories are in-progress installs
            if entry.name.startswith(".") or not entry.is_dir():
                continue
            plugins.append(self.load(entry.name))
        return plugins

    def remove(self, name: str) -> None:
        """
        Delete a plugin directory; an absent directory is not an error.

        Raises:
            PluginIOError: If the directory exists but cannot be removed
        """
        plugin_dir = self.path(name)
        logger.debug("Removing %s", plugin_dir)
        try:
            shutil.rmtree(plugin_dir)
        except FileNotFoundError:
            pass
        except OSError as e:
            raise PluginIOError(f"failed to remove plugin {name!r}: {e}") from e

"""
Plugin Manager.

This module provides plugin lifecycle management.

Key features:
- Install, uninstall and update (re-install from the recorded repository)
- Run an installed plugin, or install-then-run from a source
- Human-readable information and listing
- Install, update and run are coroutines, cancelled by cancelling the task
"""

import logging

from tpm.config import Settings, load_settings
from tpm.plugin.errors import ManifestError, NotFoundError, PluginError
from tpm.plugin.executor import RunOptions, run
from tpm.plugin.fetch import Fetcher
from tpm.plugin.installer import Installer
from tpm.plugin.manifest import Plugin
from tpm.plugin.selector import Target
from tpm.plugin.store import PluginStore

logger = logging.getLogger(__name__)

_INFO_TEMPLATE = """
Plugin: {name}
  Description: {description}
  Version:     {version}
  Usage:       {usage}
"""


class PluginManager:
    """
    Plugin lifecycle manager.

    Ties the store, installer and executor together behind the operations
    exposed by the pm command.
    """

    def __init__(self, store: PluginStore | None = None, settings: Settings | None = None):
        """
        Initialize PluginManager.

        Args:
            store: Plugin store (default: derived from $XDG_DATA_HOME)
            settings: tpm settings (default: load_settings())
        """
        self.store = store or PluginStore()
        self.settings = settings or load_settings()
        self.installer = Installer(
            self.store,
            Fetcher(
                timeout=self.settings.fetch_timeout,
                git_depth=self.settings.git_depth,
                grace_period=self.settings.kill_grace_period,
            ),
        )

    async def install(
        self, source: str, force: bool = False, target: Target | None = None
    ) -> Plugin:
        """Install a plugin from a source locator."""
        return await self.installer.install(source, force=force, target=target)

    def uninstall(self, name: str) -> None:
        """
        Remove an installed plugin.

        Raises:
            PluginIOError: If the plugin directory cannot be removed
        """
        logger.info("Removing plugin %s", name)
        self.store.remove(name)

    async def update(self, name: str) -> Plugin:
        """
        Re-install a plugin from its recorded repository.

        No version comparison is made: the fetched manifest always wins.

        Raises:
            NotFoundError: If the plugin is not installed
            ManifestError: If the plugin records no repository
        """
        plugin = self.store.load(name)
        if not plugin.repository:
            raise ManifestError(f"plugin {name} has no repository to update from")

        logger.info("Updating plugin %s from %s", name, plugin.repository)
        updated = await self.installer.install(plugin.repository, force=True)
        logger.info("Updated plugin %s: %s -> %s", name, plugin.version, updated.version)
        return updated

    async def update_all(self) -> list[Plugin]:
        """Update every installed plugin, stopping at the first failure."""
        if not self.store.root.is_dir():
            return []
        return [await self.update(plugin.name) for plugin in self.store.load_all()]

    def information(self, name: str) -> str:
        """
        Render the information block of an installed plugin.

        Raises:
            NotFoundError: If the plugin cannot be loaded
        """
        try:
            plugin = self.store.load(name)
        except PluginError as e:
            raise NotFoundError(
                f"could not find a plugin called '{name}', did you install it?"
            ) from e

        return _INFO_TEMPLATE.format(
            name=plugin.name,
            description=plugin.description,
            version=plugin.version,
            usage=plugin.usage,
        )

    def list_installed(self) -> str:
        """
        Render the installed plugins.

        Raises:
            PluginError: If an installed plugin cannot be loaded
        """
        if not self.store.root.is_dir():
            return "No Installed Plugins\n"

        plugins = self.store.load_all()
        if not plugins:
            return "No Installed Plugins\n"

        lines = ["Installed Plugins:"]
        for plugin in plugins:
            lines.append(f"  Name:    {plugin.name}")
            lines.append(f"  Version: {plugin.version}")
        return "\n".join(lines) + "\n"

    async def run(
        self,
        name: str,
        options: RunOptions | None = None,
        target: Target | None = None,
    ) -> None:
        """
        Run an installed plugin.

        Raises:
            NotFoundError: If the plugin is not installed
            PlatformNotFoundError, PluginIOError, ExecError: See executor.run
        """
        plugin = self.store.load(name)
        await run(
            plugin,
            options,
            target=target,
            store=self.store,
            kill_grace_period=self.settings.kill_grace_period,
        )

    async def run_source(
        self,
        source: str,
        options: RunOptions | None = None,
        target: Target | None = None,
    ) -> None:
        """Run a plugin by source locator, installing it first when needed."""
        plugin = self._installed_from(source)
        if plugin is None:
            plugin = await self.install(source, target=target)
        await run(
            plugin,
            options,
            target=target,
            store=self.store,
            kill_grace_period=self.settings.kill_grace_period,
        )

    def _installed_from(self, source: str) -> Plugin | None:
        if not self.store.root.is_dir():
            return None
        for plugin in self.store.load_all():
            if plugin.repository == source or plugin.name == source:
                return plugin
        return None

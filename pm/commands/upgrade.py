"""
pm upgrade command (-U).

Re-installs plugins from their recorded repository. With no targets every
installed plugin is updated.
"""

import asyncio
import sys
from typing import Any

from tpm.plugin import Plugin, PluginManager


def upgrade_command(args: Any, manager: PluginManager) -> int:
    """
    Execute upgrade command.

    Errors propagate to the caller; updating stops at the first failure.
    """
    if args.targets:
        plugins = asyncio.run(_update(manager, args.targets))
    else:
        plugins = asyncio.run(manager.update_all())

    if not plugins:
        print("No Installed Plugins", file=sys.stderr)
        return 0

    for plugin in plugins:
        print(f"Updated {plugin.name} to {plugin.version}")
    return 0


async def _update(manager: PluginManager, names: list[str]) -> list[Plugin]:
    return [await manager.update(name) for name in names]

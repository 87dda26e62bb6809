"""
pm install command (-S).

Install plugins from a local path, archive URL or git repository.
"""

import asyncio
import sys
from typing import Any

from tpm.plugin import PluginError, PluginManager


def install_command(args: Any, manager: PluginManager) -> int:
    """
    Execute install command.

    Args:
        args: Parsed command-line arguments
        manager: Plugin manager

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    if not args.targets:
        print("Error: No targets specified", file=sys.stderr)
        print("Usage: pm -S <source>...", file=sys.stderr)
        return 1

    return asyncio.run(_install_all(args, manager))


async def _install_all(args: Any, manager: PluginManager) -> int:
    success_count = 0
    fail_count = 0

    for target in args.targets:
        try:
            plugin = await manager.install(target, force=args.force)
            print(f"Installed {plugin.name} {plugin.version}")
            success_count += 1
        except PluginError as e:
            print(f"Failed to install {target}: {e}", file=sys.stderr)
            fail_count += 1

    # Summary
    if args.verbose:
        print(f"\nInstalled: {success_count}, Failed: {fail_count}")

    return 0 if fail_count == 0 else 1

"""
pm run command (-X).

Runs an installed plugin, or installs and runs it when the target is a
source locator. Arguments after '--' are forwarded to the plugin.
"""

import asyncio
import sys
from typing import Any

from tpm.plugin import PluginManager, RunOptions


def run_command(args: Any, manager: PluginManager) -> int:
    """
    Execute run command.

    Returns:
        0 when the plugin succeeds; plugin failures raise ExecError
    """
    if len(args.targets) != 1:
        print("Error: Exactly one plugin must be given", file=sys.stderr)
        print("Usage: pm -X <name> [-- args...]", file=sys.stderr)
        return 1

    options = RunOptions(args=list(args.plugin_args))
    asyncio.run(manager.run_source(args.targets[0], options))
    return 0

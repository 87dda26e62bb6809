"""
pm query command (-Q, -Qi).
"""

import sys
from typing import Any

from tpm.plugin import PluginManager


def query_command(args: Any, manager: PluginManager) -> int:
    """List installed plugins, or show information with -i."""
    if not args.info:
        sys.stdout.write(manager.list_installed())
        return 0

    if not args.targets:
        print("Error: No targets specified", file=sys.stderr)
        print("Usage: pm -Qi <name>...", file=sys.stderr)
        return 1

    for name in args.targets:
        sys.stdout.write(manager.information(name))
    return 0

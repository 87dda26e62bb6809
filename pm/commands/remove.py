"""
pm remove command (-R).
"""

import sys
from typing import Any

from tpm.plugin import PluginError, PluginManager


def remove_command(args: Any, manager: PluginManager) -> int:
    """Remove the named plugins."""
    if not args.targets:
        print("Error: No targets specified", file=sys.stderr)
        print("Usage: pm -R <name>...", file=sys.stderr)
        return 1

    fail_count = 0
    for name in args.targets:
        try:
            manager.uninstall(name)
            print(f"Removed {name}")
        except PluginError as e:
            print(f"Failed to remove {name}: {e}", file=sys.stderr)
            fail_count += 1

    return 0 if fail_count == 0 else 1

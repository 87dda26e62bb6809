"""
pm CLI - tpm Package Manager.

Pacman-style interface for managing plugins.

Usage:
    pm -S <source>...            Install plugin(s)
    pm -R <name>...              Remove plugin(s)
    pm -U [name...]              Update plugin(s), all when none given
    pm -Q                        List installed plugins
    pm -Qi <name>                Show plugin info
    pm -X <name> [-- args...]    Run plugin
"""

import argparse
import logging
import sys

from tpm.config import ConfigError, load_settings, write_default_config
from tpm.plugin import ExecError, PluginError, PluginManager


class PMError(Exception):
    """Base exception for pm errors."""

    pass


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser with pacman-style flags."""
    parser = argparse.ArgumentParser(
        prog="pm",
        description="tpm Package Manager - Pacman-style plugin manager",
        add_help=False,
    )

    # Operation flags (mutually exclusive)
    ops = parser.add_mutually_exclusive_group()
    ops.add_argument("-S", "--sync", action="store_true", help="Install plugin")
    ops.add_argument("-R", "--remove", action="store_true", help="Remove plugin")
    ops.add_argument("-U", "--upgrade", action="store_true", help="Update plugin(s)")
    ops.add_argument("-Q", "--query", action="store_true", help="Query installed")
    ops.add_argument("-X", "--exec", action="store_true", help="Run plugin")
    ops.add_argument("-h", "--help", action="store_true", help="Show help")
    ops.add_argument(
        "--init-config", action="store_true", help="Write default settings file"
    )

    # Query sub-flags
    parser.add_argument("-i", "--info", action="store_true", help="Show info (-Qi)")

    # Common options
    parser.add_argument(
        "--force", action="store_true", help="Overwrite an installed plugin on -S"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")

    # Positional arguments
    parser.add_argument("targets", nargs="*", help="Plugin sources or names")

    return parser


def print_help():
    """Print help message."""
    help_text = """
pm - tpm Package Manager

Usage:
    pm -S <source>...            Install plugin(s)
    pm -R <name>...              Remove plugin(s)
    pm -U [name...]              Update plugin(s), all when none given
    pm -Q                        List installed plugins
    pm -Qi <name>                Show plugin info
    pm -X <name> [-- args...]    Run plugin

Options:
    --force                      Overwrite an installed plugin on -S
    --init-config                Write the default settings file
    -v, --verbose                Verbose output
    -h, --help                   Show this help
"""
    print(help_text.strip())


def split_plugin_args(argv: list[str]) -> tuple[list[str], list[str]]:
    """Split argv at the first '--' into pm arguments and plugin arguments."""
    if "--" in argv:
        index = argv.index("--")
        return argv[:index], argv[index + 1:]
    return argv, []


def setup_logging(level: str, verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else level,
        format="%(asctime)s %(levelname)s %(message)s",
        stream=sys.stderr,
    )


def main(argv: list[str] | None = None) -> int:
    """Main entry point for pm CLI."""
    argv = sys.argv[1:] if argv is None else argv
    pm_args, plugin_args = split_plugin_args(argv)

    parser = create_parser()
    args = parser.parse_args(pm_args)
    args.plugin_args = plugin_args

    try:
        # Show help
        if args.help or not (
            args.sync or args.remove or args.upgrade or args.query or args.exec
            or args.init_config
        ):
            print_help()
            return 0

        if args.init_config:
            path = write_default_config()
            print(f"Wrote default settings to {path}")
            return 0

        settings = load_settings()
        setup_logging(settings.log_level, args.verbose)
        manager = PluginManager(settings=settings)

        # Route to appropriate command
        if args.sync:
            # -S: Install
            from pm.commands.install import install_command

            return install_command(args, manager)

        elif args.remove:
            # -R: Remove
            from pm.commands.remove import remove_command

            return remove_command(args, manager)

        elif args.upgrade:
            # -U: Update
            from pm.commands.upgrade import upgrade_command

            return upgrade_command(args, manager)

        elif args.query:
            # -Q: Query
            from pm.commands.query import query_command

            return query_command(args, manager)

        elif args.exec:
            # -X: Run
            from pm.commands.run import run_command

            return run_command(args, manager)

    except ExecError as e:
        print(f"Error: {e}", file=sys.stderr)
        return e.exit_code
    except (PMError, PluginError, ConfigError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        return 130
    except Exception as e:
        print(f"Unexpected error: {e}", file=sys.stderr)
        if args.verbose:
            import traceback

            traceback.print_exc()
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())

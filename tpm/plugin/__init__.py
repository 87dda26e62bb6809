"""
tpm Plugin System - Plugin lifecycle management.

This module handles:
- plugin.yaml manifest parsing
- Platform selection by OS/architecture
- Installation from local paths, archives and git repositories
- Running plugin executables
- Update, uninstall and information
"""

from tpm.plugin.errors import (
    CancellationError,
    ExecError,
    FetchError,
    ManifestError,
    NotFoundError,
    PlatformNotFoundError,
    PluginError,
    PluginIOError,
)
from tpm.plugin.executor import RunOptions, run
from tpm.plugin.installer import Installer
from tpm.plugin.manager import PluginManager
from tpm.plugin.manifest import Platform, Plugin, Selector, parse_manifest
from tpm.plugin.selector import Target, matches, select_platform
from tpm.plugin.store import PluginStore

__all__ = [
    "CancellationError",
    "ExecError",
    "FetchError",
    "Installer",
    "ManifestError",
    "NotFoundError",
    "Platform",
    "PlatformNotFoundError",
    "Plugin",
    "PluginError",
    "PluginIOError",
    "PluginManager",
    "PluginStore",
    "RunOptions",
    "Selector",
    "Target",
    "matches",
    "parse_manifest",
    "run",
    "select_platform",
]

"""
Platform Selector Matching.

Picks the platform variant of a plugin that fits an OS/architecture target.
Platforms are tried in declaration order and the first match wins, so a
catch-all entry (no selector) only acts as a default when it is listed last.
"""

import platform as _platform
import sys
from collections.abc import Sequence
from dataclasses import dataclass

from tpm.plugin.errors import PlatformNotFoundError
from tpm.plugin.manifest import Platform, Selector

# Go-style names, the vocabulary plugin manifests are written in
_ARCH_ALIASES = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "aarch64": "arm64",
    "arm64": "arm64",
    "i386": "386",
    "i686": "386",
    "x86": "386",
    "armv6l": "arm",
    "armv7l": "arm",
    "ppc64le": "ppc64le",
    "s390x": "s390x",
}


@dataclass(frozen=True)
class Target:
    """
    OS/architecture pair a platform is selected for.

    Attributes:
        os: Operating system name ("linux", "darwin", "windows", ...)
        arch: Architecture name ("amd64", "arm64", ...)
    """

    os: str = ""
    arch: str = ""

    @classmethod
    def current(cls) -> "Target":
        """Target describing the running system."""
        return cls(os=_current_os(), arch=_current_arch())

    def __str__(self) -> str:
        return f"{self.os}/{self.arch}"


def effective_target(override: Target | None = None) -> Target:
    """
    Resolve the target used to pick a platform.

    Empty fields of the override fall back to the running system's values.
    """
    current = Target.current()
    if override is None:
        return current
    return Target(os=override.os or current.os, arch=override.arch or current.arch)


def matches(selector: Selector | None, target: Target) -> bool:
    """Check whether a selector accepts the target (None accepts everything)."""
    if selector is None:
        return True
    return selector.os == target.os and selector.arch == target.arch


def select_platform(platforms: Sequence[Platform], target: Target) -> Platform:
    """
    Return the first platform whose selector matches the target.

    Raises:
        PlatformNotFoundError: If no platform matches
    """
    for candidate in platforms:
        if matches(candidate.selector, target):
            return candidate
    raise PlatformNotFoundError(f"platform not found: {target}")


def _current_os() -> str:
    if sys.platform.startswith("linux"):
        return "linux"
    if sys.platform == "darwin":
        return "darwin"
    if sys.platform in ("win32", "cygwin"):
        return "windows"
    if sys.platform.startswith("freebsd"):
        return "freebsd"
    return sys.platform


def _current_arch() -> str:
    machine = _platform.machine().lower()
    return _ARCH_ALIASES.get(machine, machine)

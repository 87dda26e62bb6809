"""
Plugin Manifest Model.

This module provides parsing and rendering of plugin.yaml manifests.

Key features:
- YAML decoding into Plugin / Platform / Selector dataclasses
- Name validation (the name doubles as the install directory)
- Declaration order of platforms is preserved
- Rendering back to YAML for the relocated, installed manifest
"""

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from tpm.plugin.errors import ManifestError

MANIFEST_FILE = "plugin.yaml"

_NAME_PATTERN = re.compile(r"^[A-Za-z0-9_][A-Za-z0-9_.-]*$")


@dataclass(frozen=True)
class Selector:
    """
    OS/architecture constraint of a platform.

    Attributes:
        os: Operating system name (e.g. "linux", "darwin")
        arch: Architecture name (e.g. "amd64", "arm64")
    """

    os: str = ""
    arch: str = ""


@dataclass
class Platform:
    """
    One OS/architecture specific build of a plugin.

    Attributes:
        selector: Matching constraint, None matches every target
        uri: Location of the executable asset
        bin: Path of the file to execute
    """

    selector: Selector | None = None
    uri: str = ""
    bin: str = ""


@dataclass
class Plugin:
    """
    Represents a plugin manifest.

    Attributes:
        name: Plugin name (unique identifier and install directory name)
        repository: Source locator used for install and update
        version: Free-form version string
        usage: Usage text
        description: Plugin description
        platforms: Platform variants in declaration order
    """

    name: str
    repository: str = ""
    version: str = ""
    usage: str = ""
    description: str = ""
    platforms: list[Platform] = field(default_factory=list)


def parse_manifest(data: bytes | str) -> Plugin:
    """
    Parse raw plugin.yaml content.

    Args:
        data: Manifest bytes or text

    Returns:
        Plugin object

    Raises:
        ManifestError: If the content is not a YAML mapping or is invalid
    """
    try:
        raw = yaml.safe_load(data)
    except yaml.YAMLError as e:
        raise ManifestError(f"yaml decode error: {e}") from e

    if not isinstance(raw, dict):
        raise ManifestError("yaml decode error: manifest must be a mapping")

    name = raw.get("name")
    if not name:
        raise ManifestError("missing required field: name")
    validate_name(str(name))

    platforms_raw = raw.get("platforms") or []
    if not isinstance(platforms_raw, list):
        raise ManifestError("'platforms' field must be a list")

    return Plugin(
        name=str(name),
        repository=_string(raw, "repository"),
        version=_string(raw, "version"),
        usage=_string(raw, "usage"),
        description=_string(raw, "description"),
        platforms=[_parse_platform(entry) for entry in platforms_raw],
    )


def load_manifest(manifest_path: Path) -> Plugin:
    """
    Read and parse a plugin.yaml file.

    Raises:
        ManifestError: If the file cannot be opened or parsed
    """
    try:
        data = manifest_path.read_bytes()
    except OSError as e:
        raise ManifestError(f"file open error: {e}") from e
    return parse_manifest(data)


def dump_manifest(plugin: Plugin) -> str:
    """Render a Plugin as plugin.yaml text."""
    data: dict[str, Any] = {
        "name": plugin.name,
        "repository": plugin.repository,
        "version": plugin.version,
        "usage": plugin.usage,
        "description": plugin.description,
    }
    platforms = []
    for platform in plugin.platforms:
        entry: dict[str, Any] = {}
        if platform.selector is not None:
            entry["selector"] = {
                "os": platform.selector.os,
                "arch": platform.selector.arch,
            }
        entry["uri"] = platform.uri
        entry["bin"] = platform.bin
        platforms.append(entry)
    if platforms:
        data["platforms"] = platforms

    return yaml.safe_dump(data, sort_keys=False, default_flow_style=False)


def validate_name(name: str) -> None:
    """
    Check that a plugin name is usable as a directory name.

    Raises:
        ManifestError: If the name is empty or not filesystem-safe
    """
    if not _NAME_PATTERN.match(name):
        raise ManifestError(
            f"Invalid plugin name: {name!r}. "
            f"Must contain only letters, digits, '_', '-' or '.' and not start with '.'"
        )


def _parse_platform(entry: Any) -> Platform:
    if not isinstance(entry, dict):
        raise ManifestError(f"Invalid platform entry: {entry!r}")

    selector = None
    selector_raw = entry.get("selector")
    if selector_raw is not None:
        if not isinstance(selector_raw, dict):
            raise ManifestError(f"Invalid platform selector: {selector_raw!r}")
        selector = Selector(
            os=_string(selector_raw, "os"),
            arch=_string(selector_raw, "arch"),
        )

    return Platform(
        selector=selector,
        uri=_string(entry, "uri"),
        bin=_string(entry, "bin"),
    )


def _string(data: dict[str, Any], key: str) -> str:
    value = data.get(key)
    return "" if value is None else str(value)

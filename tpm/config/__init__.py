"""
tpm Configuration - TOML-based settings.

This module provides:
- Data home resolution ($XDG_DATA_HOME, falling back to the home directory)
- Settings read from the [tpm] table of a TOML file
- Generation of a commented default settings file

Example usage:
    from tpm.config import load_settings

    settings = load_settings()
    print(settings.fetch_timeout)
"""

import os
import tomllib
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any

import tomlkit

SECTION = "tpm"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


class ConfigError(Exception):
    """Raised when the settings file cannot be read or is invalid."""

    pass


@dataclass(frozen=True)
class Settings:
    """
    Validated tpm settings.

    Each field's metadata carries the comment written above it in the
    default settings file.
    """

    log_level: str = field(
        default="INFO",
        metadata={"doc": f"Log level of the pm command, one of {', '.join(LOG_LEVELS)}"},
    )
    fetch_timeout: float = field(
        default=60.0,
        metadata={"doc": "Timeout in seconds for archive downloads (at least 1)"},
    )
    git_depth: int = field(
        default=1,
        metadata={"doc": "Clone depth for git sources, 0 clones the full history"},
    )
    kill_grace_period: float = field(
        default=5.0,
        metadata={"doc": "Seconds between terminating and killing a cancelled child process"},
    )

    def __post_init__(self):
        """Check value constraints."""
        if self.log_level not in LOG_LEVELS:
            raise ConfigError(f"log_level: {self.log_level!r} not in {list(LOG_LEVELS)}")
        if self.fetch_timeout < 1:
            raise ConfigError(f"fetch_timeout: {self.fetch_timeout} is less than 1")
        if self.git_depth < 0:
            raise ConfigError(f"git_depth: {self.git_depth} is negative")
        if self.kill_grace_period < 0:
            raise ConfigError(f"kill_grace_period: {self.kill_grace_period} is negative")


def data_home() -> Path:
    """Return $XDG_DATA_HOME, or the home directory when it is unset."""
    value = os.environ.get("XDG_DATA_HOME")
    return Path(value) if value else Path.home()


def trivy_dir() -> Path:
    return data_home() / ".trivy"


def config_path() -> Path:
    """Settings file location: $TPM_CONFIG or <data-home>/.trivy/tpm.toml."""
    value = os.environ.get("TPM_CONFIG")
    return Path(value) if value else trivy_dir() / "tpm.toml"


def load_settings(path: Path | None = None) -> Settings:
    """
    Load settings, using defaults when the file does not exist.

    Args:
        path: Settings file (default: config_path())

    Raises:
        ConfigError: If the file cannot be parsed or fails validation
    """
    path = path or config_path()
    if not path.exists():
        return Settings()

    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid settings file {path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Failed to read settings file {path}: {e}") from e

    table = data.get(SECTION, {})
    if not isinstance(table, dict):
        raise ConfigError(f"Invalid settings file {path}: [{SECTION}] must be a table")

    try:
        return settings_from_table(table)
    except ConfigError as e:
        raise ConfigError(f"Invalid settings file {path}: {e}") from e


def settings_from_table(table: dict[str, Any]) -> Settings:
    """
    Build Settings from a parsed [tpm] table.

    TOML integers are accepted for float fields.

    Raises:
        ConfigError: On unknown keys, wrong types or out-of-range values
    """
    types = {f.name: f.type for f in fields(Settings)}
    values = {}
    for key, value in table.items():
        if key not in types:
            raise ConfigError(f"Unknown setting: {key}")
        expected = types[key]
        if expected is float and isinstance(value, int) and not isinstance(value, bool):
            value = float(value)
        # bool is an int subclass, reject it for numeric fields
        if not isinstance(value, expected) or isinstance(value, bool):
            raise ConfigError(
                f"{key}: expected {expected.__name__}, got {type(value).__name__}"
            )
        values[key] = value
    return Settings(**values)


def dump_settings(settings: Settings) -> str:
    """Render settings as a commented TOML document."""
    doc = tomlkit.document()
    doc.add(tomlkit.comment("tpm settings"))
    doc.add(tomlkit.nl())

    table = tomlkit.table()
    values = asdict(settings)
    for f in fields(Settings):
        table.add(tomlkit.comment(f.metadata["doc"]))
        table.add(f.name, values[f.name])
        table.add(tomlkit.nl())
    doc.add(SECTION, table)

    return tomlkit.dumps(doc)


def write_default_config(path: Path | None = None) -> Path:
    """
    Write a commented settings file holding the defaults.

    Raises:
        ConfigError: If the file cannot be written
    """
    path = path or config_path()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(dump_settings(Settings()), encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Failed to write settings file {path}: {e}") from e
    return path


__all__ = [
    "ConfigError",
    "Settings",
    "config_path",
    "data_home",
    "dump_settings",
    "load_settings",
    "settings_from_table",
    "trivy_dir",
    "write_default_config",
]

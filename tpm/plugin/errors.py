"""
Plugin Error Taxonomy.

Every component of the plugin system raises one of these exceptions and
chains the underlying cause, so the original OS or transport text (e.g.
"No such file or directory") stays visible in ``str(error)``.
"""

import asyncio


class PluginError(Exception):
    """Base exception for plugin-related errors."""

    pass


class FetchError(PluginError):
    """Raised when a plugin source cannot be retrieved."""

    pass


class ManifestError(PluginError):
    """Raised when plugin.yaml is missing or cannot be decoded."""

    pass


class NotFoundError(PluginError):
    """Raised when a plugin or one of its files is absent from the store."""

    pass


class PlatformNotFoundError(PluginError):
    """Raised when no platform selector matches the effective target."""

    pass


class PluginIOError(PluginError):
    """Raised on filesystem failures, including a missing executable."""

    pass


class ExecError(PluginError):
    """
    Raised when a plugin process exits unsuccessfully.

    Attributes:
        exit_code: Process exit code (128 + signal number for signal deaths)
    """

    def __init__(self, message: str, exit_code: int = 1):
        super().__init__(message)
        self.exit_code = exit_code


# Cancelling a run surfaces as the asyncio cancellation itself so that
# asyncio.timeout() and TaskGroup keep working around plugin runs.
CancellationError = asyncio.CancelledError

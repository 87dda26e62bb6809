"""
Plugin Executor.

This module runs an installed plugin as a child process.

Key features:
- Platform selection against the effective OS/arch target
- Binary resolution inside the plugin's install directory
- Inherited stdin/stdout/stderr, environment plus extra variables
- Cancellation terminates (then kills) the child before propagating
"""

import asyncio
import logging
import os
import signal
from dataclasses import dataclass, field

from tpm.plugin.errors import ExecError, PluginIOError
from tpm.plugin.manifest import Plugin
from tpm.plugin.process import terminate
from tpm.plugin.selector import Target, effective_target, select_platform
from tpm.plugin.store import PluginStore

logger = logging.getLogger(__name__)


@dataclass
class RunOptions:
    """
    Invocation options of a plugin run.

    Attributes:
        args: Arguments appended to the plugin binary
        env: Extra environment variables for the child process
    """

    args: list[str] = field(default_factory=list)
    env: dict[str, str] = field(default_factory=dict)


async def run(
    plugin: Plugin,
    options: RunOptions | None = None,
    target: Target | None = None,
    store: PluginStore | None = None,
    kill_grace_period: float = 5.0,
) -> None:
    """
    Run a plugin and wait for it to exit.

    Args:
        plugin: Installed plugin
        options: Arguments and extra environment
        target: OS/arch override (default: running system)
        store: Store the plugin is installed in (default: PluginStore())
        kill_grace_period: Seconds to wait after terminate before killing

    Raises:
        PlatformNotFoundError: If no platform matches the target
        PluginIOError: If the binary is missing or not executable
        ExecError: If the plugin exits non-zero or dies from a signal
        CancellationError: If the calling task is cancelled
    """
    options = options or RunOptions()
    store = store or PluginStore()

    platform = select_platform(plugin.platforms, effective_target(target))
    executable = (store.path(plugin.name) / platform.bin).resolve()

    env = os.environ.copy()
    env.update(options.env)

    logger.debug("Running %s %s", executable, " ".join(options.args))
    try:
        process = await asyncio.create_subprocess_exec(str(executable), *options.args, env=env)
    except OSError as e:
        raise PluginIOError(f"failed to start plugin {plugin.name}: {e}") from e

    try:
        returncode = await process.wait()
    except asyncio.CancelledError:
        logger.debug("Run of %s cancelled, terminating pid %d", plugin.name, process.pid)
        await terminate(process, kill_grace_period)
        raise

    if returncode < 0:
        raise ExecError(
            f"plugin {plugin.name} failed: signal: {_signal_name(-returncode)}",
            exit_code=128 - returncode,
        )
    if returncode != 0:
        raise ExecError(
            f"plugin {plugin.name} failed: exit status {returncode}",
            exit_code=returncode,
        )


def _signal_name(signum: int) -> str:
    try:
        return signal.Signals(signum).name
    except ValueError:
        return str(signum)

"""
Child Process Helpers.

Shared by the executor and the git transport: both spawn a child with
asyncio and must not leave it running when the awaiting task is cancelled.
"""

import asyncio
import contextlib
import logging

logger = logging.getLogger(__name__)


async def terminate(process: asyncio.subprocess.Process, grace_period: float) -> None:
    """
    Stop a child process: SIGTERM, then SIGKILL once grace_period elapses.

    The child is killed even if this coroutine is itself cancelled while
    waiting out the grace period.
    """
    if process.returncode is not None:
        return

    with contextlib.suppress(ProcessLookupError):
        process.terminate()
    try:
        await asyncio.wait_for(process.wait(), timeout=grace_period)
    except TimeoutError:
        logger.debug("pid %d ignored SIGTERM for %.1fs, killing", process.pid, grace_period)
    finally:
        if process.returncode is None:
            with contextlib.suppress(ProcessLookupError):
                process.kill()
    await process.wait()

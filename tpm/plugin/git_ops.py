"""
Git Operations for Plugin Sources.

This module provides the git clone used to fetch plugin repositories.
The clone runs as an asyncio child process, so cancelling the awaiting
task stops git instead of blocking the event loop until it finishes.
"""

import asyncio
import logging
from pathlib import Path

from tpm.plugin.process import terminate

logger = logging.getLogger(__name__)


class GitError(Exception):
    """Base exception for git-related errors."""

    pass


async def clone_repository(
    repo_url: str,
    target_dir: Path,
    ref: str | None = None,
    depth: int = 1,
    grace_period: float = 5.0,
) -> None:
    """
    Clone a plugin repository.

    Args:
        repo_url: Git repository URL
        target_dir: Target directory for clone (must not exist or be empty)
        ref: Optional branch or tag to check out
        depth: History depth, 0 for a full clone
        grace_period: Seconds between terminating and killing git on cancel

    Raises:
        GitError: If clone operation fails
    """
    target_dir.parent.mkdir(parents=True, exist_ok=True)

    cmd = ["git", "clone", "--quiet"]
    if depth > 0:
        cmd.extend(["--depth", str(depth)])
    if ref:
        cmd.extend(["--branch", ref])
    cmd.extend([repo_url, str(target_dir)])

    try:
        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except FileNotFoundError as e:
        raise GitError("git command not found. Please install git.") from e

    try:
        stdout, stderr = await process.communicate()
    except asyncio.CancelledError:
        logger.debug("Clone of %s cancelled, terminating git", repo_url)
        await terminate(process, grace_period)
        raise

    if process.returncode != 0:
        output = (stderr or stdout).decode(errors="replace").strip()
        raise GitError(f"Failed to clone repository {repo_url}: {output}")

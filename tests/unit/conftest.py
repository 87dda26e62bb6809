"""Shared fixtures for plugin system tests."""

import asyncio
import os
import stat
import tarfile
from pathlib import Path

import pytest

LINUX_AMD64_MANIFEST = """name: "{name}"
repository: {repository}
version: "{version}"
usage: test
description: test
platforms:
  - selector:
      os: linux
      arch: amd64
    uri: {bin}
    bin: {bin}
"""


def write_script(path: Path, body: str) -> Path:
    """Write an executable /bin/sh script."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("#!/bin/sh\n" + body + "\n")
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


def make_tarball(source: Path, archive: Path) -> Path:
    """Pack the contents of source into a gzipped tarball."""
    with tarfile.open(archive, "w:gz") as tf:
        tf.add(source, arcname=".")
    return archive


async def wait_for_pid(pidfile: Path) -> int:
    """Wait until a started script has written its pid."""
    for _ in range(200):
        if pidfile.exists() and pidfile.read_text().strip():
            return int(pidfile.read_text())
        await asyncio.sleep(0.05)
    raise AssertionError(f"no pid written to {pidfile}")


async def process_gone(pid: int, timeout: float = 2.0) -> bool:
    """Whether pid has exited and been reaped within timeout seconds."""
    for _ in range(int(timeout / 0.05)):
        try:
            os.kill(pid, 0)
        except ProcessLookupError:
            return True
        await asyncio.sleep(0.05)
    return False


@pytest.fixture
def data_home(tmp_path, monkeypatch):
    """Point $XDG_DATA_HOME at a temporary directory."""
    home = tmp_path / "data"
    home.mkdir()
    monkeypatch.setenv("XDG_DATA_HOME", str(home))
    monkeypatch.delenv("TPM_CONFIG", raising=False)
    return home


@pytest.fixture
def fake_git(tmp_path, monkeypatch):
    """
    Factory placing a `git` shell script first on $PATH.

    The script receives the same arguments as the real git would.
    """
    bindir = tmp_path / "fakebin"
    monkeypatch.setenv("PATH", f"{bindir}{os.pathsep}{os.environ.get('PATH', '')}")

    def _make(body: str) -> Path:
        return write_script(bindir / "git", body)

    return _make


@pytest.fixture
def plugin_source(tmp_path):
    """
    Factory building a plugin source directory.

    The directory holds plugin.yaml (linux/amd64 selector) and test.sh.
    A repository of None records the source directory itself, so updates
    re-fetch from it.
    """

    def _make(
        name: str = "test_plugin",
        version: str = "0.1.0",
        repository: str | None = "github.com/aquasecurity/trivy-plugin-test",
        script: str = "exit 0",
        bin: str = "test.sh",
        directory: str | None = None,
    ) -> Path:
        source = tmp_path / "sources" / (directory or f"{name}-{version}")
        source.mkdir(parents=True, exist_ok=True)
        if repository is None:
            repository = str(source)
        (source / "plugin.yaml").write_text(
            LINUX_AMD64_MANIFEST.format(
                name=name, repository=repository, version=version, bin=bin
            )
        )
        write_script(source / "test.sh", script)
        return source

    return _make

"""
Tests for running plugins.

This test suite covers:
1. Successful runs with and without selectors
2. Platform mismatch, missing binary, non-zero exit, signal death
3. Argument and environment forwarding
4. Cancellation terminating the child process
"""

import asyncio
import os

import pytest

from tests.unit.conftest import process_gone, wait_for_pid, write_script
from tpm.plugin.errors import (
    CancellationError,
    ExecError,
    PlatformNotFoundError,
    PluginIOError,
)
from tpm.plugin.executor import RunOptions, run
from tpm.plugin.manifest import Platform, Plugin, Selector
from tpm.plugin.selector import Target
from tpm.plugin.store import PluginStore

pytestmark = pytest.mark.skipif(os.name == "nt", reason="test.sh can't be run on windows")

LINUX_AMD64 = Target("linux", "amd64")


def make_plugin(
    store: PluginStore,
    script: str | None = "exit 0",
    selector: Selector | None = Selector("linux", "amd64"),
    bin: str = "test.sh",
    name: str = "test_plugin",
) -> Plugin:
    if script is not None:
        write_script(store.path(name) / "test.sh", script)
    return Plugin(
        name=name,
        repository="github.com/aquasecurity/trivy-plugin-test",
        version="0.1.0",
        usage="test",
        description="test",
        platforms=[Platform(selector, "github.com/aquasecurity/trivy-plugin-test", bin)],
    )


@pytest.fixture
def store(tmp_path):
    return PluginStore(tmp_path / "plugins")


class TestRun:
    """Test plugin runs."""

    @pytest.mark.asyncio
    async def test_happy_path(self, store):
        await run(make_plugin(store), target=LINUX_AMD64, store=store)

    @pytest.mark.asyncio
    async def test_no_selector(self, store):
        await run(make_plugin(store, selector=None), store=store)

    @pytest.mark.asyncio
    async def test_no_matched_platform(self, store):
        plugin = make_plugin(store, selector=Selector("darwin", "amd64"))

        with pytest.raises(PlatformNotFoundError, match="platform not found"):
            await run(plugin, target=LINUX_AMD64, store=store)

    @pytest.mark.asyncio
    async def test_other_target_selected(self, store):
        """The same plugin fails for a darwin target."""
        plugin = make_plugin(store)

        await run(plugin, target=LINUX_AMD64, store=store)
        with pytest.raises(PlatformNotFoundError):
            await run(plugin, target=Target("darwin", "amd64"), store=store)

    @pytest.mark.asyncio
    async def test_no_execution_file(self, store):
        plugin = make_plugin(store, bin="nonexistence.sh")

        with pytest.raises(PluginIOError, match="(?i)no such file or directory"):
            await run(plugin, target=LINUX_AMD64, store=store)

    @pytest.mark.asyncio
    async def test_not_executable(self, store):
        plugin = make_plugin(store)
        (store.path(plugin.name) / "test.sh").chmod(0o644)

        with pytest.raises(PluginIOError, match="(?i)permission denied"):
            await run(plugin, target=LINUX_AMD64, store=store)

    @pytest.mark.asyncio
    async def test_exec_error(self, store):
        plugin = make_plugin(store, script="exit 1", name="error_plugin")

        with pytest.raises(ExecError, match="exit status 1") as excinfo:
            await run(plugin, target=LINUX_AMD64, store=store)
        assert excinfo.value.exit_code == 1

    @pytest.mark.asyncio
    async def test_signal_death(self, store):
        plugin = make_plugin(store, script="kill -KILL $$")

        with pytest.raises(ExecError, match="signal: SIGKILL") as excinfo:
            await run(plugin, target=LINUX_AMD64, store=store)
        assert excinfo.value.exit_code == 137

    @pytest.mark.asyncio
    async def test_args_and_env_forwarded(self, store, tmp_path):
        out = tmp_path / "out.txt"
        plugin = make_plugin(store, script='echo "$@" > "$OUT"\necho "$EXTRA" >> "$OUT"')
        options = RunOptions(args=["--format", "json"], env={"OUT": str(out), "EXTRA": "yes"})

        await run(plugin, options, target=LINUX_AMD64, store=store)

        assert out.read_text().splitlines() == ["--format json", "yes"]

    @pytest.mark.asyncio
    async def test_inherits_environment(self, store, tmp_path, monkeypatch):
        out = tmp_path / "out.txt"
        monkeypatch.setenv("TPM_TEST_INHERITED", "inherited")
        plugin = make_plugin(store, script=f'echo "$TPM_TEST_INHERITED" > "{out}"')

        await run(plugin, target=LINUX_AMD64, store=store)

        assert out.read_text().strip() == "inherited"

    @pytest.mark.asyncio
    async def test_bin_in_subdirectory(self, store):
        plugin = make_plugin(store, script=None, bin="./bin/run.sh")
        write_script(store.path(plugin.name) / "bin" / "run.sh", "exit 0")

        await run(plugin, target=LINUX_AMD64, store=store)


class TestCancellation:
    """Test cancellation of running plugins."""

    @pytest.mark.asyncio
    async def test_cancel_terminates_child(self, store, tmp_path):
        pidfile = tmp_path / "pid"
        plugin = make_plugin(store, script=f'echo $$ > "{pidfile}"\nexec sleep 30')

        task = asyncio.create_task(
            run(plugin, target=LINUX_AMD64, store=store, kill_grace_period=1.0)
        )
        pid = await wait_for_pid(pidfile)
        task.cancel()

        with pytest.raises(CancellationError):
            await task
        with pytest.raises(ProcessLookupError):
            os.kill(pid, 0)

    @pytest.mark.asyncio
    async def test_kill_after_grace_period(self, store, tmp_path):
        """A child ignoring SIGTERM is killed once the grace period ends."""
        pidfile = tmp_path / "pid"
        plugin = make_plugin(
            store,
            script=f'trap "" TERM\necho $$ > "{pidfile}"\nwhile true; do sleep 0.1; done',
        )

        task = asyncio.create_task(
            run(plugin, target=LINUX_AMD64, store=store, kill_grace_period=0.2)
        )
        pid = await wait_for_pid(pidfile)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
        with pytest.raises(ProcessLookupError):
            os.kill(pid, 0)

    @pytest.mark.asyncio
    async def test_second_cancel_kills_child(self, store, tmp_path):
        """Cancelling again during the grace period still kills the child."""
        pidfile = tmp_path / "pid"
        plugin = make_plugin(
            store,
            script=f'trap "" TERM\necho $$ > "{pidfile}"\nwhile true; do sleep 0.1; done',
        )

        task = asyncio.create_task(
            run(plugin, target=LINUX_AMD64, store=store, kill_grace_period=30.0)
        )
        pid = await wait_for_pid(pidfile)
        task.cancel()
        await asyncio.sleep(0.2)
        task.cancel()

        with pytest.raises(CancellationError):
            await task
        assert await process_gone(pid)

    @pytest.mark.asyncio
    async def test_timeout(self, store):
        plugin = make_plugin(store, script="exec sleep 30")

        with pytest.raises(TimeoutError):
            async with asyncio.timeout(0.5):
                await run(plugin, target=LINUX_AMD64, store=store, kill_grace_period=1.0)

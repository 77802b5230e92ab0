"""Tests for the run orchestrator."""

import os
from pathlib import Path

import pytest

from buildgate.constants import NEVER_BUILT
from buildgate.core.fingerprint import FingerprintError
from buildgate.core.hash_store import load_hash, save_hash
from buildgate.core.lock_manager import is_locked, try_acquire
from buildgate.core.orchestrator import RunOrchestrator
from buildgate.models import RunContext, RunState


@pytest.fixture
def orchestrator(run_ctx: RunContext, make_config) -> RunOrchestrator:
    """Orchestrator whose command appends to runs.log."""
    return RunOrchestrator(run_ctx, make_config())


@pytest.mark.asyncio
class TestRunScenario:
    """First run, unchanged second run, then a modification."""

    async def test_first_run_builds_and_records_hash(
        self, orchestrator: RunOrchestrator, run_ctx: RunContext, run_count
    ) -> None:
        """A never-built directory runs the command and saves the fingerprint."""
        result = await orchestrator.run()

        assert result.state == RunState.SUCCEEDED
        assert result.previous == NEVER_BUILT
        assert result.exit_code == 0
        assert result.hash_updated is True
        assert load_hash(run_ctx) == result.fingerprint
        assert run_count(run_ctx.base_dir) == 1

    async def test_second_run_skips(
        self, orchestrator: RunOrchestrator, run_ctx: RunContext, run_count
    ) -> None:
        """Running again without changes is a skip."""
        await orchestrator.run()
        result = await orchestrator.run()

        assert result.state == RunState.SKIPPED_UNCHANGED
        assert result.skipped
        assert result.get_exit_code() == 0
        assert run_count(run_ctx.base_dir) == 1
        assert not is_locked(run_ctx)

    async def test_modified_file_runs_again(
        self, orchestrator: RunOrchestrator, run_ctx: RunContext, run_count
    ) -> None:
        """Editing a watched file triggers another build."""
        first = await orchestrator.run()
        await orchestrator.run()
        (run_ctx.base_dir / "src" / "a.txt").write_text("hello!")
        third = await orchestrator.run()

        assert third.state == RunState.SUCCEEDED
        assert third.fingerprint != first.fingerprint
        assert run_count(run_ctx.base_dir) == 2

    async def test_state_returns_to_idle(self, orchestrator: RunOrchestrator) -> None:
        """The orchestrator is idle between runs."""
        await orchestrator.run()
        assert orchestrator.state == RunState.IDLE


@pytest.mark.asyncio
class TestRunFlags:
    """Tests for force, dry and command overrides."""

    async def test_dry_run_keeps_hash_stale(
        self, orchestrator: RunOrchestrator, run_ctx: RunContext, run_count
    ) -> None:
        """Dry run executes but does not persist; the next run still builds."""
        dry = await orchestrator.run(dry=True)
        assert dry.state == RunState.SUCCEEDED
        assert dry.hash_updated is False
        assert load_hash(run_ctx) == NEVER_BUILT

        again = await orchestrator.run()
        assert again.state == RunState.SUCCEEDED
        assert run_count(run_ctx.base_dir) == 2

    async def test_force_runs_when_unchanged(
        self, orchestrator: RunOrchestrator, run_ctx: RunContext, run_count
    ) -> None:
        """Force bypasses the comparison."""
        await orchestrator.run()
        forced = await orchestrator.run(force=True)
        assert forced.state == RunState.SUCCEEDED
        assert run_count(run_ctx.base_dir) == 2

    async def test_command_override(
        self, orchestrator: RunOrchestrator, run_ctx: RunContext, run_count, py_command
    ) -> None:
        """An explicit command replaces the configured one."""
        override = py_command("open('override.txt', 'w').write('ok')")
        await orchestrator.run(override)
        assert (run_ctx.base_dir / "override.txt").read_text() == "ok"
        assert run_count(run_ctx.base_dir) == 0

    async def test_command_runs_in_base_dir_holding_lock(
        self, run_ctx: RunContext, make_config, tmp_path: Path, py_command
    ) -> None:
        """The command's cwd is the base directory and the lock is held meanwhile."""
        check_lock = py_command(
            "import os; open('lock_seen.txt', 'w').write(str(os.path.exists('.buildgate.lock')))"
        )
        other = tmp_path / "elsewhere"
        other.mkdir()
        cwd = os.getcwd()
        os.chdir(other)
        try:
            await RunOrchestrator(run_ctx, make_config(command=check_lock)).run()
        finally:
            os.chdir(cwd)
        assert (run_ctx.base_dir / "lock_seen.txt").read_text() == "True"
        assert not is_locked(run_ctx)


@pytest.mark.asyncio
class TestRunFailures:
    """Tests for failure and lock handling."""

    async def test_failed_command_keeps_hash_and_releases_lock(
        self, run_ctx: RunContext, make_config, fail_run: str
    ) -> None:
        """Non-zero exit: FAILED, hash untouched, lock marker removed."""
        orchestrator = RunOrchestrator(run_ctx, make_config(command=fail_run))
        result = await orchestrator.run()

        assert result.state == RunState.FAILED
        assert result.exit_code == 1
        assert result.get_exit_code() == 1
        assert load_hash(run_ctx) == NEVER_BUILT
        assert not is_locked(run_ctx)

    async def test_failed_command_retried_next_run(
        self, run_ctx: RunContext, make_config, fail_run: str, run_count
    ) -> None:
        """Because the hash is not advanced, the next run retries."""
        orchestrator = RunOrchestrator(run_ctx, make_config(command=fail_run))
        await orchestrator.run()
        second = await orchestrator.run()
        assert second.state == RunState.FAILED
        assert run_count(run_ctx.base_dir) == 2

    async def test_missing_executable_fails(self, run_ctx: RunContext, make_config) -> None:
        """A command that cannot start is a failed run with status 127."""
        config = make_config(command="definitely-not-a-real-binary-xyz --flag")
        result = await RunOrchestrator(run_ctx, config).run()
        assert result.state == RunState.FAILED
        assert result.exit_code == 127
        assert not is_locked(run_ctx)

    @pytest.mark.parametrize("command", ['make "unterminated', "   "])
    async def test_unparsable_command_fails(
        self, run_ctx: RunContext, make_config, command: str
    ) -> None:
        """A command string that cannot be split is a failed run with status 2."""
        result = await RunOrchestrator(run_ctx, make_config(command=command)).run()
        assert result.state == RunState.FAILED
        assert result.exit_code == 2
        assert load_hash(run_ctx) == NEVER_BUILT
        assert not is_locked(run_ctx)

    async def test_locked_directory_is_skipped(
        self, orchestrator: RunOrchestrator, run_ctx: RunContext, run_count
    ) -> None:
        """An existing lock skips without running or touching hashes."""
        save_hash(run_ctx, "stale")
        try_acquire(run_ctx)

        result = await orchestrator.run()

        assert result.state == RunState.SKIPPED_LOCKED
        assert result.fingerprint is None
        assert load_hash(run_ctx) == "stale"
        assert run_count(run_ctx.base_dir) == 0
        assert is_locked(run_ctx)

    async def test_locked_directory_skipped_even_when_forced(
        self, orchestrator: RunOrchestrator, run_ctx: RunContext, run_count
    ) -> None:
        """Force does not override the lock."""
        try_acquire(run_ctx)
        result = await orchestrator.run(force=True)
        assert result.state == RunState.SKIPPED_LOCKED
        assert run_count(run_ctx.base_dir) == 0

    async def test_fingerprint_error_releases_lock(
        self, orchestrator: RunOrchestrator, run_ctx: RunContext, run_count
    ) -> None:
        """Unreadable files abort the run and free the lock."""
        os.symlink(run_ctx.base_dir / "nowhere", run_ctx.base_dir / "src" / "broken")
        with pytest.raises(FingerprintError):
            await orchestrator.run()
        assert not is_locked(run_ctx)
        assert run_count(run_ctx.base_dir) == 0


@pytest.mark.asyncio
class TestDetectChanges:
    """Tests for the read-only change query."""

    async def test_reports_changed_without_writing(
        self, orchestrator: RunOrchestrator, run_ctx: RunContext, run_count
    ) -> None:
        """Query does not persist, lock or run by default."""
        assert await orchestrator.detect_changes() is True
        assert await orchestrator.detect_changes() is True
        assert load_hash(run_ctx) == NEVER_BUILT
        assert run_count(run_ctx.base_dir) == 0
        assert not is_locked(run_ctx)

    async def test_update_persists_fingerprint(
        self, orchestrator: RunOrchestrator, run_ctx: RunContext
    ) -> None:
        """With update the next query reports unchanged."""
        assert await orchestrator.detect_changes(update=True) is True
        assert load_hash(run_ctx) != NEVER_BUILT
        assert await orchestrator.detect_changes() is False

    async def test_ignores_lock(self, orchestrator: RunOrchestrator, run_ctx: RunContext) -> None:
        """The query works while a build holds the lock."""
        try_acquire(run_ctx)
        assert await orchestrator.detect_changes() is True
        assert is_locked(run_ctx)

    async def test_unchanged_after_successful_run(self, orchestrator: RunOrchestrator) -> None:
        """A completed build leaves nothing to report."""
        await orchestrator.run()
        assert await orchestrator.detect_changes() is False

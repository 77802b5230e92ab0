"""Run orchestration: decide whether to build, build, record the result.

A run moves through these states:

    IDLE -> SKIPPED_LOCKED
    IDLE -> HASHING -> COMPARING -> SKIPPED_UNCHANGED
    IDLE -> HASHING -> COMPARING -> RUNNING -> SUCCEEDED | FAILED

The lock is taken before hashing so that two orchestrators on the same
base directory never fingerprint and build concurrently. It is released
on every exit path, including a failing build command.
"""

import logging

from ..config import BuildgateConfig
from ..constants import COMMAND_NOT_FOUND_EXIT, HASH_FILE, INVALID_COMMAND_EXIT
from ..models import RunContext, RunResult, RunState
from ..services import CommandError, CommandSyntaxError, run_command
from . import lock_manager
from .fingerprint import compute_fingerprint
from .hash_store import load_hash, save_hash

logger = logging.getLogger(__name__)


class RunOrchestrator:
    """Gate the build command of one base directory behind a fingerprint check.

    Args:
        ctx: Run context with the base directory and log label
        config: Loaded configuration for that directory
    """

    def __init__(self, ctx: RunContext, config: BuildgateConfig) -> None:
        self.ctx = ctx
        self.config = config
        self.state = RunState.IDLE

    def _transition(self, state: RunState) -> None:
        logger.debug(f"[{self.ctx.label}] {self.state.value} -> {state.value}")
        self.state = state

    async def _fingerprint(self) -> tuple[str, str]:
        self._transition(RunState.HASHING)
        current = await compute_fingerprint(self.ctx, self.config.watch)
        self._transition(RunState.COMPARING)
        return current, load_hash(self.ctx)

    async def detect_changes(self, update: bool = False) -> bool:
        """Compare the current fingerprint with the hash record.

        Read-only unless update is set: no lock is taken and no command runs.

        Args:
            update: Persist the current fingerprint regardless of the result

        Returns:
            True if the watched files changed since the last recorded build

        Raises:
            FingerprintError: If a watched file is unreadable
        """
        try:
            current, previous = await self._fingerprint()
        finally:
            self.state = RunState.IDLE
        changed = current != previous
        logger.info(f"[{self.ctx.label}] {'changed' if changed else 'unchanged'} {current}")
        if update:
            save_hash(self.ctx, current)
            logger.info(f"[{self.ctx.label}] update {HASH_FILE} {current}")
        return changed

    async def run(
        self,
        command: str | None = None,
        force: bool = False,
        dry: bool = False,
    ) -> RunResult:
        """Run the build command if the watched files changed.

        Args:
            command: Override for the configured build command
            force: Run even if the fingerprint is unchanged
            dry: Run the command but leave the hash record untouched

        Returns:
            RunResult describing the decision and outcome

        Raises:
            FingerprintError: If a watched file is unreadable (lock is released)
        """
        try:
            with lock_manager.hold_lock(self.ctx) as held:
                if not held:
                    logger.info(f"[{self.ctx.label}] locked, skip {self.ctx.base_dir}")
                    self._transition(RunState.SKIPPED_LOCKED)
                    return RunResult(state=self.state)
                return await self._run_locked(command or self.config.command, force, dry)
        finally:
            self.state = RunState.IDLE

    async def _run_locked(self, command: str, force: bool, dry: bool) -> RunResult:
        current, previous = await self._fingerprint()

        if current == previous and not force:
            logger.info(f"[{self.ctx.label}] skip {self.ctx.base_dir}")
            self._transition(RunState.SKIPPED_UNCHANGED)
            return RunResult(state=self.state, fingerprint=current, previous=previous)

        if current == previous:
            logger.info(f"[{self.ctx.label}] forced run {current}")
        else:
            logger.info(f"[{self.ctx.label}] changes detected {current}")

        self._transition(RunState.RUNNING)
        logger.info(f"[{self.ctx.label}] run: {command}")
        try:
            exit_code = await run_command(command, self.ctx.base_dir)
        except CommandSyntaxError as e:
            logger.error(f"[{self.ctx.label}] {e}")
            exit_code = INVALID_COMMAND_EXIT
        except CommandError as e:
            logger.error(f"[{self.ctx.label}] {e}")
            exit_code = COMMAND_NOT_FOUND_EXIT

        if exit_code != 0:
            logger.error(f"[{self.ctx.label}] command failed with exit code {exit_code}")
            self._transition(RunState.FAILED)
            return RunResult(
                state=self.state, fingerprint=current, previous=previous, exit_code=exit_code
            )

        hash_updated = False
        if dry:
            logger.info(f"[{self.ctx.label}] run without hash update {current}")
        else:
            save_hash(self.ctx, current)
            hash_updated = True
            logger.info(f"[{self.ctx.label}] update {HASH_FILE} {current}")

        self._transition(RunState.SUCCEEDED)
        return RunResult(
            state=self.state,
            fingerprint=current,
            previous=previous,
            exit_code=exit_code,
            hash_updated=hash_updated,
        )

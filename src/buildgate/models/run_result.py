"""Run result model for orchestrator decisions."""

from enum import Enum

from pydantic import BaseModel, Field


class RunState(str, Enum):
    """States of a single orchestrated run."""

    IDLE = "idle"
    SKIPPED_LOCKED = "skipped_locked"
    HASHING = "hashing"
    COMPARING = "comparing"
    SKIPPED_UNCHANGED = "skipped_unchanged"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class RunResult(BaseModel):
    """Outcome of one orchestrated run.

    Attributes:
        state: Terminal state reached by the run.
        fingerprint: Fingerprint computed for this run, if hashing happened.
        previous: Hash record loaded before comparison, if loaded.
        exit_code: Exit status of the build command, if it was spawned.
        hash_updated: True if the hash record was persisted.
    """

    state: RunState = Field(description="Terminal run state")
    fingerprint: str | None = Field(default=None, description="Current fingerprint")
    previous: str | None = Field(default=None, description="Last recorded fingerprint")
    exit_code: int | None = Field(default=None, description="Build command exit status")
    hash_updated: bool = Field(default=False, description="True if hash record was saved")

    @property
    def skipped(self) -> bool:
        return self.state in (RunState.SKIPPED_LOCKED, RunState.SKIPPED_UNCHANGED)

    @property
    def failed(self) -> bool:
        return self.state == RunState.FAILED

    def get_exit_code(self) -> int:
        """Return the process exit status this run should map to."""
        if self.failed:
            return self.exit_code or 1
        return 0

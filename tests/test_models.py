"""Tests for buildgate models."""

from pathlib import Path

import pytest

from buildgate.models import RunContext, RunResult, RunState


@pytest.mark.unit
class TestRunContext:
    """Tests for RunContext."""

    def test_state_paths_under_base_dir(self, tmp_path: Path) -> None:
        """Hash and lock files live in the base directory."""
        ctx = RunContext.for_directory(tmp_path)
        assert ctx.hash_path == tmp_path.resolve() / ".buildgate-hash"
        assert ctx.lock_path == tmp_path.resolve() / ".buildgate.lock"

    def test_default_label_is_directory_name(self, tmp_path: Path) -> None:
        """Without a label the directory name is used."""
        (tmp_path / "pkg").mkdir()
        assert RunContext.for_directory(tmp_path / "pkg").label == "pkg"

    def test_explicit_label(self, tmp_path: Path) -> None:
        """An explicit label wins."""
        assert RunContext.for_directory(tmp_path, label="web").label == "web"


@pytest.mark.unit
class TestRunResult:
    """Tests for RunResult."""

    @pytest.mark.parametrize(
        ("state", "exit_code", "expected"),
        [
            (RunState.SUCCEEDED, 0, 0),
            (RunState.SKIPPED_UNCHANGED, None, 0),
            (RunState.SKIPPED_LOCKED, None, 0),
            (RunState.FAILED, 2, 2),
            (RunState.FAILED, None, 1),
        ],
    )
    def test_get_exit_code(self, state: RunState, exit_code: int | None, expected: int) -> None:
        """Only failed runs map to a non-zero status."""
        assert RunResult(state=state, exit_code=exit_code).get_exit_code() == expected

    def test_skipped(self) -> None:
        """Both skip states count as skipped."""
        assert RunResult(state=RunState.SKIPPED_LOCKED).skipped
        assert RunResult(state=RunState.SKIPPED_UNCHANGED).skipped
        assert not RunResult(state=RunState.SUCCEEDED).skipped

    def test_serializes_state_value(self) -> None:
        """State serializes to its string value."""
        data = RunResult(state=RunState.FAILED, exit_code=1).model_dump(mode="json")
        assert data["state"] == "failed"

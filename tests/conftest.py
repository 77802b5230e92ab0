"""Shared test fixtures for buildgate tests."""

import json
import shlex
import sys
from collections.abc import Callable
from pathlib import Path

import pytest
from typer.testing import CliRunner

from buildgate.config import BuildgateConfig
from buildgate.models import RunContext


def _py_command(code: str) -> str:
    return shlex.join([sys.executable, "-c", code])


# Appends one line per execution so tests can count runs
RECORD_RUN = _py_command("open('runs.log', 'a').write('run\\n')")
FAIL_RUN = _py_command("import sys; open('runs.log', 'a').write('run\\n'); sys.exit(1)")


def _run_count(base_dir: Path) -> int:
    log = base_dir / "runs.log"
    if not log.exists():
        return 0
    return len(log.read_text().splitlines())


@pytest.fixture
def py_command() -> Callable[[str], str]:
    """Build a command string running a Python snippet with this interpreter."""
    return _py_command


@pytest.fixture
def fail_run() -> str:
    """Command that records a run and exits 1."""
    return FAIL_RUN


@pytest.fixture
def run_count() -> Callable[[Path], int]:
    """Count how often the recording commands executed in a directory."""
    return _run_count


@pytest.fixture
def runner() -> CliRunner:
    """Create CLI test runner."""
    return CliRunner()


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """Create a project directory with src/a.txt containing 'hello'."""
    base = tmp_path / "project"
    (base / "src").mkdir(parents=True)
    (base / "src" / "a.txt").write_text("hello")
    return base


@pytest.fixture
def run_ctx(project: Path) -> RunContext:
    """Run context for the project directory."""
    return RunContext.for_directory(project, label="test")


@pytest.fixture
def make_config() -> Callable[..., BuildgateConfig]:
    """Factory for configs that record runs by default."""

    def _make(command: str = RECORD_RUN, watch: list[str] | None = None, **kwargs):
        return BuildgateConfig(command=command, watch=watch or ["src/**"], **kwargs)

    return _make


@pytest.fixture
def write_config() -> Callable[..., Path]:
    """Write a .buildgate.json into a directory."""

    def _write(base_dir: Path, command: str = RECORD_RUN, watch=None, **extra) -> Path:
        data = {"command": command, "watch": watch or ["src/**"], **extra}
        path = base_dir / ".buildgate.json"
        path.write_text(json.dumps(data, indent=2))
        return path

    return _write

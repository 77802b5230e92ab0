"""Workspace supervisor: one worker process per configured workspace.

Each worker runs ``python -m buildgate.worker`` against its own base
directory, so every workspace keeps its own hash and lock records.
Workers inherit the parent's standard streams. When the supervisor is
cancelled or interrupted every live worker is terminated.
"""

import asyncio
import logging
import sys
from dataclasses import dataclass, field
from pathlib import Path

from ..models import RunContext
from ..services import terminate_process

logger = logging.getLogger(__name__)


class WorkspaceError(Exception):
    """A configured workspace cannot be supervised."""


@dataclass(frozen=True)
class WorkerSpec:
    """Argument contract between the supervisor and one worker process."""

    base_dir: Path
    label: str
    watch: bool = False
    force: bool = False
    dry: bool = False
    verbosity: int = 0
    quiet: bool = False
    no_color: bool = False
    python: str = field(default=sys.executable)

    def to_argv(self) -> list[str]:
        """Build the worker command line."""
        argv = [
            self.python,
            "-m",
            "buildgate.worker",
            "--base-dir",
            str(self.base_dir),
            "--label",
            self.label,
        ]
        if self.watch:
            argv.append("--watch")
        if self.force:
            argv.append("--force")
        if self.dry:
            argv.append("--dry")
        if self.quiet:
            argv.append("--quiet")
        if self.no_color:
            argv.append("--no-color")
        argv.extend(["--verbose"] * self.verbosity)
        return argv


class WorkspaceSupervisor:
    """Fan out to workspace workers and manage their combined lifecycle.

    Args:
        ctx: Context of the parent base directory
        workspaces: Workspace paths relative to ctx.base_dir
        watch: Forward watch mode to every worker
        force: Forward force to every worker
        dry: Forward dry-run to every worker
        verbosity: Forwarded -v count
        quiet: Forward quiet logging
        no_color: Forward disabled colors
    """

    def __init__(
        self,
        ctx: RunContext,
        workspaces: list[str],
        watch: bool = False,
        force: bool = False,
        dry: bool = False,
        verbosity: int = 0,
        quiet: bool = False,
        no_color: bool = False,
    ) -> None:
        self.ctx = ctx
        self.workspaces = workspaces
        self.watch = watch
        self.force = force
        self.dry = dry
        self.verbosity = verbosity
        self.quiet = quiet
        self.no_color = no_color
        self.processes: dict[str, asyncio.subprocess.Process] = {}

    def worker_specs(self) -> list[WorkerSpec]:
        """Resolve workspaces into worker specs.

        Raises:
            WorkspaceError: If a workspace directory does not exist or is listed twice
        """
        specs = []
        seen: dict[Path, str] = {}
        for workspace in self.workspaces:
            base_dir = (self.ctx.base_dir / workspace).resolve()
            if not base_dir.is_dir():
                raise WorkspaceError(f"Workspace not found: {workspace} ({base_dir})")
            if base_dir in seen:
                raise WorkspaceError(
                    f"Workspace listed twice: {workspace} and {seen[base_dir]} ({base_dir})"
                )
            seen[base_dir] = workspace
            specs.append(
                WorkerSpec(
                    base_dir=base_dir,
                    label=workspace,
                    watch=self.watch,
                    force=self.force,
                    dry=self.dry,
                    verbosity=self.verbosity,
                    quiet=self.quiet,
                    no_color=self.no_color,
                )
            )
        return specs

    async def _spawn(self, spec: WorkerSpec) -> asyncio.subprocess.Process:
        return await asyncio.create_subprocess_exec(*spec.to_argv())

    async def supervise(self) -> int:
        """Start every worker and wait for all of them.

        Returns:
            First non-zero worker exit status in workspace order, else 0

        Raises:
            WorkspaceError: If a workspace is missing (before any worker starts)
        """
        specs = self.worker_specs()
        try:
            for spec in specs:
                proc = await self._spawn(spec)
                self.processes[spec.label] = proc
                logger.info(f"[{self.ctx.label}] started {spec.label} (pid {proc.pid})")

            codes = await asyncio.gather(*(p.wait() for p in self.processes.values()))
        finally:
            await self.shutdown()

        for label, code in zip(self.processes, codes, strict=True):
            if code != 0:
                logger.error(f"[{self.ctx.label}] {label} exited with {code}")
                return code
        return 0

    async def shutdown(self) -> None:
        """Terminate every worker that is still running."""
        live = [p for p in self.processes.values() if p.returncode is None]
        if not live:
            return
        logger.info(f"[{self.ctx.label}] stopping {len(live)} workspace process(es)")
        await asyncio.gather(*(terminate_process(p) for p in live))

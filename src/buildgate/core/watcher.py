"""Debounced watch mode.

A watchdog observer thread reports filesystem events; matching events
are handed to the asyncio loop, where each one resets a pending timer.
When the timer expires a run is requested. A single runner task executes
runs one at a time, so requests made during a run collapse into one
follow-up run.
"""

import asyncio
import fnmatch
import functools
import logging
import os
from pathlib import Path

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from ..constants import CONFIG_FILE, HASH_FILE, LOCK_FILE
from . import lock_manager
from .fingerprint import FingerprintError
from .orchestrator import RunOrchestrator

logger = logging.getLogger(__name__)

# Written by buildgate itself; never a reason to rebuild
STATE_FILES = frozenset({CONFIG_FILE, HASH_FILE, LOCK_FILE})


@functools.lru_cache(maxsize=256)
def pattern_variants(pattern: str) -> frozenset[str]:
    """Expand each ``**/`` in pattern to both itself and nothing.

    In glob ``**/`` also matches zero directories, while fnmatch needs
    at least one ``/`` there. ``src/**/*.ts`` yields ``src/**/*.ts`` and
    ``src/*.ts``.
    """
    head, *rest = pattern.split("**/")
    variants = {head}
    for part in rest:
        variants = {v + "**/" + part for v in variants} | {v + part for v in variants}
    return frozenset(variants)


def matches_patterns(rel_path: str, patterns: list[str]) -> bool:
    """Return True if rel_path matches any watch pattern.

    Uses fnmatch semantics where ``*`` also crosses ``/``, so matching is
    at least as broad as glob expansion. The fingerprint check decides
    whether a run actually builds.
    """
    if rel_path in STATE_FILES:
        return False
    return any(
        fnmatch.fnmatchcase(rel_path, variant)
        for pattern in patterns
        for variant in pattern_variants(pattern)
    )


class _ChangeHandler(FileSystemEventHandler):
    """Forward matching watchdog events to the scheduler's loop."""

    def __init__(self, scheduler: "WatchScheduler", loop: asyncio.AbstractEventLoop) -> None:
        self.scheduler = scheduler
        self.loop = loop

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.event_type in ("opened", "closed_no_write"):
            return
        paths = [event.src_path, getattr(event, "dest_path", "")]
        for raw in paths:
            if not raw:
                continue
            rel_path = self.scheduler.relative_path(os.fsdecode(raw))
            if rel_path is not None and matches_patterns(rel_path, self.scheduler.patterns):
                self.loop.call_soon_threadsafe(self.scheduler.notify, rel_path)
                return


class WatchScheduler:
    """Trigger the orchestrator after filesystem activity settles.

    Args:
        orchestrator: Orchestrator for the watched base directory
        debounce: Quiescence window in seconds (defaults to config.debounce_ms)
        command: Override for the configured build command
        force: Passed to every run
        dry: Passed to every run
    """

    def __init__(
        self,
        orchestrator: RunOrchestrator,
        debounce: float | None = None,
        command: str | None = None,
        force: bool = False,
        dry: bool = False,
    ) -> None:
        self.orchestrator = orchestrator
        self.ctx = orchestrator.ctx
        self.patterns = list(orchestrator.config.watch)
        self.debounce = (
            debounce if debounce is not None else orchestrator.config.debounce_ms / 1000.0
        )
        self.command = command
        self.force = force
        self.dry = dry
        self.runs_started = 0
        self._timer: asyncio.TimerHandle | None = None
        self._run_requested = asyncio.Event()

    def relative_path(self, path: str) -> str | None:
        """Return path relative to the base directory, or None if outside it."""
        try:
            return Path(path).resolve().relative_to(self.ctx.base_dir).as_posix()
        except ValueError:
            return None

    def notify(self, rel_path: str = "") -> None:
        """Record a change notification and restart the quiescence window."""
        logger.debug(f"[{self.ctx.label}] change: {rel_path}")
        if self._timer is not None:
            self._timer.cancel()
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self.debounce, self._window_elapsed)

    @property
    def pending(self) -> bool:
        """True while a debounce timer is counting down."""
        return self._timer is not None

    def _window_elapsed(self) -> None:
        self._timer = None
        self.request_run()

    def request_run(self) -> None:
        """Queue a run. Multiple requests before the runner wakes coalesce."""
        self._run_requested.set()

    async def _run_once(self) -> None:
        self.runs_started += 1
        try:
            result = await self.orchestrator.run(self.command, force=self.force, dry=self.dry)
        except FingerprintError as e:
            logger.error(f"[{self.ctx.label}] {e}")
            return
        if result.failed:
            logger.warning(f"[{self.ctx.label}] build failed, still watching")

    async def run_loop(self) -> None:
        """Execute requested runs one at a time until cancelled."""
        while True:
            await self._run_requested.wait()
            self._run_requested.clear()
            await self._run_once()

    def _start_observer(self) -> Observer:
        observer = Observer()
        handler = _ChangeHandler(self, asyncio.get_running_loop())
        observer.schedule(handler, str(self.ctx.base_dir), recursive=True)
        observer.start()
        return observer

    async def watch(self, initial_run: bool = True) -> None:
        """Watch until cancelled or interrupted.

        Args:
            initial_run: Run once at startup before waiting for changes
        """
        observer = self._start_observer()
        logger.info(
            f"[{self.ctx.label}] watching {', '.join(self.patterns) or '(nothing)'} "
            f"in {self.ctx.base_dir}"
        )
        if initial_run:
            self.request_run()
        try:
            await self.run_loop()
        finally:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            observer.stop()
            await asyncio.to_thread(observer.join)
            lock_manager.release(self.ctx)
            logger.info(f"[{self.ctx.label}] stopped watching")

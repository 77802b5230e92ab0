"""Single-directory entry point shared by the CLI and workspace workers."""

import asyncio
import contextlib
import logging
import signal
from collections.abc import Coroutine
from dataclasses import dataclass
from typing import Any

from .config import BuildgateConfig
from .core.orchestrator import RunOrchestrator
from .core.watcher import WatchScheduler
from .models import RunContext

logger = logging.getLogger(__name__)

# Conventional shell exit statuses for signal termination
EXIT_SIGINT = 130
EXIT_SIGTERM = 143


@dataclass(frozen=True)
class RunOptions:
    """Per-invocation flags for the run and watch modes."""

    command: str | None = None
    force: bool = False
    dry: bool = False
    watch: bool = False


async def run_directory(ctx: RunContext, config: BuildgateConfig, options: RunOptions) -> int:
    """Run once, or watch, for one base directory.

    Returns:
        Process exit status: the build command's status on failure, else 0

    Raises:
        FingerprintError: If a watched file is unreadable (run-once mode)
    """
    orchestrator = RunOrchestrator(ctx, config)
    if options.watch:
        scheduler = WatchScheduler(
            orchestrator, command=options.command, force=options.force, dry=options.dry
        )
        await scheduler.watch()
        return 0

    result = await orchestrator.run(options.command, force=options.force, dry=options.dry)
    return result.get_exit_code()


async def _cancel_on_sigterm(coro: Coroutine[Any, Any, int]) -> int:
    task = asyncio.current_task()
    loop = asyncio.get_running_loop()
    if task is not None:
        # Unsupported on Windows loops and outside the main thread
        with contextlib.suppress(NotImplementedError, ValueError, RuntimeError):
            loop.add_signal_handler(signal.SIGTERM, task.cancel)
    return await coro


def run_until_signalled(coro: Coroutine[Any, Any, int]) -> int:
    """Run coro on a fresh event loop, mapping SIGINT/SIGTERM to exit statuses.

    Cancellation unwinds every ``finally`` in the coroutine, so locks are
    released and child processes terminated before this returns.
    """
    try:
        return asyncio.run(_cancel_on_sigterm(coro))
    except KeyboardInterrupt:
        logger.info("Interrupted")
        return EXIT_SIGINT
    except asyncio.CancelledError:
        logger.info("Terminated")
        return EXIT_SIGTERM

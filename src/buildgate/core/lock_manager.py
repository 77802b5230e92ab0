"""Advisory lock guarding build command execution.

Presence of the lock file means a build command is running for that
base directory. The file holds a millisecond timestamp for diagnostics
only. Creation uses O_CREAT | O_EXCL, but the lock stays advisory: it is
not held by the kernel and a crashed process leaves it behind.
"""

import logging
import os
import time
from collections.abc import Iterator
from contextlib import contextmanager

from ..models import RunContext

logger = logging.getLogger(__name__)


def is_locked(ctx: RunContext) -> bool:
    """Return True if a lock marker exists for the base directory."""
    return ctx.lock_path.exists()


def lock_timestamp(ctx: RunContext) -> int | None:
    """Read the lock creation time in epoch milliseconds, if readable."""
    try:
        return int(ctx.lock_path.read_text(encoding="utf-8").strip())
    except (OSError, ValueError):
        return None


def try_acquire(ctx: RunContext) -> bool:
    """Attempt to create the lock marker.

    Returns:
        True if the lock was created, False if it already exists
    """
    try:
        fd = os.open(str(ctx.lock_path), os.O_CREAT | os.O_EXCL | os.O_WRONLY)
    except FileExistsError:
        logger.debug(f"[{ctx.label}] lock already present at {ctx.lock_path}")
        return False
    try:
        os.write(fd, str(time.time_ns() // 1_000_000).encode())
    finally:
        os.close(fd)
    return True


def release(ctx: RunContext) -> None:
    """Remove the lock marker if present."""
    ctx.lock_path.unlink(missing_ok=True)


@contextmanager
def hold_lock(ctx: RunContext) -> Iterator[bool]:
    """Acquire the lock for the duration of the block.

    Yields whether the lock was acquired. When it was, the marker is
    removed on every exit path, including exceptions and cancellation.
    """
    held = try_acquire(ctx)
    try:
        yield held
    finally:
        if held:
            release(ctx)

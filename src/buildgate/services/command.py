"""Build command runner for buildgate."""

import asyncio
import logging
import shlex
from pathlib import Path

from ..constants import WORKER_SHUTDOWN_TIMEOUT

logger = logging.getLogger(__name__)


class CommandError(Exception):
    """Build command could not be started."""


class CommandSyntaxError(CommandError):
    """Build command string is empty or badly quoted."""


def parse_command(command: str) -> list[str]:
    """Split a command string into argv.

    Raises:
        CommandSyntaxError: If the command is empty or has invalid quoting
    """
    try:
        args = shlex.split(command)
    except ValueError as e:
        raise CommandSyntaxError(f"Invalid command syntax: {e}") from e
    if not args:
        raise CommandSyntaxError("Empty build command")
    return args


async def terminate_process(
    proc: asyncio.subprocess.Process, timeout: float = WORKER_SHUTDOWN_TIMEOUT
) -> None:
    """Send SIGTERM, then SIGKILL if the process outlives timeout."""
    if proc.returncode is not None:
        return
    proc.terminate()
    try:
        await asyncio.wait_for(proc.wait(), timeout=timeout)
    except TimeoutError:
        logger.warning(f"Process {proc.pid} did not terminate after {timeout}s, killing")
        proc.kill()
        await proc.wait()


async def run_command(command: str, cwd: Path) -> int:
    """Run command in cwd with inherited stdin/stdout/stderr.

    Args:
        command: Shell-style command string (parsed with shlex, not a shell)
        cwd: Working directory

    Returns:
        Exit status of the command

    Raises:
        CommandError: If the command cannot be parsed or executed
    """
    args = parse_command(command)
    try:
        proc = await asyncio.create_subprocess_exec(*args, cwd=cwd)
    except FileNotFoundError:
        raise CommandError(f"Command not found: {args[0]}") from None
    except PermissionError:
        raise CommandError(f"Command not executable: {args[0]}") from None

    try:
        return await proc.wait()
    except asyncio.CancelledError:
        logger.warning(f"Interrupted, stopping build command (pid {proc.pid})")
        await terminate_process(proc)
        raise

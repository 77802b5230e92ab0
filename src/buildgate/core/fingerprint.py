"""Content fingerprinting for watched files.

Expands the configured glob patterns against the base directory, hashes
every matched file and folds the per-file digests into one fingerprint.
Files are read concurrently; lines are assembled in expansion order.
"""

import asyncio
import glob
import hashlib
import logging
import os
from pathlib import Path

from ..models import RunContext

logger = logging.getLogger(__name__)


class FingerprintError(Exception):
    """A watched file could not be hashed."""


def digest_bytes(data: bytes) -> str:
    """Return the hex digest used for file contents and the final fingerprint."""
    return hashlib.md5(data, usedforsecurity=False).hexdigest()


def expand_pattern(base_dir: Path, pattern: str) -> list[str]:
    """Expand one glob pattern to relative file paths.

    Directories are excluded. Hidden files only match patterns that name
    them explicitly. Results are sorted so expansion order does not depend
    on directory listing order.

    Args:
        base_dir: Directory the pattern is resolved against
        pattern: Glob pattern, ``**`` matches across directories

    Returns:
        Sorted POSIX-style paths relative to base_dir
    """
    matches = glob.glob(pattern, root_dir=base_dir, recursive=True)
    # Before 3.13 "missing/**" yields "missing/" for an absent directory.
    # lexists keeps broken symlinks so they fail as unreadable.
    files = [
        Path(m).as_posix()
        for m in matches
        if not m.endswith((os.sep, "/"))
        and os.path.lexists(base_dir / m)
        and not (base_dir / m).is_dir()
    ]
    return sorted(files)


async def hash_file(base_dir: Path, rel_path: str) -> str:
    """Hash the full byte content of one file.

    Raises:
        FingerprintError: If the file cannot be read
    """
    try:
        content = await asyncio.to_thread((base_dir / rel_path).read_bytes)
    except OSError as e:
        raise FingerprintError(f"Cannot read watched file {rel_path}: {e}") from e
    return digest_bytes(content)


async def collect_file_hashes(ctx: RunContext, patterns: list[str]) -> list[tuple[str, str]]:
    """Return ``(relative_path, digest)`` pairs in pattern-then-expansion order."""
    expanded = await asyncio.gather(
        *(asyncio.to_thread(expand_pattern, ctx.base_dir, p) for p in patterns)
    )
    paths = [path for files in expanded for path in files]
    for pattern, files in zip(patterns, expanded, strict=True):
        logger.debug(f"[{ctx.label}] {pattern}: {len(files)} file(s)")

    # gather preserves argument order regardless of completion order
    digests = await asyncio.gather(*(hash_file(ctx.base_dir, p) for p in paths))
    return list(zip(paths, digests, strict=True))


def fold_fingerprint(entries: list[tuple[str, str]]) -> str:
    """Fold per-file digests into a single fingerprint."""
    view = "\n".join(f"{path}:{digest}" for path, digest in entries)
    return digest_bytes(view.encode("utf-8"))


async def compute_fingerprint(ctx: RunContext, patterns: list[str]) -> str:
    """Compute the fingerprint of all files matched by patterns.

    Args:
        ctx: Run context supplying the base directory
        patterns: Ordered glob patterns

    Returns:
        Hex digest summarizing every matched file's path and content

    Raises:
        FingerprintError: If any matched file is unreadable
    """
    entries = await collect_file_hashes(ctx, patterns)
    fingerprint = fold_fingerprint(entries)
    logger.debug(f"[{ctx.label}] fingerprint {fingerprint} over {len(entries)} file(s)")
    return fingerprint

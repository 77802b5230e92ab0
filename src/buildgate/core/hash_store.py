"""Persisted hash record for the last successful build."""

import logging

from ..constants import NEVER_BUILT
from ..models import RunContext

logger = logging.getLogger(__name__)


def load_hash(ctx: RunContext) -> str:
    """Load the last recorded fingerprint.

    Returns:
        Stored fingerprint, or NEVER_BUILT if no record exists
    """
    try:
        return ctx.hash_path.read_text(encoding="utf-8").strip()
    except FileNotFoundError:
        logger.debug(f"[{ctx.label}] no hash record at {ctx.hash_path}")
        return NEVER_BUILT


def save_hash(ctx: RunContext, fingerprint: str) -> None:
    """Overwrite the hash record with fingerprint (no trailing newline)."""
    ctx.hash_path.write_text(fingerprint, encoding="utf-8")


def reset_hash(ctx: RunContext) -> None:
    """Mark the base directory as never built."""
    save_hash(ctx, NEVER_BUILT)

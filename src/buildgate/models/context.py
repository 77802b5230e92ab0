"""Run context threaded through every component call."""

from dataclasses import dataclass
from pathlib import Path

from ..constants import HASH_FILE, LOCK_FILE


@dataclass(frozen=True)
class RunContext:
    """Base directory and log label for one buildgate instance.

    State files are always resolved against ``base_dir``, so two contexts
    with different base directories never share a hash or lock record.
    """

    base_dir: Path
    label: str = "buildgate"

    @classmethod
    def for_directory(cls, base_dir: Path, label: str | None = None) -> "RunContext":
        """Build a context for base_dir, labelled by its directory name by default."""
        resolved = base_dir.resolve()
        return cls(base_dir=resolved, label=label or resolved.name or str(resolved))

    @property
    def hash_path(self) -> Path:
        return self.base_dir / HASH_FILE

    @property
    def lock_path(self) -> Path:
        return self.base_dir / LOCK_FILE

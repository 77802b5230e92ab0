"""Core change-detection and run orchestration for buildgate.

- fingerprint: Content fingerprinting of watched files
- hash_store: Last recorded fingerprint
- lock_manager: Advisory lock around build command execution
- orchestrator: Skip/run decision and build execution
- watcher: Debounced watch mode
- supervisor: One worker process per workspace
"""

from .fingerprint import FingerprintError, compute_fingerprint
from .hash_store import load_hash, reset_hash, save_hash
from .lock_manager import hold_lock, is_locked, release, try_acquire
from .orchestrator import RunOrchestrator
from .supervisor import WorkerSpec, WorkspaceError, WorkspaceSupervisor
from .watcher import WatchScheduler

__all__ = [
    "FingerprintError",
    "RunOrchestrator",
    "WatchScheduler",
    "WorkerSpec",
    "WorkspaceError",
    "WorkspaceSupervisor",
    "compute_fingerprint",
    "hold_lock",
    "is_locked",
    "load_hash",
    "release",
    "reset_hash",
    "save_hash",
    "try_acquire",
]

"""Data models for buildgate runs.

- Run context carrying base directory and log label (RunContext)
- Orchestrator states and outcomes (RunState, RunResult)
"""

from .context import RunContext
from .run_result import RunResult, RunState

__all__ = [
    "RunContext",
    "RunResult",
    "RunState",
]

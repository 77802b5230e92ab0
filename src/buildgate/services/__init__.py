"""External process integrations for buildgate.

- command: Running the configured build command
"""

from .command import (
    CommandError,
    CommandSyntaxError,
    parse_command,
    run_command,
    terminate_process,
)

__all__ = [
    "CommandError",
    "CommandSyntaxError",
    "parse_command",
    "run_command",
    "terminate_process",
]

"""Constants for buildgate."""

# State files, resolved against the base directory
CONFIG_FILE = ".buildgate.json"
HASH_FILE = ".buildgate-hash"
LOCK_FILE = ".buildgate.lock"

# Hash record contents before any build has completed
NEVER_BUILT = "<init>"

# Watch mode quiescence window (milliseconds)
DEFAULT_DEBOUNCE_MS = 300

# Grace period before a workspace worker is killed (seconds)
WORKER_SHUTDOWN_TIMEOUT = 5.0

# Exit status reported when the build command cannot be started
COMMAND_NOT_FOUND_EXIT = 127

# Exit status reported when the build command string cannot be parsed
INVALID_COMMAND_EXIT = 2

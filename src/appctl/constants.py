"""Constants for appctl."""

DEFAULT_CONFIG_FILE = "appctl.toml"

# Settle delays (seconds)
SETTLE_DELAY = 3.0  # after spawning, before re-checking presence
RESTART_DELAY = 2.0  # between stop and start on restart

# Subprocess timeouts (seconds)
INIT_TOOL_CHECK_TIMEOUT = 10

# Timestamp format used in log file names
LOG_TIMESTAMP_FORMAT = "%Y%m%d-%H%M%S"

# Exit codes
EXIT_ALREADY_RUNNING = 1
EXIT_NOT_RUNNING = 3  # status only
EXIT_START_FAILED = 4
EXIT_STOP_FAILED = 5
EXIT_CONFIG_ERROR = 6
EXIT_LOCK_HELD = 10
EXIT_MISSING_TOOL = 11
EXIT_BUILD_FAILED = 12

"""External service integrations for appctl.

This package provides interfaces to the host system:
- commands: External command execution and output post-processing
- filesystem: Log paths and directory replacement
"""

from .commands import CommandError, demote_errors, error_lines, run_command, split_command
from .filesystem import ensure_directory, replace_directory, timestamped_log_path

__all__ = [
    "CommandError",
    "demote_errors",
    "ensure_directory",
    "error_lines",
    "replace_directory",
    "run_command",
    "split_command",
    "timestamped_log_path",
]

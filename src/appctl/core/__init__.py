"""Core logic for appctl.

- process_locator: Find managed processes by command line or listening port
- supervisor: Start, stop, restart and status of managed processes
- lock_manager: File-based build lock guard
- build_pipeline: Guarded, fail-fast build pipeline
"""

from .build_pipeline import (
    BuildError,
    BuildStep,
    BuildStepError,
    MissingToolError,
    plan_steps,
    run_build,
    run_guarded_build,
    verify_required_tools,
)
from .lock_manager import (
    LockAccessError,
    LockError,
    acquire_lock,
    build_lock,
    read_lock_owner,
    release_lock,
)
from .process_locator import (
    CommandLineSignature,
    PortSignature,
    find_processes,
    interpreter_family,
)
from .supervisor import (
    AlreadyRunningError,
    ManagedProcess,
    StartError,
    SupervisorError,
    get_status,
    managed_processes,
    restart_processes,
    server_process,
    start_process,
    stop_process,
    tool_process,
)

__all__ = [
    "AlreadyRunningError",
    "BuildError",
    "BuildStep",
    "BuildStepError",
    "CommandLineSignature",
    "LockAccessError",
    "LockError",
    "ManagedProcess",
    "MissingToolError",
    "PortSignature",
    "StartError",
    "SupervisorError",
    "acquire_lock",
    "build_lock",
    "find_processes",
    "get_status",
    "interpreter_family",
    "managed_processes",
    "plan_steps",
    "read_lock_owner",
    "release_lock",
    "restart_processes",
    "run_build",
    "run_guarded_build",
    "server_process",
    "start_process",
    "stop_process",
    "tool_process",
    "verify_required_tools",
]

"""Models describing managed processes and supervisor outcomes.

Managed processes are never stored: every record here is the result of
a fresh query against the OS process or socket table.
"""

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field


class ProcessKind(str, Enum):
    """How a managed process is recognised."""

    SERVER = "server"  # by interpreter + entry-point command line
    TOOL = "tool"  # by listening port


class ServiceState(str, Enum):
    """Liveness of a managed process."""

    RUNNING = "running"
    STOPPED = "stopped"


class ProcessRecord(BaseModel):
    """One OS process matching a signature.

    Attributes:
        pid: Process ID, or None when the OS hides a port listener's owner.
        name: Process image name.
        cmdline: Full command line, when readable.
    """

    pid: int | None = None
    name: str = ""
    cmdline: list[str] = Field(default_factory=list)

    def describe(self) -> str:
        """Short human-readable label."""
        pid = "?" if self.pid is None else str(self.pid)
        return f"{self.name or 'unknown'} (PID {pid})"


class ServiceStatus(BaseModel):
    """Result of a status query."""

    name: str
    kind: ProcessKind
    state: ServiceState
    processes: list[ProcessRecord] = Field(default_factory=list)
    port: int | None = None

    @property
    def running(self) -> bool:
        return self.state == ServiceState.RUNNING

    @property
    def pids(self) -> list[int]:
        return [p.pid for p in self.processes if p.pid is not None]


class StartResult(BaseModel):
    """Outcome of starting a managed process.

    Attributes:
        name: Managed process name.
        pids: PIDs observed after the settle delay.
        log_path: Log file capturing the child's output.
        skipped: True when a tool's port was already in use and nothing was spawned.
    """

    name: str
    pids: list[int] = Field(default_factory=list)
    log_path: Path | None = None
    skipped: bool = False


class StopResult(BaseModel):
    """Outcome of stopping a managed process.

    Attributes:
        name: Managed process name.
        already_stopped: True when nothing matched (idempotent no-op).
        terminated: PIDs that are confirmed gone.
        failed: Human-readable failure reason per PID ("?" for unknown PIDs).
    """

    name: str
    already_stopped: bool = False
    terminated: list[int] = Field(default_factory=list)
    failed: dict[str, str] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failed

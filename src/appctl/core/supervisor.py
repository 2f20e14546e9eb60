"""Single-instance process supervisor.

Starts managed processes detached, stops them forcefully and reports
their status. No handle is kept: after spawning, presence is confirmed
by re-querying the OS, and every later command re-derives identity
through the process locator.

Starting is check-then-spawn, so two concurrent ``start`` invocations
can race and both launch a process. This is an accepted limitation for
an interactively used tool.
"""

import logging
import os
import subprocess
import time
from dataclasses import dataclass, field
from pathlib import Path

import psutil

from ..config import AppctlConfig, ToolConfig
from ..models import (
    ProcessKind,
    ProcessRecord,
    ServiceState,
    ServiceStatus,
    StartResult,
    StopResult,
)
from ..services import split_command, timestamped_log_path
from .process_locator import (
    CommandLineSignature,
    PortSignature,
    Signature,
    find_processes,
)

logger = logging.getLogger(__name__)


class SupervisorError(Exception):
    """Error starting or stopping a managed process."""


class AlreadyRunningError(SupervisorError):
    """A managed process is already running."""

    def __init__(self, name: str, records: list[ProcessRecord]) -> None:
        self.name = name
        self.records = records
        running = ", ".join(r.describe() for r in records)
        super().__init__(f"{name} is already running: {running}")


class StartError(SupervisorError):
    """A spawned process exited or never appeared within the settle delay."""

    def __init__(self, name: str, reason: str, log_path: Path | None) -> None:
        self.name = name
        self.reason = reason
        self.log_path = log_path
        hint = f" See {log_path}" if log_path else ""
        super().__init__(f"{name} {reason}.{hint}")


@dataclass
class LaunchSpec:
    """How to spawn a managed process."""

    args: list[str]
    cwd: Path
    env: dict[str, str] = field(default_factory=dict)


@dataclass
class ManagedProcess:
    """A logical handle on the server or an auxiliary tool.

    Holds no process handle: identity is the signature, re-evaluated on
    every query.
    """

    name: str
    kind: ProcessKind
    signature: Signature
    launch: LaunchSpec

    @property
    def port(self) -> int | None:
        if isinstance(self.signature, PortSignature):
            return self.signature.port
        return None


def server_process(config: AppctlConfig) -> ManagedProcess:
    """Build the managed-process handle for the application server."""
    server = config.server
    entry_point = str(config.resolve(server.entry_point))
    return ManagedProcess(
        name=server.name,
        kind=ProcessKind.SERVER,
        signature=CommandLineSignature(interpreter=server.interpreter, entry_point=entry_point),
        launch=LaunchSpec(
            args=[server.interpreter, entry_point, *server.args],
            cwd=config.resolve(server.cwd),
            env=dict(server.env),
        ),
    )


def tool_process(config: AppctlConfig, tool: ToolConfig) -> ManagedProcess:
    """Build the managed-process handle for an auxiliary tool."""
    return ManagedProcess(
        name=tool.name,
        kind=ProcessKind.TOOL,
        signature=PortSignature(port=tool.port),
        launch=LaunchSpec(
            args=split_command(tool.command),
            cwd=config.resolve(tool.cwd),
            env=dict(tool.env),
        ),
    )


def managed_processes(config: AppctlConfig) -> list[ManagedProcess]:
    """All managed processes, tools first then the server."""
    return [*(tool_process(config, t) for t in config.tools), server_process(config)]


def get_status(managed: ManagedProcess) -> ServiceStatus:
    """Report whether a managed process is running. Pure query."""
    records = find_processes(managed.signature)
    return ServiceStatus(
        name=managed.name,
        kind=managed.kind,
        state=ServiceState.RUNNING if records else ServiceState.STOPPED,
        processes=records,
        port=managed.port,
    )


def _detach_kwargs() -> dict:
    if os.name == "nt":
        flags = subprocess.DETACHED_PROCESS | subprocess.CREATE_NEW_PROCESS_GROUP
        return {"creationflags": flags}
    return {"start_new_session": True}


def spawn_detached(launch: LaunchSpec, log_path: Path) -> subprocess.Popen:
    """Spawn a child that outlives this invocation, output captured to log_path.

    Raises:
        OSError: If the executable cannot be launched (also noted in the log)
    """
    env = {**os.environ, **launch.env}
    log_path.parent.mkdir(parents=True, exist_ok=True)
    with open(log_path, "ab") as log_file:
        try:
            return subprocess.Popen(
                launch.args,
                cwd=launch.cwd,
                env=env,
                stdin=subprocess.DEVNULL,
                stdout=log_file,
                stderr=subprocess.STDOUT,
                **_detach_kwargs(),
            )
        except OSError as e:
            log_file.write(f"Failed to launch {launch.args}: {e}\n".encode())
            raise


def start_process(
    managed: ManagedProcess,
    log_dir: Path,
    settle_delay: float,
) -> StartResult:
    """Start a managed process unless it is already running.

    A tool whose port already has a listener is assumed running and is
    skipped without verifying what owns the port.

    Raises:
        AlreadyRunningError: If the server already has a matching process
        StartError: If the child cannot be launched with a log file, or exits
            or never appears within settle_delay
    """
    existing = find_processes(managed.signature)
    if existing:
        if managed.kind == ProcessKind.TOOL:
            logger.info(f"{managed.name}: port {managed.port} already in use, not starting")
            pids = [p.pid for p in existing if p.pid is not None]
            return StartResult(name=managed.name, pids=pids, skipped=True)
        raise AlreadyRunningError(managed.name, existing)

    try:
        log_path = timestamped_log_path(log_dir, managed.name)
    except OSError as e:
        reason = f"could not create a log file in {log_dir} ({e})"
        raise StartError(managed.name, reason, None) from e

    logger.info(f"Starting {managed.name}: {' '.join(managed.launch.args)}")
    try:
        child = spawn_detached(managed.launch, log_path)
    except OSError as e:
        raise StartError(managed.name, f"could not be launched ({e})", log_path) from e
    logger.debug(f"{managed.name}: spawned PID {child.pid}, log {log_path}")

    time.sleep(settle_delay)

    records = find_processes(managed.signature)
    if not records:
        returncode = child.poll()
        if returncode is not None:
            reason = f"exited immediately with code {returncode}"
        else:
            reason = f"never appeared ({managed.signature.describe()})"
        raise StartError(managed.name, reason, log_path)

    pids = [p.pid for p in records if p.pid is not None]
    logger.info(f"{managed.name} started (PID {', '.join(map(str, pids)) or '?'})")
    return StartResult(name=managed.name, pids=pids, log_path=log_path)


def _kill_tree(pid: int, timeout: float) -> None:
    """Kill a process and its descendants, children first.

    Raises:
        psutil.NoSuchProcess: If pid is already gone
        psutil.AccessDenied: If the process cannot be signalled
        psutil.TimeoutExpired: If the process survives timeout seconds
    """
    parent = psutil.Process(pid)
    children = parent.children(recursive=True)
    for child in reversed(children):
        try:
            child.kill()
        except psutil.NoSuchProcess:
            pass
    parent.kill()
    _, alive = psutil.wait_procs([parent, *children], timeout=timeout)
    if parent in alive:
        raise psutil.TimeoutExpired(timeout, pid=pid)


def stop_process(managed: ManagedProcess, settle_delay: float) -> StopResult:
    """Forcefully terminate every process matching the signature.

    Stopping something that is not running succeeds as a no-op.
    """
    records = find_processes(managed.signature)
    if not records:
        logger.info(f"{managed.name} is already stopped")
        return StopResult(name=managed.name, already_stopped=True)

    if len(records) > 1:
        logger.warning(f"{managed.name}: {len(records)} matching processes, stopping all")

    result = StopResult(name=managed.name)
    for record in records:
        if record.pid is None:
            result.failed["?"] = f"owner of port {managed.port} is not visible"
            continue
        try:
            _kill_tree(record.pid, timeout=max(settle_delay, 1.0))
        except psutil.NoSuchProcess:
            pass
        except psutil.AccessDenied:
            result.failed[str(record.pid)] = "permission denied"
            continue
        except psutil.TimeoutExpired:
            result.failed[str(record.pid)] = "still running after kill"
            continue
        logger.info(f"Stopped {managed.name} (PID {record.pid})")
        result.terminated.append(record.pid)
    return result


def restart_processes(
    targets: list[ManagedProcess],
    log_dir: Path,
    settle_delay: float,
    restart_delay: float,
) -> tuple[list[StopResult], list[StartResult]]:
    """Stop targets in reverse order, wait restart_delay, start them in order.

    Not atomic: a concurrent status query can observe the stopped window.

    Raises:
        SupervisorError: If any target fails to stop (nothing is started)
        AlreadyRunningError: If a server reappeared before the start
        StartError: If a start fails
    """
    stopped = [stop_process(managed, settle_delay) for managed in reversed(targets)]
    failures = [
        f"{result.name} PID {pid}: {why}"
        for result in stopped
        for pid, why in result.failed.items()
    ]
    if failures:
        raise SupervisorError(f"Could not stop all processes ({', '.join(failures)})")
    time.sleep(restart_delay)
    started = [start_process(managed, log_dir, settle_delay) for managed in targets]
    return stopped, started

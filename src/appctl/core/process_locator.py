"""Locate managed processes by re-derivable identity.

Nothing is cached between calls: each query enumerates the OS process
table or socket table through psutil.
"""

import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path

import psutil

from ..models import ProcessRecord

logger = logging.getLogger(__name__)

_VERSION_SUFFIX = re.compile(r"[\d.]+$")


def interpreter_family(name: str) -> str:
    """Normalise an interpreter image name.

    ``/usr/bin/python3.12``, ``python3`` and ``python.exe`` all map to ``python``.
    """
    image = Path(name).name.lower()
    if image.endswith(".exe"):
        image = image[: -len(".exe")]
    return _VERSION_SUFFIX.sub("", image) or image


@dataclass(frozen=True)
class CommandLineSignature:
    """Matches an interpreter process running a given entry-point script."""

    interpreter: str
    entry_point: str

    def matches(self, name: str, cmdline: list[str]) -> bool:
        if not cmdline:
            return False
        if interpreter_family(name) != interpreter_family(self.interpreter):
            # Some platforms report a launcher name; fall back to argv[0]
            if interpreter_family(cmdline[0]) != interpreter_family(self.interpreter):
                return False
        return self.entry_point in " ".join(cmdline)

    def describe(self) -> str:
        return f"{interpreter_family(self.interpreter)} running {self.entry_point}"


@dataclass(frozen=True)
class PortSignature:
    """Matches whatever process is listening on a TCP port."""

    port: int

    def describe(self) -> str:
        return f"listener on port {self.port}"


Signature = CommandLineSignature | PortSignature


def find_processes(signature: Signature) -> list[ProcessRecord]:
    """Return every process currently matching signature.

    More than one match is possible; callers decide how to act on them.
    """
    if isinstance(signature, PortSignature):
        records = find_port_listeners(signature.port)
    else:
        records = find_command_line(signature)
    if len(records) > 1:
        logger.debug(f"{len(records)} processes match {signature.describe()}")
    return records


def find_command_line(signature: CommandLineSignature) -> list[ProcessRecord]:
    """Scan the process table for interpreter processes running the entry point."""
    own_pid = os.getpid()
    records = []
    for proc in psutil.process_iter(["pid", "name", "cmdline"]):
        info = proc.info
        if info["pid"] == own_pid:
            continue
        name = info.get("name") or ""
        cmdline = info.get("cmdline") or []
        if signature.matches(name, cmdline):
            records.append(ProcessRecord(pid=info["pid"], name=name, cmdline=cmdline))
    return records


def find_port_listeners(port: int) -> list[ProcessRecord]:
    """Return the processes with a socket in LISTEN state on port.

    A listener whose owner the OS does not disclose is returned with pid None.
    """
    try:
        connections = psutil.net_connections(kind="inet")
    except psutil.AccessDenied:
        # macOS requires root for the system-wide table; scan per process instead
        return _scan_process_listeners(port)

    pids: list[int | None] = []
    for conn in connections:
        if conn.status != psutil.CONN_LISTEN or not conn.laddr:
            continue
        if conn.laddr.port == port and conn.pid not in pids:
            pids.append(conn.pid)
    return [_record_for_pid(pid) for pid in pids]


def _scan_process_listeners(port: int) -> list[ProcessRecord]:
    records = []
    for proc in psutil.process_iter(["pid", "name"]):
        try:
            listening = any(
                conn.status == psutil.CONN_LISTEN and conn.laddr and conn.laddr.port == port
                for conn in proc.net_connections(kind="inet")
            )
        except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
            continue
        if listening:
            records.append(ProcessRecord(pid=proc.info["pid"], name=proc.info.get("name") or ""))
    return records


def _record_for_pid(pid: int | None) -> ProcessRecord:
    if pid is None:
        return ProcessRecord(pid=None)
    try:
        proc = psutil.Process(pid)
        return ProcessRecord(pid=pid, name=proc.name(), cmdline=proc.cmdline())
    except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
        return ProcessRecord(pid=pid)

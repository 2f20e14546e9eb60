"""Shared test fixtures for appctl tests."""

import os
import shlex
import socket
import sys
from collections.abc import Generator
from pathlib import Path

import psutil
import pytest
from typer.testing import CliRunner

SERVER_SCRIPT = """\
import time

print("server up", flush=True)
while True:
    time.sleep(0.2)
"""

LISTENER_SCRIPT = """\
import socket
import sys
import time

server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
server.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
server.bind(("127.0.0.1", int(sys.argv[1])))
server.listen()
print("listening", flush=True)
while True:
    time.sleep(0.2)
"""


@pytest.fixture
def runner() -> CliRunner:
    """Create CLI test runner."""
    return CliRunner()


@pytest.fixture
def project_dir(tmp_path: Path) -> Generator[Path, None, None]:
    """Create a project with a long-running server script and appctl.toml.

    The server is the current interpreter running app/server.py, so it can be
    started and found for real. Changes cwd to the project for the test.
    """
    app_dir = tmp_path / "app"
    app_dir.mkdir()
    (app_dir / "server.py").write_text(SERVER_SCRIPT)

    interpreter = sys.executable.replace("\\", "/")
    config = f"""[project]
name = "test-project"

[server]
name = "server"
interpreter = "{interpreter}"
entry_point = "app/server.py"

[supervisor]
settle_delay = 0.5
restart_delay = 0.1

[paths]
log_dir = "logs"
lock_file = ".appctl/build.lock"

[build]
required_tools = []
backend_steps = []
frontend_steps = []
frontend_dir = "frontend"
frontend_output = "frontend/dist"
destination = "static"
"""
    (tmp_path / "appctl.toml").write_text(config)

    original_cwd = os.getcwd()
    os.chdir(tmp_path)
    try:
        yield tmp_path
    finally:
        os.chdir(original_cwd)
        _kill_leftovers(app_dir)


@pytest.fixture
def listener_tool(project_dir: Path) -> int:
    """Add a helper tool that listens on a free local port; returns the port."""
    script = project_dir / "app" / "listener.py"
    script.write_text(LISTENER_SCRIPT)

    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        port = sock.getsockname()[1]

    command = f"{shlex.quote(sys.executable)} {shlex.quote(str(script.resolve()))} {port}"
    config = project_dir / "appctl.toml"
    config.write_text(
        config.read_text()
        + f"\n[[tools]]\nname = \"listener\"\ncommand = \"{command}\"\nport = {port}\n"
    )
    return port


def _kill_leftovers(app_dir: Path) -> None:
    """Kill any processes running project scripts that a failing test left behind."""
    marker = str(app_dir.resolve())
    for proc in psutil.process_iter(["pid", "cmdline"]):
        cmdline = proc.info.get("cmdline") or []
        if proc.info["pid"] != os.getpid() and marker in " ".join(cmdline):
            try:
                proc.kill()
                proc.wait(timeout=5)
            except (psutil.NoSuchProcess, psutil.TimeoutExpired):
                pass

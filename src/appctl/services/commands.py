"""External command runner for appctl."""

import re
import shlex
import shutil
import subprocess
from pathlib import Path

_ERROR_PREFIX = re.compile(r"^(\s*)ERROR\b(:?)", re.MULTILINE)


class CommandError(Exception):
    """Error executing an external command."""


def split_command(command: str) -> list[str]:
    """Split a command line and resolve its executable on PATH.

    Resolution lets Windows wrappers such as ``pnpm.cmd`` run without a shell.

    Raises:
        CommandError: If the command is empty or has invalid syntax
    """
    try:
        args = shlex.split(command)
    except ValueError as e:
        raise CommandError(f"Invalid command syntax: {e}") from e
    if not args:
        raise CommandError("Empty command")
    resolved = shutil.which(args[0])
    if resolved:
        args[0] = resolved
    return args


def run_command(
    command: str,
    cwd: Path,
    timeout: int | None = None,
) -> tuple[str, int]:
    """Run a command to completion and return (output, exit_code).

    Args:
        command: Command line to run (parsed with shlex, no shell)
        cwd: Working directory
        timeout: Optional timeout in seconds (None waits indefinitely)

    Returns:
        Tuple of (formatted output with stdout/stderr, exit code)

    Raises:
        CommandError: If the command times out or cannot be executed
    """
    args = split_command(command)
    if not cwd.is_dir():
        raise CommandError(f"Working directory not found: {cwd}")

    try:
        result = subprocess.run(
            args,
            cwd=cwd,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as e:
        raise CommandError(f"Command timed out after {timeout} seconds") from e
    except FileNotFoundError:
        raise CommandError(f"Command not found: {args[0]}") from None

    output = f"exit_code: {result.returncode}\n\n"
    output += "=== stdout ===\n"
    output += result.stdout
    output += "\n=== stderr ===\n"
    output += result.stderr
    return output, result.returncode


def demote_errors(output: str) -> str:
    """Rewrite error-severity line prefixes as warnings.

    ``ERROR: pip's dependency resolver ...`` becomes
    ``WARNING: pip's dependency resolver ...``.
    """
    return _ERROR_PREFIX.sub(r"\1WARNING\2", output)


def error_lines(output: str) -> list[str]:
    """Lines of output that carry an error-severity prefix."""
    return [line.strip() for line in output.splitlines() if _ERROR_PREFIX.match(line)]

"""Build lock guard.

A single lock file whose content is the decimal PID of the invocation
running a build. Only that invocation may remove it. There is no
automatic stale-lock recovery: a crashed build leaves the file in place
until an operator deletes it.

Creation uses O_CREAT | O_EXCL so two simultaneous builds cannot both
create the file.
"""

import logging
import os
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import psutil

logger = logging.getLogger(__name__)


class LockError(Exception):
    """Build lock is held by another invocation."""

    def __init__(self, path: Path, owner: str) -> None:
        self.path = path
        self.owner = owner
        super().__init__(_held_message(path, owner))


class LockAccessError(Exception):
    """Build lock file cannot be created or read."""

    def __init__(self, path: Path, reason: OSError) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot access build lock {path}: {reason.strerror or reason}")


def _held_message(path: Path, owner: str) -> str:
    shown = owner or "<empty>"
    message = f"Build already in progress (lock held by PID {shown})."
    if owner.isdigit() and not psutil.pid_exists(int(owner)):
        message += " That process is no longer running; the lock looks stale."
    return f"{message} If no build is running, delete {path} and retry."


def read_lock_owner(path: Path) -> str | None:
    """Return the raw owner recorded in the lock file, or None if absent."""
    try:
        return path.read_text(encoding="utf-8", errors="replace").strip()
    except FileNotFoundError:
        return None


def _try_atomic_create(path: Path, pid: int) -> bool:
    """Create the lock file containing pid; False if it already exists."""
    try:
        fd = os.open(str(path), os.O_CREAT | os.O_EXCL | os.O_WRONLY)
    except FileExistsError:
        return False
    try:
        os.write(fd, str(pid).encode())
    except OSError:
        os.close(fd)
        path.unlink(missing_ok=True)
        raise
    os.close(fd)
    return True


def acquire_lock(path: Path) -> int:
    """Acquire the build lock for the current process.

    Args:
        path: Lock file location

    Returns:
        The PID written to the lock file

    Raises:
        LockError: If the lock file already exists (it is left untouched)
        LockAccessError: If the lock directory or file cannot be created or read
    """
    pid = os.getpid()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        if not _try_atomic_create(path, pid):
            owner = read_lock_owner(path) or ""
            raise LockError(path, owner)
    except OSError as e:
        raise LockAccessError(path, e) from e

    logger.debug(f"Acquired build lock {path} (PID {pid})")
    return pid


def release_lock(path: Path) -> bool:
    """Release the build lock if the current process owns it.

    Args:
        path: Lock file location

    Returns:
        True if the file was removed, False if it was absent or owned elsewhere
    """
    pid = os.getpid()
    try:
        owner = read_lock_owner(path)
    except OSError as e:
        logger.warning(f"Not releasing build lock {path}: cannot read it ({e})")
        return False

    if owner is None:
        logger.warning(f"Build lock {path} was already removed")
        return False

    if owner != str(pid):
        logger.warning(
            f"Not releasing build lock {path}: held by PID {owner or '<empty>'}, not {pid}"
        )
        return False

    path.unlink(missing_ok=True)
    logger.debug(f"Released build lock {path}")
    return True


@contextmanager
def build_lock(path: Path) -> Iterator[int]:
    """Hold the build lock for the duration of the block.

    The lock is released on every exit path, including exceptions.

    Yields:
        The PID recorded in the lock file
    """
    pid = acquire_lock(path)
    try:
        yield pid
    finally:
        release_lock(path)

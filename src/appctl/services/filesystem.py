"""Filesystem helpers for appctl."""

import shutil
from datetime import datetime
from pathlib import Path

from ..constants import LOG_TIMESTAMP_FORMAT


def ensure_directory(path: Path) -> Path:
    """Create directory (and parents) if missing."""
    path.mkdir(parents=True, exist_ok=True)
    return path


def timestamped_log_path(log_dir: Path, name: str, now: datetime | None = None) -> Path:
    """Build ``<log_dir>/<name>-YYYYmmdd-HHMMSS.log`` and ensure log_dir exists.

    Args:
        log_dir: Directory holding log files
        name: Log name prefix (managed process or "build")
        now: Timestamp to use, defaults to the current time
    """
    stamp = (now or datetime.now()).strftime(LOG_TIMESTAMP_FORMAT)
    ensure_directory(log_dir)
    return log_dir / f"{name}-{stamp}.log"


def replace_directory(source: Path, destination: Path) -> None:
    """Replace destination with a copy of source.

    Destination is removed first if it exists, then source is copied.

    Raises:
        FileNotFoundError: If source is not a directory
    """
    if not source.is_dir():
        raise FileNotFoundError(f"Build output not found: {source}")
    if destination.exists():
        shutil.rmtree(destination)
    destination.parent.mkdir(parents=True, exist_ok=True)
    shutil.copytree(source, destination)

"""CLI command implementations for appctl.

This package contains the implementation of each CLI command,
separated from the CLI framework setup in cli.py.
"""

from .build import build
from .init import init
from .server import restart, start, status, stop

__all__ = [
    "build",
    "init",
    "restart",
    "start",
    "status",
    "stop",
]

"""Pydantic data models for appctl results.

This package defines the data structures reported by appctl commands:
- Process matches and service status (ProcessRecord, ServiceStatus)
- Start/stop outcomes (StartResult, StopResult)
- Build step and pipeline outcomes (StepResult, BuildResult)

All models are Pydantic BaseModel subclasses so that the CLI can emit
them as JSON with ``--json``.
"""

from .build import BuildResult, StepResult
from .process import (
    ProcessKind,
    ProcessRecord,
    ServiceState,
    ServiceStatus,
    StartResult,
    StopResult,
)

__all__ = [
    "BuildResult",
    "ProcessKind",
    "ProcessRecord",
    "ServiceState",
    "ServiceStatus",
    "StartResult",
    "StepResult",
    "StopResult",
]

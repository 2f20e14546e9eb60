"""Build pipeline result models."""

from pathlib import Path

from pydantic import BaseModel, Field


class StepResult(BaseModel):
    """Result of one build step.

    Attributes:
        name: Step label (e.g., "backend: poetry install").
        command: Command line that was run, empty for in-process steps.
        exit_code: Process exit code (0 for in-process steps that succeed).
        passed: Whether the step succeeded.
    """

    name: str
    command: str = ""
    exit_code: int = 0
    passed: bool = True


class BuildResult(BaseModel):
    """Result of a completed build pipeline."""

    steps: list[StepResult] = Field(default_factory=list)
    log_path: Path
    destination: Path

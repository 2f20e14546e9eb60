"""Build pipeline for the managed application.

The pipeline runs under the build lock and is fail-fast:

1. Verify required executables are on PATH
2. Backend dependency steps
3. Pinned force-reinstall remediation (errors demoted to warnings)
4. Frontend steps
5. Replace the destination directory with the frontend build output

Nothing is rolled back when a step fails; whatever the external tools
left on disk stays there.
"""

import logging
import shutil
from dataclasses import dataclass
from pathlib import Path

from ..config import AppctlConfig
from ..logging import log_to_file
from ..models import BuildResult, StepResult
from ..services import (
    CommandError,
    demote_errors,
    error_lines,
    replace_directory,
    run_command,
    timestamped_log_path,
)
from .lock_manager import build_lock

logger = logging.getLogger(__name__)


class BuildError(Exception):
    """Error running the build pipeline."""


class MissingToolError(BuildError):
    """A required executable is not resolvable on PATH."""

    def __init__(self, tool: str) -> None:
        self.tool = tool
        super().__init__(f"Required tool not found in PATH: {tool}")


class BuildStepError(BuildError):
    """A build step failed; later steps were not run."""

    def __init__(self, step: str, reason: str, log_path: Path) -> None:
        self.step = step
        self.reason = reason
        self.log_path = log_path
        super().__init__(f"Build step '{step}' failed: {reason}. See {log_path}")


@dataclass
class BuildStep:
    """One external command in the pipeline."""

    name: str
    command: str
    cwd: Path
    demote_errors: bool = False


def plan_steps(config: AppctlConfig) -> list[BuildStep]:
    """Ordered command steps for the configured pipeline."""
    build = config.build
    backend_dir = config.resolve(build.backend_dir)
    frontend_dir = config.resolve(build.frontend_dir)

    steps = [BuildStep(f"backend: {cmd}", cmd, backend_dir) for cmd in build.backend_steps]
    if build.remediation is not None:
        steps.append(
            BuildStep(
                f"remediation: {build.remediation.package}=={build.remediation.version}",
                build.remediation.command(),
                backend_dir,
                demote_errors=True,
            )
        )
    steps.extend(BuildStep(f"frontend: {cmd}", cmd, frontend_dir) for cmd in build.frontend_steps)
    return steps


def verify_required_tools(tools: list[str]) -> None:
    """Check each tool resolves on PATH, in order.

    Raises:
        MissingToolError: For the first tool that is not found
    """
    for tool in tools:
        path = shutil.which(tool)
        if path is None:
            raise MissingToolError(tool)
        logger.debug(f"Found {tool}: {path}")


def _append_log(log_path: Path, text: str) -> None:
    with open(log_path, "a", encoding="utf-8") as f:
        f.write(text)


def run_step(step: BuildStep, log_path: Path, timeout: int | None = None) -> StepResult:
    """Run one step, appending its output to the build log.

    Raises:
        BuildStepError: If the command cannot run or exits non-zero
    """
    logger.info(f"Running {step.name}")
    _append_log(log_path, f"\n### {step.name}\n$ {step.command}\n(cwd: {step.cwd})\n")

    try:
        output, exit_code = run_command(step.command, step.cwd, timeout=timeout)
    except CommandError as e:
        _append_log(log_path, f"{e}\n")
        raise BuildStepError(step.name, str(e), log_path) from e

    if step.demote_errors:
        for line in error_lines(output):
            logger.warning(f"{step.name}: {demote_errors(line)}")
        output = demote_errors(output)
    _append_log(log_path, output + "\n")

    if exit_code != 0:
        raise BuildStepError(step.name, f"exit code {exit_code}", log_path)
    return StepResult(name=step.name, command=step.command, exit_code=exit_code)


def run_build(config: AppctlConfig, log_path: Path) -> BuildResult:
    """Run the whole pipeline without locking.

    Raises:
        MissingToolError: If a required tool is missing (nothing else runs)
        BuildStepError: On the first failing step
    """
    build = config.build
    verify_required_tools(build.required_tools)

    results = [run_step(step, log_path, build.step_timeout) for step in plan_steps(config)]

    source = config.resolve(build.frontend_output)
    destination = config.resolve(build.destination)
    name = f"copy: {build.frontend_output} -> {build.destination}"
    logger.info(f"Replacing {destination} with {source}")
    _append_log(log_path, f"\n### {name}\n")
    try:
        replace_directory(source, destination)
    except OSError as e:
        _append_log(log_path, f"{e}\n")
        raise BuildStepError(name, str(e), log_path) from e
    results.append(StepResult(name=name))

    return BuildResult(steps=results, log_path=log_path, destination=destination)


def run_guarded_build(config: AppctlConfig) -> BuildResult:
    """Run the pipeline while holding the build lock.

    The lock is released whether the pipeline succeeds or raises.

    Raises:
        LockError: If another build holds the lock (no step is run)
        LockAccessError: If the lock file cannot be created
        BuildError: If the build log cannot be created or the pipeline fails
    """
    with build_lock(config.lock_path):
        try:
            log_path = timestamped_log_path(config.log_dir, "build")
            log_path.touch()
        except OSError as e:
            raise BuildError(f"Cannot create build log in {config.log_dir}: {e}") from e
        logger.info(f"Build log: {log_path}")
        with log_to_file(log_path):
            return run_build(config, log_path)

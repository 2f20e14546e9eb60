"""Build command implementation."""

import typer

from ..constants import EXIT_BUILD_FAILED, EXIT_LOCK_HELD, EXIT_MISSING_TOOL
from ..core import (
    BuildError,
    BuildStepError,
    LockAccessError,
    LockError,
    MissingToolError,
    plan_steps,
    run_guarded_build,
)
from ..output import get_output_context
from .common import load_config_or_exit


def build() -> None:
    """Install dependencies, build the frontend and copy it into place."""
    ctx = get_output_context()
    config = load_config_or_exit(ctx)

    if ctx.dry_run:
        ctx.console.print(f"[cyan][DRY RUN][/cyan] Would build holding lock {config.lock_path}:")
        ctx.console.print(f"  Check tools: {', '.join(config.build.required_tools) or '-'}")
        for step in plan_steps(config):
            ctx.console.print(f"  {step.name}  [dim](in {step.cwd})[/dim]")
        ctx.console.print(
            f"  Copy {config.resolve(config.build.frontend_output)} "
            f"-> {config.resolve(config.build.destination)}"
        )
        return

    try:
        result = run_guarded_build(config)
    except LockError as e:
        ctx.error(str(e), {"lock": str(e.path), "owner": e.owner})
        raise typer.Exit(EXIT_LOCK_HELD) from None
    except MissingToolError as e:
        ctx.error(str(e), {"tool": e.tool})
        raise typer.Exit(EXIT_MISSING_TOOL) from None
    except BuildStepError as e:
        ctx.error(str(e), {"step": e.step, "log": str(e.log_path)})
        raise typer.Exit(EXIT_BUILD_FAILED) from None
    except LockAccessError as e:
        ctx.error(str(e), {"lock": str(e.path)})
        raise typer.Exit(EXIT_BUILD_FAILED) from None
    except (BuildError, OSError) as e:
        ctx.error(str(e))
        raise typer.Exit(EXIT_BUILD_FAILED) from None

    for step in result.steps:
        ctx.print(f"[green]✓[/green] {step.name}")
    ctx.success(
        f"Build complete: {result.destination}",
        {"destination": str(result.destination), "log": str(result.log_path)},
    )
    ctx.print(f"  Log: {result.log_path}")

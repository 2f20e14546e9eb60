"""Init command implementation."""

import shutil
import subprocess

import typer

from ..config import get_config_path, write_config_template
from ..constants import EXIT_MISSING_TOOL, INIT_TOOL_CHECK_TIMEOUT
from ..output import get_output_context
from .common import load_config_or_exit


def init() -> None:
    """Write an appctl.toml template and check the build toolchain."""
    ctx = get_output_context()
    config_path = get_config_path()

    if ctx.dry_run:
        ctx.console.print("[cyan][DRY RUN][/cyan] Would initialize appctl:")
        if not config_path.exists():
            ctx.console.print(f"  Create config: {config_path}")
        else:
            ctx.console.print(f"  Config already exists: {config_path}")
        return

    if not config_path.exists():
        write_config_template(config_path)
        ctx.console.print(f"[green]Created config template:[/green] {config_path}")
    else:
        ctx.console.print(f"[yellow]Config already exists:[/yellow] {config_path}")

    config = load_config_or_exit(ctx)

    all_ok = True
    for tool in config.build.required_tools:
        path = shutil.which(tool)
        if path is None:
            ctx.console.print(f"[red]✗[/red] {tool}: not found in PATH")
            all_ok = False
            continue
        try:
            result = subprocess.run(
                [path, "--version"],
                capture_output=True,
                text=True,
                timeout=INIT_TOOL_CHECK_TIMEOUT,
            )
            if result.returncode != 0:
                detail = result.stderr.strip()[:50] or f"exit code {result.returncode}"
                ctx.console.print(f"[red]✗[/red] {tool}: {detail}")
                all_ok = False
                continue
            version = result.stdout.strip().splitlines()[0] if result.stdout.strip() else ""
            ctx.console.print(f"[green]✓[/green] {tool} {version}".rstrip())
        except subprocess.TimeoutExpired:
            ctx.console.print(f"[yellow]?[/yellow] {tool}: timed out")
        except OSError as e:
            ctx.console.print(f"[red]✗[/red] {tool}: {e}")
            all_ok = False

    if not all_ok:
        ctx.console.print("\n[yellow]Warning: Some build tools are missing[/yellow]")
        raise typer.Exit(EXIT_MISSING_TOOL)

    ctx.console.print("\n[bold green]appctl initialized successfully![/bold green]")

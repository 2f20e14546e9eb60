"""Start, stop, restart and status commands."""

from typing import NoReturn

import typer

from ..config import AppctlConfig
from ..constants import (
    EXIT_ALREADY_RUNNING,
    EXIT_CONFIG_ERROR,
    EXIT_NOT_RUNNING,
    EXIT_START_FAILED,
    EXIT_STOP_FAILED,
)
from ..core import (
    AlreadyRunningError,
    ManagedProcess,
    StartError,
    SupervisorError,
    get_status,
    managed_processes,
    restart_processes,
    server_process,
    start_process,
    stop_process,
)
from ..models import ProcessKind, StartResult, StopResult
from ..output import OutputContext, get_output_context
from ..services import CommandError
from .common import load_config_or_exit

SERVER_ONLY_HELP = "Only act on the application server, not the helper tools"


def _targets(ctx: OutputContext, config: AppctlConfig, server_only: bool) -> list[ManagedProcess]:
    """Managed processes in start order (tools first, server last)."""
    if server_only:
        return [server_process(config)]
    try:
        return managed_processes(config)
    except CommandError as e:
        ctx.error(f"Invalid tool command in config: {e}")
        raise typer.Exit(EXIT_CONFIG_ERROR) from None


def _report_start(ctx: OutputContext, managed: ManagedProcess, result: StartResult) -> None:
    if result.skipped:
        ctx.warning(f"{managed.name}: port {managed.port} already in use, assuming it is running")
        return
    pids = ", ".join(map(str, result.pids)) or "?"
    ctx.print(f"[green]✓[/green] {managed.name} started (PID {pids})")
    ctx.print(f"  Log: {result.log_path}")


def _report_stop(ctx: OutputContext, result: StopResult) -> None:
    if result.already_stopped:
        ctx.print(f"[dim]{result.name} is already stopped[/dim]")
        return
    for pid in result.terminated:
        ctx.print(f"[green]✓[/green] {result.name} stopped (PID {pid})")
    for pid, reason in result.failed.items():
        ctx.print(f"[red]✗[/red] {result.name} (PID {pid}): {reason}")


def _handle_start_error(ctx: OutputContext, error: SupervisorError | OSError) -> NoReturn:
    if isinstance(error, AlreadyRunningError):
        pids = [r.pid for r in error.records]
        ctx.error(str(error), {"name": error.name, "pids": pids})
        raise typer.Exit(EXIT_ALREADY_RUNNING) from None
    if isinstance(error, StartError):
        log = str(error.log_path) if error.log_path else None
        ctx.error(str(error), {"name": error.name, "log": log})
        raise typer.Exit(EXIT_START_FAILED) from None
    if isinstance(error, OSError):
        ctx.error(f"Start failed: {error}")
        raise typer.Exit(EXIT_START_FAILED) from None
    ctx.error(str(error))
    raise typer.Exit(EXIT_STOP_FAILED) from None


def start(
    server_only: bool = typer.Option(False, "--server-only", help=SERVER_ONLY_HELP),
) -> None:
    """Start the helper tools and the application server."""
    ctx = get_output_context()
    config = load_config_or_exit(ctx)
    targets = _targets(ctx, config, server_only)

    if ctx.dry_run:
        ctx.console.print("[cyan][DRY RUN][/cyan] Would start:")
        for managed in targets:
            ctx.console.print(f"  {managed.name}: {' '.join(managed.launch.args)}")
            ctx.console.print(f"    cwd: {managed.launch.cwd}")
        return

    # Refuse before touching the tools if the server is already up
    server = targets[-1]
    status = get_status(server)
    if status.running:
        _handle_start_error(ctx, AlreadyRunningError(server.name, status.processes))

    results = []
    for managed in targets:
        try:
            result = start_process(managed, config.log_dir, config.supervisor.settle_delay)
        except (SupervisorError, OSError) as e:
            _handle_start_error(ctx, e)
        _report_start(ctx, managed, result)
        results.append(result)

    ctx.result({"started": [r.model_dump(mode="json") for r in results]})


def stop(
    server_only: bool = typer.Option(False, "--server-only", help=SERVER_ONLY_HELP),
) -> None:
    """Stop the application server and the helper tools."""
    ctx = get_output_context()
    config = load_config_or_exit(ctx)
    targets = list(reversed(_targets(ctx, config, server_only)))

    if ctx.dry_run:
        ctx.console.print("[cyan][DRY RUN][/cyan] Would stop:")
        for managed in targets:
            ctx.console.print(f"  {managed.name}: {managed.signature.describe()}")
        return

    results = [stop_process(managed, config.supervisor.settle_delay) for managed in targets]
    for result in results:
        _report_stop(ctx, result)

    ctx.result({"stopped": [r.model_dump(mode="json") for r in results]})
    if not all(r.ok for r in results):
        raise typer.Exit(EXIT_STOP_FAILED)


def restart(
    server_only: bool = typer.Option(False, "--server-only", help=SERVER_ONLY_HELP),
) -> None:
    """Stop then start the application server and the helper tools."""
    ctx = get_output_context()
    config = load_config_or_exit(ctx)
    targets = _targets(ctx, config, server_only)

    if ctx.dry_run:
        names = ", ".join(m.name for m in targets)
        ctx.console.print(f"[cyan][DRY RUN][/cyan] Would restart: {names}")
        return

    try:
        stopped, started = restart_processes(
            targets,
            config.log_dir,
            config.supervisor.settle_delay,
            config.supervisor.restart_delay,
        )
    except (SupervisorError, OSError) as e:
        _handle_start_error(ctx, e)

    for result in stopped:
        _report_stop(ctx, result)
    for managed, result in zip(targets, started, strict=True):
        _report_start(ctx, managed, result)

    ctx.result(
        {
            "stopped": [r.model_dump(mode="json") for r in stopped],
            "started": [r.model_dump(mode="json") for r in started],
        }
    )


def status() -> None:
    """Show whether the server and helper tools are running."""
    ctx = get_output_context()
    config = load_config_or_exit(ctx)
    statuses = [get_status(managed) for managed in _targets(ctx, config, server_only=False)]

    rows = []
    for s in statuses:
        state = "[green]running[/green]" if s.running else "[red]stopped[/red]"
        pids = ", ".join("?" if p.pid is None else str(p.pid) for p in s.processes) or "-"
        port = str(s.port) if s.port is not None else "-"
        rows.append([s.name, s.kind.value, state, pids, port])
        if len(s.processes) > 1:
            ctx.warning(f"{s.name}: {len(s.processes)} matching processes")

    ctx.table(f"{config.project.name}", ["Name", "Kind", "State", "PID", "Port"], rows)
    ctx.print_json({"services": [s.model_dump(mode="json") for s in statuses]})

    server = next(s for s in statuses if s.kind == ProcessKind.SERVER)
    if not server.running:
        raise typer.Exit(EXIT_NOT_RUNNING)

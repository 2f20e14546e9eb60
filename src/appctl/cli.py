"""appctl CLI: control an application server, its helper tools and its build."""

from pathlib import Path

import typer

from appctl import __version__

from .commands import build, init, restart, start, status, stop
from .config import set_config_path
from .logging import configure_logging
from .output import OutputContext, set_output_context


def _version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"appctl {__version__}")
        raise typer.Exit()


app = typer.Typer(
    name="appctl",
    help="Start, stop and build an application server and its helper tools",
    no_args_is_help=True,
)


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
    verbose: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help="Increase verbosity (-v, -vv)",
    ),
    quiet: bool = typer.Option(
        False,
        "--quiet",
        "-q",
        help="Suppress non-error output",
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Output in JSON format for automation",
    ),
    no_color: bool = typer.Option(
        False,
        "--no-color",
        help="Disable colored output",
    ),
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        help="Show what would be done without doing it",
    ),
    config: Path | None = typer.Option(
        None,
        "--config",
        "-c",
        help="Config file (default: ./appctl.toml)",
    ),
) -> None:
    """appctl - application server and build control."""
    console = configure_logging(
        verbosity=verbose,
        quiet=quiet,
        no_color=no_color,
    )
    set_output_context(OutputContext(console=console, json_mode=json_output, dry_run=dry_run))
    set_config_path(config)


app.command()(init)
app.command()(start)
app.command()(stop)
app.command()(restart)
app.command()(status)
app.command()(build)


if __name__ == "__main__":
    app()

"""Helpers shared by command implementations."""

import typer

from ..config import AppctlConfig, ConfigError, get_config_path, load_config
from ..constants import EXIT_CONFIG_ERROR
from ..output import OutputContext


def load_config_or_exit(ctx: OutputContext) -> AppctlConfig:
    """Load the selected config, exiting with EXIT_CONFIG_ERROR if invalid."""
    try:
        return load_config(get_config_path())
    except ConfigError as e:
        ctx.error(str(e))
        raise typer.Exit(EXIT_CONFIG_ERROR) from None

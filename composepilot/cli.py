#!/usr/bin/env python3
"""Compose Pilot CLI - find, rank and configure Docker Compose projects."""
from typing import Optional

import typer
from rich.console import Console

from composepilot import __version__
from composepilot.cli_compose_commands import register_compose_commands
from composepilot.cli_config_commands import register_config_commands
from composepilot.core.logger import get_logger, set_console_level, setup_file_logging

app = typer.Typer(
    name="dpilot",
    help="""Compose Pilot - Docker Compose discovery and project configuration

Finds every compose file in a project, picks the main one and keeps
composepilot.yml in sync with its services.

Quick start:
  dpilot compose list              # Ranked compose files below .
  dpilot compose validate FILE     # Structural problems in one file
  dpilot config init               # Create composepilot.yml from the best file
  dpilot config refresh            # Re-scan and merge new services
""",
    add_completion=False,
)

console = Console()
logger = get_logger(__name__)


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"dpilot {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug output"),
    log_file: Optional[str] = typer.Option(None, "--log-file", help="Also write logs to this file"),
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True, help="Show version and exit"
    ),
) -> None:
    """Global options."""
    set_console_level(verbose)
    if log_file:
        setup_file_logging(log_file=log_file, verbose=verbose)


# Attach modular subcommands
register_compose_commands(app, console)
register_config_commands(app, console)

if __name__ == "__main__":
    app()

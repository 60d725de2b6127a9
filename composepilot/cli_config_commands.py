"""Project configuration command group."""
from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from composepilot.cli_support import (
    find_config,
    handle_cli_error,
    print_error,
    print_info,
    print_success,
    print_warning,
)
from composepilot.config import ConfigPersistenceError, ProjectConfigManager, RefreshOutcome
from composepilot.core.lock import LockError, check_lock_status
from composepilot.discovery import NoCandidatesFound
from composepilot.models.config import ConfigValidationError, ProjectConfiguration

ConfigApp = typer.Typer(help="Create and update the project configuration", add_completion=False)

_console: Console = Console()

# Failures the config commands report instead of crashing
_CONFIG_ERRORS = (
    NoCandidatesFound,
    ConfigPersistenceError,
    ConfigValidationError,
    LockError,
    FileNotFoundError,
    NotADirectoryError,
)


def register_config_commands(app: typer.Typer, console: Console) -> None:
    """Attach config commands to the primary CLI."""
    global _console
    _console = console
    app.add_typer(ConfigApp, name="config")


@ConfigApp.command("init")
def config_init(
    directory: Path = typer.Argument(Path("."), help="Project directory to scan"),
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Configuration file (default: DIRECTORY/composepilot.yml)"),
    depth: Optional[int] = typer.Option(None, "--depth", "-d", min=0, help="Maximum directory depth (default: 6)"),
    force: bool = typer.Option(False, "--force", "-f", help="Replace an existing configuration"),
) -> None:
    """Create the project configuration from the best compose file."""
    config_path = find_config(config, root=directory)
    manager = ProjectConfigManager(config_path)

    if manager.store.exists() and not force:
        print_warning(_console, f"{escape(str(config_path))} already exists")
        _console.print("[dim]Use 'dpilot config refresh' to merge new services, or --force to start over[/dim]")
        raise typer.Exit(1)

    try:
        outcome = manager.refresh(directory, max_depth=depth, discard_existing=force)
    except _CONFIG_ERRORS as exc:
        handle_cli_error(exc, _console)

    _print_outcome(outcome, config_path)


@ConfigApp.command("refresh")
def config_refresh(
    directory: Path = typer.Argument(Path("."), help="Project directory to scan"),
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Configuration file (default: DIRECTORY/composepilot.yml)"),
    depth: Optional[int] = typer.Option(None, "--depth", "-d", min=0, help="Maximum directory depth (default: 6)"),
) -> None:
    """Re-scan and merge detected services into the configuration.

    Hand-written service entries are never modified.
    """
    config_path = find_config(config, root=directory)
    manager = ProjectConfigManager(config_path)

    try:
        outcome = manager.refresh(directory, max_depth=depth)
    except _CONFIG_ERRORS as exc:
        handle_cli_error(exc, _console)

    _print_outcome(outcome, config_path)


@ConfigApp.command("show")
def config_show(
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Configuration file"),
    as_json: bool = typer.Option(False, "--json", help="Print machine-readable JSON"),
) -> None:
    """Show the current project configuration."""
    config_path = find_config(config)
    manager = ProjectConfigManager(config_path)

    try:
        current = manager.load()
    except _CONFIG_ERRORS as exc:
        handle_cli_error(exc, _console)

    if current is None:
        print_error(_console, f"No configuration at {escape(str(config_path))}. Run 'dpilot config init' first.")
        raise typer.Exit(1)

    if as_json:
        typer.echo(json.dumps(current.to_document(), indent=2))
        return

    _render_config(current)

    holder = check_lock_status(config_path)
    if holder:
        print_warning(_console, f"Update in progress (PID {holder['pid']} since {holder['time']})")


@ConfigApp.command("set-service")
def config_set_service(
    name: str = typer.Argument(..., help="Service name"),
    port: Optional[int] = typer.Option(None, "--port", "-p", min=1, max=65535, help="Host port"),
    description: Optional[str] = typer.Option(None, "--description", help="Description"),
    restart: Optional[str] = typer.Option(None, "--restart", help="no, always, on-failure or unless-stopped"),
    scale: Optional[int] = typer.Option(None, "--scale", min=1, help="Replica count"),
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Configuration file"),
) -> None:
    """Add or edit a service entry by hand.

    Edited entries are marked user-authored and survive later refreshes.
    """
    manager = ProjectConfigManager(find_config(config))

    try:
        manager.set_service(name, port=port, description=description, restart=restart, scale=scale)
    except ValidationError as exc:
        print_error(_console, f"Invalid value for service '{escape(name)}':")
        for error in exc.errors():
            field = ".".join(str(part) for part in error['loc'])
            _console.print(f"  [dim]{escape(field)}:[/dim] {escape(error['msg'])}")
        raise typer.Exit(1) from exc
    except _CONFIG_ERRORS as exc:
        handle_cli_error(exc, _console)

    print_success(_console, f"Service '{escape(name)}' saved")


@ConfigApp.command("remove-service")
def config_remove_service(
    name: str = typer.Argument(..., help="Service name"),
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Configuration file"),
) -> None:
    """Remove a service entry."""
    manager = ProjectConfigManager(find_config(config))

    try:
        manager.remove_service(name)
    except KeyError as exc:
        print_error(_console, f"Service not found: {escape(name)}")
        raise typer.Exit(1) from exc
    except _CONFIG_ERRORS as exc:
        handle_cli_error(exc, _console)

    print_success(_console, f"Service '{escape(name)}' removed")


def _print_outcome(outcome: RefreshOutcome, config_path: Path) -> None:
    report = outcome.report
    winner = outcome.winner

    others = len(outcome.discovery.files) - 1
    suffix = f" (out of {others + 1} candidates)" if others else ""
    print_info(_console, f"Using {escape(winner.relative_path)}{suffix}")
    if winner.parse_error:
        print_warning(_console, f"{escape(winner.relative_path)} could not be parsed: {escape(winner.parse_error)}")

    for name in report.added:
        port = outcome.config.services[name].port
        port_text = f" (port {port})" if port else ""
        _console.print(f"  [green]+[/green] {escape(name)}{port_text}")
    for name in report.refreshed:
        _console.print(f"  [yellow]~[/yellow] {escape(name)}")
    for name in report.preserved:
        _console.print(f"  [dim]= {escape(name)} (user-authored, kept)[/dim]")

    if outcome.saved:
        print_success(_console, f"Configuration written to {escape(str(config_path))}")
    else:
        print_success(_console, "Configuration already up to date")


def _render_config(config: ProjectConfiguration) -> None:
    _console.print(f"[bold]Project:[/bold] {escape(config.project_name)}")
    _console.print(f"[bold]Invocation:[/bold] {escape(config.compose_invocation)}")

    if not config.services:
        print_warning(_console, "No services configured")
        return

    table = Table(show_header=True)
    table.add_column("Service", style="cyan")
    table.add_column("Port", justify="right")
    table.add_column("Restart", style="dim")
    table.add_column("Scale", justify="right")
    table.add_column("Source", style="dim")
    for name, entry in config.services.items():
        table.add_row(
            escape(name),
            str(entry.port) if entry.port else "-",
            entry.restart,
            str(entry.scale),
            "detected" if entry.detected else "user",
        )
    _console.print(table)

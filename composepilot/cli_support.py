"""Shared utilities for Compose Pilot CLI modules."""
from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from composepilot.config.store import DEFAULT_CONFIG_NAME


def find_config(config_path: Optional[str] = None, root: Optional[Path] = None) -> Path:
    """Locate the project configuration file.

    Order: explicit option, COMPOSEPILOT_CONFIG, then composepilot.yml in
    the project root (current directory when no root is given).
    """
    if config_path:
        return Path(config_path)

    if env_config := os.environ.get("COMPOSEPILOT_CONFIG"):
        return Path(env_config)

    return Path(root or Path.cwd()) / DEFAULT_CONFIG_NAME


def handle_cli_error(
    e: Exception,
    console: Console,
    verbose: bool = False,
    exit_code: int = 1
) -> None:
    """Handle CLI errors with consistent formatting.

    Args:
        e: Exception to handle
        console: Rich console for output
        verbose: Show exception traceback if True
        exit_code: Exit code to use
    """
    print_error(console, str(e))
    if verbose:
        console.print_exception()
    raise typer.Exit(exit_code)


def print_success(console: Console, message: str, prefix: str = "✓") -> None:
    """Print success message with consistent formatting."""
    console.print(f"[green]{prefix}[/green] {message}")


def print_error(console: Console, message: str, prefix: str = "✗") -> None:
    """Print error message with consistent formatting."""
    console.print(f"[red]{prefix}[/red] {message}")


def print_warning(console: Console, message: str, prefix: str = "⚠") -> None:
    """Print warning message with consistent formatting."""
    console.print(f"[yellow]{prefix}[/yellow] {message}")


def print_info(console: Console, message: str, prefix: str = "ℹ") -> None:
    """Print info message with consistent formatting."""
    console.print(f"[cyan]{prefix}[/cyan] {message}")

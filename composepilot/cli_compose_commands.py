"""Docker Compose command group."""
from __future__ import annotations

import json
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from composepilot.cli_support import print_error, print_success, print_warning
from composepilot.discovery import ComposeDiscovery
from composepilot.discovery.path_scanner import find_default_compose_file
from composepilot.models.compose import FailureKind, ParseFailure
from composepilot.models.validation import Severity, ValidationFinding
from composepilot.services.docker_compose import ComposeFileParser, ValidationReporter, has_errors

ComposeApp = typer.Typer(help="Discover, analyze and validate Docker Compose files", add_completion=False)

_console: Console = Console()


def register_compose_commands(app: typer.Typer, console: Console) -> None:
    """Attach compose commands to the primary CLI."""
    global _console
    _console = console
    app.add_typer(ComposeApp, name="compose")


@ComposeApp.command("list")
def compose_list(
    directory: Path = typer.Argument(Path("."), help="Project directory to search"),
    depth: Optional[int] = typer.Option(None, "--depth", "-d", min=0, help="Maximum directory depth (default: 6)"),
    variants: bool = typer.Option(True, "--variants/--no-variants", help="Include dev/test/prod variant files"),
    include_empty: bool = typer.Option(False, "--include-empty", help="Include zero-byte files"),
    as_json: bool = typer.Option(False, "--json", help="Print machine-readable JSON"),
) -> None:
    """List compose files below DIRECTORY, best candidate first."""
    try:
        result = ComposeDiscovery().discover(
            directory,
            max_depth=depth,
            include_variants=variants,
            include_empty=include_empty,
        )
    except (FileNotFoundError, NotADirectoryError) as exc:
        print_error(_console, str(exc))
        raise typer.Exit(1) from exc

    if as_json:
        payload = {
            'root': str(result.root),
            'files': [f.to_dict() for f in result.files],
            'warnings': [{'path': str(w.path), 'message': w.message} for w in result.warnings],
            'timed_out': result.timed_out,
        }
        typer.echo(json.dumps(payload, indent=2))
        return

    if not result.files:
        print_warning(_console, f"No compose files found in {escape(str(result.root))}")
        return

    _console.print(f"[bold]Found {len(result.files)} compose file(s)[/bold]\n")

    table = Table(show_header=True)
    table.add_column("#", style="dim", justify="right")
    table.add_column("File", style="cyan")
    table.add_column("Env", style="magenta")
    table.add_column("Services", style="bold")
    table.add_column("Size", style="dim", justify="right")
    table.add_column("Modified", style="dim")
    table.add_column("Score", style="dim", justify="right")
    for index, discovered in enumerate(result.files, start=1):
        name = escape(discovered.relative_path)
        if discovered.is_root_candidate and discovered.is_main_file:
            name = f"{name} 🎯"
        if discovered.services:
            services = escape(", ".join(discovered.services))
        elif _not_parsed(result, discovered):
            services = "[yellow]not parsed[/yellow]"
        elif discovered.parse_error:
            services = "[red]unparseable[/red]"
        else:
            services = "[dim]none[/dim]"
        if discovered.is_override:
            env = "override"
        else:
            env = discovered.environment.value if not discovered.is_main_file else "-"
        table.add_row(
            str(index),
            name,
            env,
            services,
            discovered.size_human,
            discovered.modified_at.strftime("%Y-%m-%d %H:%M"),
            str(discovered.priority_score),
        )
    _console.print(table)

    for warning in result.warnings:
        print_warning(_console, f"{escape(str(warning.path))}: {warning.message}")
    if result.timed_out:
        print_warning(_console, "Scan timed out; results are partial")

    _console.print(f"\n[dim]Selected:[/dim] {escape(result.winner.relative_path)}")
    if result.winner.is_override:
        print_warning(
            _console,
            "The selected file is an override file; docker compose normally merges it over a base file",
        )


def _not_parsed(result, discovered) -> bool:
    parsed = result.documents.get(discovered.path)
    return isinstance(parsed, ParseFailure) and parsed.kind is FailureKind.NOT_PARSED


@ComposeApp.command("find")
def compose_find(
    directory: Path = typer.Argument(Path("."), help="Project directory to search"),
    depth: int = typer.Option(8, "--depth", "-d", min=0, help="Maximum directory depth"),
) -> None:
    """Print ranked compose file paths, one per line."""
    try:
        result = ComposeDiscovery().discover(directory, max_depth=depth, include_empty=True)
    except (FileNotFoundError, NotADirectoryError) as exc:
        print_error(_console, str(exc))
        raise typer.Exit(1) from exc

    if not result.files:
        print_warning(_console, f"No compose files found in {escape(str(result.root))}")
        return

    for discovered in result.files:
        typer.echo(discovered.relative_path)


@ComposeApp.command("analyze")
def compose_analyze(
    source: Path = typer.Argument(..., help="Path to a compose file"),
) -> None:
    """Summarize the services declared in a compose file."""
    parsed = ComposeFileParser().parse(source)
    if isinstance(parsed, ParseFailure):
        print_error(_console, f"Failed to analyze {escape(str(source))}: {parsed.message}")
        raise typer.Exit(1)

    _console.print(f"[bold]📄 {escape(source.name)}[/bold]")
    if parsed.version:
        _console.print(f"[dim]Version:[/dim] {escape(parsed.version)}")

    if parsed.services:
        table = Table(title=f"Services ({len(parsed.services)})", show_header=True)
        table.add_column("Service", style="cyan")
        table.add_column("Image / Build", style="bold")
        table.add_column("Ports", style="blue")
        table.add_column("Depends on", style="dim")
        for service in parsed.services:
            if service.image:
                origin = escape(service.image)
            elif service.build_context:
                origin = escape(f"build: {service.build_context}")
            else:
                origin = "[red]missing[/red]"
            table.add_row(
                escape(service.name),
                origin,
                ", ".join(str(p) for p in service.ports) or "-",
                ", ".join(service.dependency_names) or "-",
            )
        _console.print(table)
    else:
        print_warning(_console, "No services declared")

    if parsed.networks:
        _console.print(f"[cyan]Networks:[/cyan] {escape(', '.join(parsed.networks))}")
    if parsed.volumes:
        _console.print(f"[cyan]Volumes:[/cyan] {escape(', '.join(parsed.volumes))}")
    for issue in parsed.issues:
        where = f"{issue.service}." if issue.service else ""
        print_warning(_console, escape(f"Skipped {where}{issue.key}: {issue.message}"))

    print_success(_console, "Compose analysis complete")


@ComposeApp.command("validate")
def compose_validate(
    source: Path = typer.Argument(..., help="Path to a compose file"),
    as_json: bool = typer.Option(False, "--json", help="Print machine-readable JSON"),
) -> None:
    """Report structural problems in a compose file.

    Exits with status 1 when any error-level finding is present.
    """
    findings = ValidationReporter().validate(source)

    if as_json:
        typer.echo(json.dumps({
            'file': str(source),
            'valid': not has_errors(findings),
            'findings': [f.to_dict() for f in findings],
        }, indent=2))
    else:
        _render_findings(source, findings)

    if has_errors(findings):
        raise typer.Exit(1)


def _render_findings(source: Path, findings: List[ValidationFinding]) -> None:
    if not findings:
        print_success(_console, f"{escape(str(source))} looks good")
        return

    table = Table(title=f"Findings for {escape(source.name)}", show_header=True)
    table.add_column("Severity")
    table.add_column("Code", style="bold")
    table.add_column("Service", style="cyan")
    table.add_column("Message")
    for finding in findings:
        severity = "[red]error[/red]" if finding.severity is Severity.ERROR else "[yellow]warning[/yellow]"
        table.add_row(severity, finding.code.value, escape(finding.service_name or "-"), escape(finding.message))
    _console.print(table)

    errors = sum(1 for f in findings if f.is_error)
    warnings = len(findings) - errors
    summary = f"{errors} error(s), {warnings} warning(s)"
    if errors:
        print_error(_console, summary)
    else:
        print_warning(_console, summary)


@ComposeApp.command("services")
def compose_services(
    source: Optional[Path] = typer.Argument(None, help="Compose file (default: docker-compose.yml/compose.yml here)"),
) -> None:
    """List the service names declared in a compose file."""
    path = source or find_default_compose_file(Path.cwd())
    parsed = ComposeFileParser().parse(path)
    if isinstance(parsed, ParseFailure):
        print_error(_console, f"{escape(str(path))}: {parsed.message}")
        raise typer.Exit(1)

    if not parsed.services:
        print_warning(_console, f"No services in {escape(path.name)}")
        return

    _console.print(f"[bold]Services in {escape(path.name)} ({len(parsed.services)}):[/bold]")
    for index, name in enumerate(parsed.service_names, start=1):
        _console.print(f"  {index}. {escape(name)}")

#!/usr/bin/env python3
"""
Command-line interface for dotstrap.

This module provides the commands that bootstrap a user environment from a
dotfiles tree: a full install, symlinks only, a read-only version check, and
package manager detection.
"""

import os
import sys
from pathlib import Path
from typing import List, Optional

import click
from rich.console import Console
from rich.table import Table
from rich.panel import Panel

from .core.errors import DotstrapError, StepFailed
from .core.environment import EnvironmentDetector
from .core.host import XdgDirs
from .core.manifest import load_manifest
from .core.orchestrator import Orchestrator, RunReport, ToolCheck
from .core.provisioner import ProvisionStatus
from .core.runner import CommandRunner
from .core.symlinks import LinkStatus, SyncReport, SyncStatus
from .utils.logger import setup_logging
from .utils.platform import PlatformDetector
from .utils.path import display_path

# Rich console for formatted output
console = Console()


def build_orchestrator(ctx) -> Orchestrator:
    """Load the manifest and wire an orchestrator for this invocation."""
    platform = PlatformDetector()
    home = platform.home_dir
    xdg = XdgDirs.from_environ(os.environ, home)
    variables = dict(xdg.variables(), HOME=str(home))

    try:
        manifest = load_manifest(ctx.obj['dotfiles'], variables, home, ctx.obj['manifest'])
    except DotstrapError as e:
        console.print(f"[red]Failed to load manifest: {e}[/red]")
        sys.exit(1)

    return Orchestrator(
        manifest=manifest,
        xdg=xdg,
        dotfiles_dir=ctx.obj['dotfiles'],
        runner=CommandRunner(),
        platform=platform,
    )


def format_sync_report(report: SyncReport, home: Path) -> None:
    """Format and display a symlink synchronization report."""
    table = Table(show_header=True, header_style="bold blue")
    table.add_column("Destination", style="cyan", no_wrap=True)
    table.add_column("Source", style="magenta")
    table.add_column("Result", style="green")

    status_color = {
        LinkStatus.LINKED: "green",
        LinkStatus.RELINKED: "green",
        LinkStatus.BACKED_UP: "yellow",
        LinkStatus.UNCHANGED: "dim",
        LinkStatus.FAILED: "red bold",
    }

    for result in report.results:
        color = status_color.get(result.status, "white")
        table.add_row(
            display_path(result.spec.destination, home),
            result.spec.source,
            f"[{color}]{result.status.value}[/]",
        )
    console.print(table)

    if report.backup_dir:
        console.print(f"[yellow]Displaced files were moved to {report.backup_dir}[/yellow]")

    if report.status == SyncStatus.NO_CHANGES:
        console.print("[dim]All links already up to date.[/dim]")
    elif report.status == SyncStatus.PARTIAL:
        console.print(f"[yellow]⚠ Partial success: {report.changed} changed, {report.failed} failed[/yellow]")
    elif report.status == SyncStatus.ERROR:
        console.print("[red]✗ No link could be synchronized[/red]")
        for error in report.errors:
            console.print(f"  - {error}")


def format_outcomes(report: RunReport) -> None:
    """Display how each tool requirement was satisfied."""
    if not report.outcomes:
        return

    labels = {
        ProvisionStatus.SATISFIED: "[green]already satisfied[/green]",
        ProvisionStatus.INSTALLED: "[green]installed by package manager[/green]",
        ProvisionStatus.FALLBACK_USED: "[yellow]installed by fallback[/yellow]",
    }

    table = Table(show_header=True, header_style="bold blue")
    table.add_column("Tool", style="cyan", no_wrap=True)
    table.add_column("Version", style="magenta")
    table.add_column("Outcome")
    for outcome in report.outcomes:
        table.add_row(outcome.command, outcome.version or "-", labels[outcome.status])
    console.print(table)


def format_checks(checks: List[ToolCheck]) -> Table:
    """Format a read-only tool check as a rich table."""
    table = Table(show_header=True, header_style="bold blue")
    table.add_column("Tool", style="cyan", no_wrap=True)
    table.add_column("Minimum", style="blue")
    table.add_column("Installed", style="magenta")
    table.add_column("Repository", style="magenta")
    table.add_column("Status")

    for check in checks:
        status = "[green]ok[/green]" if check.satisfied else "[yellow]needs update[/yellow]"
        table.add_row(
            check.command,
            check.minimum,
            check.installed or "-",
            check.candidate or "-",
            status,
        )
    return table


# Main CLI group
@click.group()
@click.option('--dotfiles', type=click.Path(file_okay=False, path_type=Path),
              default=Path.cwd, help='Root of the dotfiles tree (default: current directory)')
@click.option('--manifest', type=click.Path(dir_okay=False, path_type=Path),
              help='Manifest file (default: dotstrap.yaml in the dotfiles tree)')
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose logging')
@click.option('--log-file', type=click.Path(path_type=Path), help='Log file path')
@click.pass_context
def cli(ctx, dotfiles: Path, manifest: Optional[Path], verbose: bool, log_file: Optional[Path]):
    """dotstrap - bootstrap a user environment from a dotfiles tree."""
    ctx.ensure_object(dict)

    setup_logging(
        level='DEBUG' if verbose else 'INFO',
        log_file=log_file,
        verbose=verbose
    )

    ctx.obj['dotfiles'] = dotfiles.resolve()
    ctx.obj['manifest'] = manifest
    ctx.obj['verbose'] = verbose


@cli.command()
@click.pass_context
def install(ctx):
    """Install packages and tools, then link dotfiles."""
    orchestrator = build_orchestrator(ctx)

    try:
        report = orchestrator.run()
    except StepFailed as e:
        console.print(f"[red]✗ {e.stage.description} failed: {e.cause}[/red]")
        console.print("[dim]Fix the problem and run the command again; completed steps are safe to repeat.[/dim]")
        sys.exit(1)

    format_outcomes(report)
    if report.sync:
        format_sync_report(report.sync, orchestrator.platform.home_dir)

    if not report.succeeded:
        sys.exit(1)

    console.print(Panel(
        "[green]✓ Setup complete![/green]\n"
        "[dim]Restart your shell or run 'source ~/.bashrc' to apply changes.[/dim]",
        title="dotstrap"
    ))


@cli.command()
@click.pass_context
def link(ctx):
    """Only synchronize dotfile symlinks."""
    orchestrator = build_orchestrator(ctx)

    try:
        report = orchestrator.run_links_only()
    except StepFailed as e:
        console.print(f"[red]✗ {e.stage.description} failed: {e.cause}[/red]")
        sys.exit(1)

    format_sync_report(report.sync, orchestrator.platform.home_dir)
    if not report.succeeded:
        sys.exit(1)


@cli.command()
@click.pass_context
def check(ctx):
    """Show installed and repository versions of required tools."""
    orchestrator = build_orchestrator(ctx)

    try:
        checks = orchestrator.check_tools()
    except DotstrapError as e:
        console.print(f"[red]Failed to check tools: {e}[/red]")
        sys.exit(1)

    console.print(format_checks(checks))
    console.print(f"\n[dim]Package manager: {orchestrator.report.strategy.name}[/dim]")


@cli.command()
def detect():
    """Show the detected package manager and host facts."""
    platform = PlatformDetector()

    try:
        strategy = EnvironmentDetector(CommandRunner(), platform).detect(prewarm=False)
    except DotstrapError as e:
        console.print(f"[red]✗ {e}[/red]")
        sys.exit(1)

    info = platform.get_system_info()
    console.print(Panel(
        f"[cyan]Package manager:[/cyan] {strategy.name}\n"
        f"[cyan]Update:[/cyan] {' '.join(strategy.update_args())}\n"
        f"[cyan]Install:[/cyan] {' '.join(strategy.install_args([]))} <packages>\n"
        f"[cyan]Baseline:[/cyan] {', '.join(strategy.baseline_packages)}\n"
        f"[cyan]Platform:[/cyan] {info['os_type']} ({info['machine']})\n"
        f"[cyan]Acting user:[/cyan] {info['acting_user']}",
        title="Environment"
    ))


def main():
    """Main entry point for the CLI."""
    try:
        cli()
    except KeyboardInterrupt:
        console.print("\n[yellow]Operation cancelled by user.[/yellow]")
        sys.exit(1)


if __name__ == '__main__':
    main()

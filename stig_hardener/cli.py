"""
Command Line Interface for the STIG hardener.

Checks and remediates individual Windows STIG controls. The process
exit code is the machine-readable result: 0 when every requested
control is compliant, 1 otherwise (including indeterminate state).
"""

import logging
import sys
from typing import List, Optional, Tuple

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from . import __version__
from .core.comparator import divergence
from .core.config import load_config
from .core.errors import StigHardenerError
from .core.models import ComplianceResult, Control, ProviderKind, RuleSeverity
from .core.runner import ControlRunner
from .reporting.console import format_severity, render_check_table, render_remediation
from .reporting.generator import ReportEntry, ReportGenerator, RunReport
from .utils.host import detect_system, is_admin, is_windows


console = Console()

EXIT_COMPLIANT = 0
EXIT_NOT_COMPLIANT = 1


def configure_logging(verbose: bool) -> None:
    """Route log records through rich."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=verbose, show_path=verbose)],
        force=True,
    )


def check_privileges():
    """Check if running with administrative privileges."""
    if not is_admin():
        console.print(
            "[red]Error: Administrative privileges required![/red]\n"
            "Run from an elevated prompt (Run as Administrator) or pass --force."
        )
        sys.exit(EXIT_NOT_COMPLIANT)


def warn_if_not_windows():
    if not is_windows():
        console.print("[yellow]Warning: not running on Windows; provider commands will fail "
                      "and every control will be reported as not compliant.[/yellow]")


def _write_report(ctx, operation: str, entries: List[ReportEntry], output: Optional[str]) -> None:
    if not output:
        return
    runner: ControlRunner = ctx.obj['runner']
    report = RunReport(
        operation=operation,
        system_info=detect_system(runner.providers.runner),
        entries=entries,
    )
    path = ReportGenerator().generate_report(report, output)
    console.print(f"\n[green]Report saved to: {escape(path)}[/green]")


@click.group()
@click.version_option(version=__version__)
@click.option('--config', '-c', type=click.Path(dir_okay=False), help="Path to YAML configuration file")
@click.option('--verbose', '-v', is_flag=True, help="Enable verbose output")
@click.pass_context
def cli(ctx, config: Optional[str], verbose: bool):
    """
    STIG Hardener

    Check and remediate individual Windows 11 STIG controls backed by the
    registry, advanced audit policy and resultant Group Policy.
    """
    configure_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj['verbose'] = verbose

    try:
        tool_config = load_config(config)
        ctx.obj['config'] = tool_config
        ctx.obj['runner'] = ControlRunner(config=tool_config)
    except StigHardenerError as e:
        console.print(f"[red]Failed to initialize: {escape(str(e))}[/red]")
        sys.exit(EXIT_NOT_COMPLIANT)


@cli.command()
@click.argument('control_ids', nargs=-1)
@click.option('--all', 'check_all', is_flag=True, help="Check every known control")
@click.option('--output', '-o', help="Write a report file (.json or .html)")
@click.pass_context
def check(ctx, control_ids: Tuple[str, ...], check_all: bool, output: Optional[str]):
    """
    Check controls without making changes.

    Exits 0 only if every requested control is compliant.
    """
    runner: ControlRunner = ctx.obj['runner']

    if not control_ids and not check_all:
        raise click.UsageError("Give one or more control ids or --all")

    warn_if_not_windows()

    try:
        if check_all:
            controls = runner.loader.get_controls()
        else:
            controls = [runner.loader.get_control(control_id) for control_id in control_ids]
    except StigHardenerError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        sys.exit(EXIT_NOT_COMPLIANT)

    results: List[Tuple[Control, ComplianceResult]] = []
    for control in controls:
        results.append((control, runner.check(control)))

    render_check_table(console, results)
    _write_report(ctx, "check", [ReportEntry.from_check(c, r) for c, r in results], output)

    compliant = bool(results) and all(result.passed for _, result in results)
    sys.exit(EXIT_COMPLIANT if compliant else EXIT_NOT_COMPLIANT)


@cli.command()
@click.argument('control_id')
@click.option('--persist/--no-persist', default=None,
              help="Register the control's reapplication task after a successful write")
@click.option('--dry-run', '-n', is_flag=True, help="Show what would be done without applying")
@click.option('--force', is_flag=True, help="Skip privilege check and confirmation")
@click.option('--output', '-o', help="Write a report file (.json or .html)")
@click.pass_context
def remediate(ctx, control_id: str, persist: Optional[bool], dry_run: bool, force: bool,
              output: Optional[str]):
    """
    Remediate one control and confirm the result.

    Prints the before and after state; exits 0 only if the control is
    compliant after the write has been re-read.
    """
    runner: ControlRunner = ctx.obj['runner']

    if not force and not dry_run:
        check_privileges()

    warn_if_not_windows()

    try:
        control = runner.loader.get_control(control_id)
    except StigHardenerError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        sys.exit(EXIT_NOT_COMPLIANT)

    if persist is None:
        persist = ctx.obj['config'].persist_by_default

    if not force and not dry_run:
        console.print(
            "[yellow]Warning: this changes machine-wide security configuration![/yellow]\n"
            f"Control: {control.id} - {escape(control.title)}"
        )
        if not click.confirm("Do you want to continue?"):
            console.print("Operation cancelled.")
            sys.exit(EXIT_NOT_COMPLIANT)

    try:
        outcome = runner.remediate(control, persist=persist, dry_run=dry_run)
    except StigHardenerError as e:
        console.print(f"[red]Remediation failed: {escape(str(e))}[/red]")
        sys.exit(EXIT_NOT_COMPLIANT)

    render_remediation(console, outcome)
    _write_report(ctx, "dry-run" if dry_run else "remediate",
                  [ReportEntry.from_remediation(control, outcome)], output)

    sys.exit(outcome.exit_code)


@cli.group()
def controls():
    """Inspect the control catalogue."""
    pass


@controls.command('list')
@click.option('--provider', type=click.Choice([k.value for k in ProviderKind]), help="Filter by provider")
@click.option('--severity', type=click.Choice([s.value for s in RuleSeverity]), help="Filter by severity")
@click.pass_context
def list_controls(ctx, provider: Optional[str], severity: Optional[str]):
    """List available controls."""
    runner: ControlRunner = ctx.obj['runner']

    catalogue = runner.loader.get_controls(
        provider=ProviderKind(provider) if provider else None,
        severity=RuleSeverity(severity) if severity else None
    )

    table = Table(title="Available STIG Controls")
    table.add_column("ID", style="dim")
    table.add_column("Title")
    table.add_column("Severity")
    table.add_column("Provider")
    table.add_column("Remediation")

    for control in catalogue:
        table.add_row(
            control.id,
            escape(control.title),
            format_severity(control.severity),
            control.provider.value,
            "yes" if control.remediation else "check only"
        )

    console.print(table)


@controls.command('show')
@click.argument('control_id')
@click.pass_context
def show_control(ctx, control_id: str):
    """Show detailed information about a control."""
    runner: ControlRunner = ctx.obj['runner']

    try:
        control = runner.loader.get_control(control_id)
    except StigHardenerError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        sys.exit(EXIT_NOT_COMPLIANT)

    identity = control.rule.identity
    details = (
        f"[bold]{escape(control.title)}[/bold]\n\n"
        f"[dim]ID:[/dim] {control.id}\n"
        f"[dim]Severity:[/dim] {control.severity.value.upper()}\n"
        f"[dim]Provider:[/dim] {identity.kind.value}\n"
        f"[dim]Setting:[/dim] {escape(identity.display_name)}\n"
        f"[dim]Requirement:[/dim] {escape(control.rule.describe())}\n"
    )
    if identity.kind == ProviderKind.AUDIT_SUBCATEGORY:
        details += f"[dim]Report mode:[/dim] {identity.report_mode.value}\n"
    if control.prerequisites:
        details += f"[dim]Prerequisites:[/dim] {', '.join(control.prerequisites)}\n"
    details += f"[dim]Persistence:[/dim] {control.persistence.value}\n"
    if control.description:
        details += f"\n[dim]Description:[/dim]\n{escape(control.description.strip())}\n"

    console.print(Panel(details, title="Control Details"))

    note = divergence(control.rule, control.remediation)
    if note:
        console.print(f"[yellow]Divergence: {escape(note)}[/yellow]")
    for line in control.notes:
        console.print(f"[dim]Note:[/dim] {escape(line.strip())}")


def main():
    """Main CLI entry point."""
    cli()


if __name__ == "__main__":
    main()

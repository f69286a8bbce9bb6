"""
Console rendering of check and remediation results with rich.
"""

from typing import Any, Dict, Iterable, Tuple

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from ..core.models import ComplianceResult, ComplianceStatus, Control, RemediationOutcome


STATUS_COLORS = {
    ComplianceStatus.PASS: "green",
    ComplianceStatus.MISMATCH: "red",
    ComplianceStatus.NOT_FOUND: "red",
    ComplianceStatus.PROVIDER_UNAVAILABLE: "yellow",
    ComplianceStatus.PARSE_FAILURE: "yellow",
    ComplianceStatus.WRITE_REJECTED: "red bold",
}

SEVERITY_COLORS = {
    "high": "red bold",
    "medium": "yellow",
    "low": "blue",
}


def format_status(status: ComplianceStatus) -> str:
    color = STATUS_COLORS.get(status, "white")
    return f"[{color}]{status.value.upper()}[/{color}]"


def format_severity(severity) -> str:
    color = SEVERITY_COLORS.get(severity.value, "white")
    return f"[{color}]{severity.value.upper()}[/{color}]"


def format_value(parsed: Dict[str, Any]) -> str:
    """Compact rendering of a normalized record."""
    if not parsed:
        return "-"
    if "value" in parsed:
        return f"{parsed['value']!r} ({parsed.get('type', '?')})"
    if "setting" in parsed:
        return str(parsed["setting"])
    return ", ".join(f"{k}={v}" for k, v in parsed.items() if k in ("Success", "Failure"))


def render_state(console: Console, label: str, result: ComplianceResult) -> None:
    """Print a before/after state summary."""
    console.print(Panel(
        f"[dim]Setting:[/dim] {escape(result.rule.identity.display_name)}\n"
        f"[dim]Required:[/dim] {escape(result.rule.describe())}\n"
        f"[dim]Observed:[/dim] {escape(format_value(result.observed.parsed))}\n"
        f"[dim]Status:[/dim] {format_status(result.status)}\n"
        + (f"[dim]Details:[/dim] {escape(result.message)}" if result.message else ""),
        title=label
    ))


def render_check_table(console: Console, results: Iterable[Tuple[Control, ComplianceResult]]) -> None:
    """Display check results in table format."""
    table = Table(title="STIG Control Checks")
    table.add_column("Control", style="dim")
    table.add_column("Title")
    table.add_column("Severity")
    table.add_column("Observed")
    table.add_column("Status")
    table.add_column("Message", max_width=50)

    passed = total = 0
    for control, result in results:
        total += 1
        passed += result.passed
        table.add_row(
            control.id,
            escape(control.title),
            format_severity(control.severity),
            escape(format_value(result.observed.parsed)),
            format_status(result.status),
            escape(result.message or "")
        )

    console.print(table)
    color = "green" if total and passed == total else "red"
    console.print(f"[{color}]{passed}/{total} controls compliant[/{color}]")


def render_remediation(console: Console, outcome: RemediationOutcome, indent: str = "") -> None:
    """Print before state, write, prerequisites and after state of a remediation."""
    console.print(f"\n{indent}[bold]{outcome.control_id}[/bold] - {escape(outcome.control_title)}")
    render_state(console, f"{outcome.control_id} before", outcome.before)

    for prerequisite in outcome.prerequisites:
        console.print(f"{indent}[dim]Prerequisite {prerequisite.control_id}:[/dim] "
                      f"{format_status(prerequisite.final.status)}")

    if outcome.write is not None:
        result = outcome.write.result
        state = "[green]ok[/green]" if result.success else f"[red]exit {result.exit_code}[/red]"
        console.print(f"{indent}[dim]Write:[/dim] {state}")
        render_state(console, f"{outcome.control_id} after", outcome.write.after)

    if outcome.persistence is not None:
        mark = "[green]registered[/green]" if outcome.persistence.registered else "[yellow]not registered[/yellow]"
        console.print(f"{indent}[dim]Persistence ({outcome.persistence.strategy.value}):[/dim] "
                      f"{mark} {escape(outcome.persistence.message or '')}")

    if outcome.message:
        console.print(f"{indent}{escape(outcome.message)}")

    verdict = "[green]COMPLIANT[/green]" if outcome.passed else "[red]NOT COMPLIANT[/red]"
    console.print(f"{indent}Result: {verdict} (exit {outcome.exit_code})")

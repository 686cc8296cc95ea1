"""Human-readable output for scan, audit and update."""

from __future__ import annotations

from rich.console import Console
from rich.markup import escape

from revise_deps.auditor import AuditSummary
from revise_deps.classifier import DependencyStatus
from revise_deps.scanner import DependencyCheck, ScanResult
from revise_deps.updater import PackageUpdate, UpdateResult

SEVERITY_COLORS = {
    "critical": "red bold",
    "high": "red",
    "moderate": "yellow",
    "low": "cyan",
    "info": "dim",
}


def make_console(stderr: bool = False) -> Console:
    """Console that never hard-wraps, so output stays grep-friendly."""
    return Console(stderr=stderr, soft_wrap=True, highlight=False)


def format_check(check: DependencyCheck) -> str:
    name = escape(check.name)
    declared = escape(str(check.declared))
    if check.status == DependencyStatus.OUTDATED:
        return f"[yellow]{name}[/]: [red]{declared}[/] -> [green]{escape(check.latest or '')}[/]"
    if check.status == DependencyStatus.UP_TO_DATE:
        return f"[yellow]{name}[/]: [green]{declared}[/] (up-to-date)"
    return f"[red]{escape(check.error or '')}[/]"


def print_scan_report(result: ScanResult, console: Console, err_console: Console) -> None:
    """Print every checked dependency grouped by section, in manifest order."""
    for section in result.sections:
        checks = result.in_section(section)
        if not checks:
            continue
        console.print(f"\n[green]{section}:[/]")
        for check in checks:
            if check.status.checked:
                console.print(format_check(check))
            else:
                err_console.print(format_check(check))


def remediation_commands(result: ScanResult, npm_command: str = "npm") -> list[str]:
    return [f"{npm_command} install {name}@latest --save" for name in result.outdated]


def print_remediation(result: ScanResult, console: Console, npm_command: str = "npm") -> None:
    commands = remediation_commands(result, npm_command)
    if commands:
        console.print("\n[blue]Run the following commands to update dependencies:[/]")
        for command in commands:
            console.print(f"[green]{escape(command)}[/]")
    else:
        console.print("[green]All dependencies are up-to-date.[/]")


def print_audit_summary(summary: AuditSummary, console: Console) -> None:
    if summary.clean:
        console.print("[green]No vulnerabilities found.[/]")
        return
    for severity, count in summary.nonzero():
        color = SEVERITY_COLORS.get(severity, "red")
        console.print(f"[{color}]{escape(severity)}: {count}[/]")


def print_package_update(update: PackageUpdate, console: Console, err_console: Console) -> None:
    if update.status == "failed":
        err_console.print(f"[red]{escape(update.message)}[/]")
    elif update.status == "dry-run":
        console.print(f"[yellow]{escape(update.message)}[/]")
    else:
        console.print(f"[green]{escape(update.message)}[/]")


def print_update_summary(result: UpdateResult, console: Console) -> None:
    if not result.updates or result.updates[0].status == "dry-run":
        return
    console.print(
        f"\n[bold]Summary:[/] {len(result.updated)} updated, {len(result.failures)} failed"
    )

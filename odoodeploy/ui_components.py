"""
odoodeploy - UI Components
Standardized headers, report tables and summaries
"""

from typing import Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from odoodeploy.models.config import DeploymentConfig
from odoodeploy.models.results import ProvisionReport, StepStatus

PREFIX = "[bold color(214)]odoodeploy[/bold color(214)] [dim]›[/dim]"

STATUS_STYLES = {
    StepStatus.EXECUTED: "[green]executed[/green]",
    StepStatus.SKIPPED: "[dim]skipped[/dim]",
    StepStatus.FAILED: "[red]failed[/red]",
    StepStatus.BLOCKED: "[yellow]blocked[/yellow]",
}


def show_header(
    title: str,
    subtitle: str = None,
    details: dict = None,
    console: Console = None,
):
    """
    Display a standardized command header.

    Args:
        title: Main title (e.g., "Provision Host")
        subtitle: Optional subtitle line
        details: Additional key-value pairs to display
        console: Rich Console instance (creates new if None)
    """
    if console is None:
        console = Console()

    console.print(f" {PREFIX} [bold white]{title}[/bold white]")

    if subtitle:
        console.print(f" {PREFIX} [dim]{subtitle}[/dim]")

    if details:
        for key, value in details.items():
            console.print(f" {PREFIX} {key}: [cyan]{escape(str(value))}[/cyan]")

    console.print()


def report_table(report: ProvisionReport) -> Table:
    """Build the terminal report table for a provisioning run."""
    table = Table(title="Provisioning Report", title_justify="left", padding=(0, 1))
    table.add_column("Step", style="cyan", no_wrap=True)
    table.add_column("Status")
    table.add_column("Idempotency", style="dim")
    table.add_column("Policy", style="dim")
    table.add_column("Time", justify="right", style="dim")

    for outcome in report.outcomes:
        table.add_row(
            outcome.name,
            STATUS_STYLES[outcome.status],
            outcome.idempotency,
            outcome.policy,
            f"{outcome.duration_seconds:.1f}s",
        )
    return table


def show_report(report: ProvisionReport, console: Console) -> None:
    """Print the report table, totals and any manual remedies."""
    console.print()
    console.print(report_table(report))
    console.print(
        f"\n[bold]{len(report.executed)}[/bold] executed, "
        f"[bold]{len(report.skipped)}[/bold] skipped, "
        f"[bold]{len(report.failed)}[/bold] failed"
    )

    failed = [o for o in report.outcomes if o.status in (StepStatus.FAILED, StepStatus.BLOCKED)]
    if failed:
        console.print("\n[bold yellow]Needs attention:[/bold yellow]")
        for outcome in failed:
            console.print(f"  [yellow]⚠ {outcome.name}[/yellow] [dim]{escape(outcome.message)}[/dim]")
            if outcome.remediation:
                console.print(f"    [dim]To fix:[/dim] [cyan]{escape(outcome.remediation)}[/cyan]")


def show_summary(
    config: DeploymentConfig,
    site_path: Optional[str] = None,
    console: Console = None,
) -> None:
    """Print where things live and how to operate the stack."""
    if console is None:
        console = Console()

    compose = config.compose_file
    console.print("\n[bold cyan]━━━ Deployment ━━━[/bold cyan]")
    console.print(f"  Open:    [cyan]{config.url}[/cyan]")
    console.print("  [dim]Database manager (master) password is stored in odoo.conf[/dim]")
    console.print("\n[bold]Files:[/bold]")
    console.print(f"  Compose: {compose}")
    console.print(f"  Config:  {config.conf_file}")
    console.print(f"  Addons:  {config.addons_dir}")
    if site_path:
        console.print(f"  Nginx:   {site_path}")
    console.print("\n[bold]Docker:[/bold]")
    console.print(f"  [cyan]docker compose -f {compose} ps[/cyan]")
    console.print(f"  [cyan]docker compose -f {compose} logs -f odoo[/cyan]\n")

"""odoodeploy - Provision command"""

import click
from rich.markup import escape
from rich.panel import Panel

from odoodeploy.base import BaseCommand
from odoodeploy.commands.options import deployment_options, log_options
from odoodeploy.constants import HEALTH_LOG_TAIL, ODOO_SERVICE
from odoodeploy.core.sequencer import ProvisioningSequencer, running_as_root
from odoodeploy.core.steps import HostAdapters, build_steps
from odoodeploy.exceptions import ProvisioningError
from odoodeploy.models.results import StepStatus
from odoodeploy.services.command_runner import CommandRunner
from odoodeploy.ui_components import show_report, show_summary


class ProvisionCommand(BaseCommand):
    """Take the host to a running, TLS-secured Odoo stack."""

    # Seams for tests: swap in fake adapters / privilege probe
    adapters_factory = staticmethod(HostAdapters.for_host)
    is_privileged = staticmethod(running_as_root)

    def __init__(self, show_health: bool = True, **kwargs):
        super().__init__(**kwargs)
        self.show_health = show_health

    def execute(self, config_file=None, overrides=None) -> None:
        """Execute provision command."""
        config = self.load_config(config_file, overrides or {})

        self.show_header(
            title="Provision Odoo",
            subtitle="Docker + Postgres + Nginx + Let's Encrypt",
            details={
                "Domain": config.domain,
                "Odoo": config.odoo_version,
                "Root": config.stack_root,
            },
        )

        logger = self.init_logger("provision")
        adapters = self.adapters_factory(CommandRunner(logger))
        sequencer = ProvisioningSequencer(
            config,
            build_steps(config, adapters),
            logger,
            is_privileged=self.is_privileged,
        )

        try:
            report = sequencer.run()
        except ProvisioningError as e:
            if self.json_output:
                payload = e.report.to_dict()
                payload["error"] = str(e.cause)
                self.output_json(payload, exit_code=1)
            show_report(e.report, self.console)
            self.console.print(
                f"\n[bold red]✗ Provisioning aborted at[/bold red] "
                f"[cyan]{e.step}[/cyan]: {escape(str(e.cause))}"
            )
            self.print_dim("Earlier steps were left in place; fix the cause and re-run.")
            self._logs_hint()
            raise SystemExit(1)

        if self.json_output:
            self.output_json(report.to_dict())
            return

        show_report(report, self.console)

        stack = report.get("stack_up")
        if self.show_health and stack and stack.status in (StepStatus.EXECUTED, StepStatus.SKIPPED):
            self._show_health(adapters, config)

        show_summary(
            config,
            site_path=f"/etc/nginx/sites-available/{config.site_name}",
            console=self.console,
        )
        if report.failed:
            self.print_warning("Provisioned with warnings, see 'Needs attention' above")
        else:
            self.print_success("Done.")
        self._logs_hint()

    def _show_health(self, adapters: HostAdapters, config) -> None:
        """Container status and recent Odoo logs, for a quick sanity check."""
        status = adapters.containers.stack_status(config.compose_file)
        logs = adapters.containers.service_logs(
            config.compose_file, ODOO_SERVICE, HEALTH_LOG_TAIL
        )
        self.logger.log_output(status, "health")
        self.console.print()
        self.console.print(
            Panel(escape(status or "(no containers)"), title="Containers", title_align="left", border_style="cyan")
        )
        if self.verbose:
            self.console.print(
                Panel(escape(logs or "(no output)"), title="odoo logs", title_align="left", border_style="dim")
            )
        else:
            self.logger.log_output(logs, "odoo")


@click.command()
@deployment_options
@log_options
@click.option("--json", "json_output", is_flag=True, help="Print the report as JSON")
@click.option("--no-health", is_flag=True, help="Skip the container status check")
def provision(config_file, overrides, verbose, log_dir, json_output, no_health):
    """
    Provision Odoo + Postgres behind Nginx with HTTPS

    Steps run in a fixed order and are safe to re-run: anything already
    in place is skipped. Fatal failures stop the run (exit 1); firewall and
    certificate problems are reported with the command to fix them.

    Must run as root. Do not run two provisions against one host at once.

    Example:
        odoodeploy provision --domain erp.example.com --email ops@example.com \\
            --master-password ... --db-password ...
    """
    cmd = ProvisionCommand(
        show_health=not no_health,
        verbose=verbose,
        json_output=json_output,
        log_dir=log_dir,
    )
    cmd.run(config_file=config_file, overrides=overrides)

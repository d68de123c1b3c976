"""odoodeploy - Plan command (read-only preview of a provision run)"""

import click
from rich.table import Table

from odoodeploy.base import BaseCommand
from odoodeploy.commands.options import deployment_options, log_options
from odoodeploy.core.sequencer import ProvisioningSequencer
from odoodeploy.core.steps import HostAdapters, build_steps
from odoodeploy.services.command_runner import CommandRunner

STATE_LABELS = {
    True: "[dim]in place[/dim]",
    False: "[yellow]will run[/yellow]",
    None: "[red]unknown[/red]",
}


class PlanCommand(BaseCommand):
    """Show the ordered steps and which ones a provision would run."""

    adapters_factory = staticmethod(HostAdapters.for_host)

    def execute(self, config_file=None, overrides=None) -> None:
        """Execute plan command."""
        config = self.load_config(config_file, overrides or {})

        self.show_header(
            title="Provisioning Plan",
            subtitle="Probing the host; nothing will be changed",
            details={"Domain": config.domain},
        )

        logger = self.init_logger("plan")
        adapters = self.adapters_factory(CommandRunner(logger))
        steps = build_steps(config, adapters)
        # Probes never mutate, so no privilege is required here
        sequencer = ProvisioningSequencer(config, steps, logger, is_privileged=lambda: True)
        state = sequencer.plan()

        if self.json_output:
            self.output_json(
                {
                    "config": config.to_dict(redact=True),
                    "steps": [
                        {
                            "name": step.name,
                            "resource": str(step.resource),
                            "idempotency": step.idempotency.value,
                            "policy": step.policy.value,
                            "requires": list(step.requires),
                            "satisfied": state[step.name],
                        }
                        for step in steps
                    ],
                }
            )
            return

        table = Table(title="Provisioning Plan", title_justify="left", padding=(0, 1))
        table.add_column("#", justify="right", style="dim")
        table.add_column("Step", style="cyan", no_wrap=True)
        table.add_column("Resource")
        table.add_column("Idempotency", style="dim")
        table.add_column("Policy", style="dim")
        table.add_column("State")

        for index, step in enumerate(steps, start=1):
            table.add_row(
                str(index),
                step.name,
                str(step.resource),
                step.idempotency.value,
                step.policy.value,
                STATE_LABELS[state[step.name]],
            )

        self.console.print(table)
        pending = sum(1 for value in state.values() if value is not True)
        self.console.print(f"\n[bold]{pending}[/bold] of {len(steps)} step(s) pending")
        self.console.print("[dim]Apply with:[/dim] [cyan]odoodeploy provision[/cyan]\n")


@click.command()
@deployment_options
@log_options
@click.option("--json", "json_output", is_flag=True, help="Output in JSON format")
def plan(config_file, overrides, verbose, log_dir, json_output):
    """
    Preview a provision run without changing anything

    Lists every step in order with its idempotency class, failure policy
    and whether its resource is already in place.
    """
    cmd = PlanCommand(verbose=verbose, json_output=json_output, log_dir=log_dir)
    cmd.run(config_file=config_file, overrides=overrides)

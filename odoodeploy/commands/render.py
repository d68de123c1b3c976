"""odoodeploy - Render command"""

import sys

import click

from odoodeploy.base import BaseCommand
from odoodeploy.commands.options import deployment_options
from odoodeploy.constants import LETSENCRYPT_LIVE_DIR
from odoodeploy.core.templates import RENDERERS


class RenderCommand(BaseCommand):
    """Print one rendered configuration file."""

    def execute(self, kind=None, tls=False, config_file=None, overrides=None) -> None:
        config = self.load_config(config_file, overrides or {})
        certificate_dir = f"{LETSENCRYPT_LIVE_DIR}/{config.domain}" if tls else None
        sys.stdout.write(RENDERERS[kind](config, certificate_dir))


@click.command()
@click.argument("kind", type=click.Choice(sorted(RENDERERS)))
@deployment_options
@click.option("--tls", is_flag=True, help="Render the HTTPS variant of the nginx site")
def render(kind, config_file, overrides, tls):
    """
    Print a rendered configuration file to stdout

    Output contains the configured secrets verbatim.
    """
    cmd = RenderCommand()
    cmd.run(kind=kind, tls=tls, config_file=config_file, overrides=overrides)

#!/usr/bin/env python3
"""odoodeploy - Main entry point"""

import sys

from rich.console import Console

# Rich-Click: colored CLI help
import rich_click as click

click.rich_click.USE_RICH_MARKUP = True
click.rich_click.USE_MARKDOWN = False
click.rich_click.SHOW_ARGUMENTS = True
click.rich_click.GROUP_ARGUMENTS_OPTIONS = True
click.rich_click.MAX_WIDTH = 100

# COMMANDS / OPTIONS
click.rich_click.STYLE_COMMAND = "bold cyan"
click.rich_click.STYLE_OPTION = "bold magenta"
click.rich_click.STYLE_SWITCH = "bold green"
click.rich_click.STYLE_ARGUMENT = "bold yellow"

# HEADERS
click.rich_click.STYLE_HEADER_TEXT = "bold cyan"
click.rich_click.STYLE_USAGE = "bold yellow"
click.rich_click.STYLE_USAGE_COMMAND = "bold cyan"

# HELP TEXT
click.rich_click.STYLE_HELPTEXT_FIRST_LINE = "bold white"
click.rich_click.STYLE_HELPTEXT = ""
click.rich_click.STYLE_OPTION_DEFAULT = "dim cyan"
click.rich_click.STYLE_REQUIRED_SHORT = "bold red"
click.rich_click.STYLE_REQUIRED_LONG = "bold red"

# PANEL BORDERS
click.rich_click.STYLE_OPTIONS_PANEL_BORDER = "cyan"
click.rich_click.STYLE_COMMANDS_PANEL_BORDER = "cyan"
click.rich_click.ERRORS_EPILOGUE = ""

from odoodeploy import __version__
from odoodeploy.commands.plan import plan
from odoodeploy.commands.provision import provision
from odoodeploy.commands.render import render

console = Console()


@click.group()
@click.version_option(__version__, prog_name="odoodeploy")
def cli():
    """
    Odoo on Docker behind Nginx with Let's Encrypt

    Provision a single Debian/Ubuntu host: Docker Engine, an Odoo +
    PostgreSQL compose stack, an Nginx reverse proxy, ufw rules and a TLS
    certificate. Every step is safe to re-run.

    Settings come from flags, ODOODEPLOY_* environment variables, or a
    YAML file passed with --config.
    """
    pass


cli.add_command(provision)
cli.add_command(plan)
cli.add_command(render)


def main():
    """Main entry point with error handling."""
    try:
        cli(standalone_mode=True)
    except KeyboardInterrupt:
        console.print("\n\n[yellow]⚠️  Operation cancelled by user[/yellow]")
        sys.exit(130)


if __name__ == "__main__":
    main()

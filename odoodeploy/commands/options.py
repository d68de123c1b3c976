"""Shared click options for deployment configuration"""

import functools

import click

from odoodeploy.constants import DEFAULT_LOG_DIR, ENV_PREFIX

# (field, flag, help). Every flag also reads ODOODEPLOY_<FIELD>.
CONFIG_OPTIONS = (
    ("domain", "--domain", "Public domain name, e.g. erp.example.com"),
    ("admin_email", "--email", "Contact email for Let's Encrypt"),
    ("master_password", "--master-password", "Odoo database manager password"),
    ("db_user", "--db-user", "PostgreSQL user"),
    ("db_password", "--db-password", "PostgreSQL password"),
    ("db_name", "--db-name", "PostgreSQL bootstrap database"),
    ("odoo_version", "--odoo-version", "Odoo image tag"),
    ("postgres_version", "--postgres-version", "PostgreSQL image tag"),
    ("stack_root", "--stack-root", "Deployment root directory"),
    ("network_name", "--network", "Docker network name"),
    ("site_name", "--site-name", "Nginx site file name"),
    ("odoo_port", "--odoo-port", "Local port Odoo is published on"),
)


def deployment_options(func):
    """
    Attach configuration flags to a command.

    The wrapped command receives `config_file` and a single `overrides`
    dict (field name -> value or None) instead of one argument per flag.
    """

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        overrides = {field: kwargs.pop(field) for field, _, _ in CONFIG_OPTIONS}
        return func(*args, overrides=overrides, **kwargs)

    for field, flag, help_text in reversed(CONFIG_OPTIONS):
        option_type = int if field == "odoo_port" else str
        wrapper = click.option(
            flag,
            field,
            type=option_type,
            default=None,
            envvar=f"{ENV_PREFIX}{field.upper()}",
            show_envvar=True,
            help=help_text,
        )(wrapper)

    wrapper = click.option(
        "--config",
        "config_file",
        type=click.Path(exists=True, dir_okay=False),
        envvar=f"{ENV_PREFIX}CONFIG",
        help="YAML file with deployment settings",
    )(wrapper)
    return wrapper


def log_options(func):
    """Attach --verbose and --log-dir."""
    func = click.option(
        "--log-dir",
        default=DEFAULT_LOG_DIR,
        envvar=f"{ENV_PREFIX}LOG_DIR",
        show_default=True,
        help="Directory for run logs",
    )(func)
    func = click.option("--verbose", "-v", is_flag=True, help="Show all command output")(func)
    return func

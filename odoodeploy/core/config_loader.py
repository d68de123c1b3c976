"""Deployment configuration loading and validation"""

import re
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from odoodeploy.exceptions import ConfigurationError
from odoodeploy.models.config import DeploymentConfig

REQUIRED_FIELDS = ("domain", "admin_email", "master_password", "db_password")

_HOSTNAME_RE = re.compile(
    r"^(?=.{1,253}$)([a-zA-Z0-9]([a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?\.)+[a-zA-Z]{2,63}$"
)
_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_NAME_RE = re.compile(r"^[a-zA-Z0-9][a-zA-Z0-9_.-]*$")
_CONTROL_RE = re.compile(r"[\x00-\x1f\x7f]")


def load_config_file(path: Path) -> Dict[str, Any]:
    """
    Load a YAML configuration file.

    Args:
        path: Path to the YAML file

    Returns:
        Mapping of configuration keys (empty for an empty file)

    Raises:
        ConfigurationError: If the file is missing, unreadable or not a mapping
    """
    path = Path(path)
    if not path.is_file():
        raise ConfigurationError(f"Config file not found: {path}")

    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path}", context=str(e))

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Invalid config file {path}: expected a mapping of settings",
            context="Example:\ndomain: erp.example.com\nadmin_email: ops@example.com",
        )
    return data


def build_config(
    file_values: Optional[Mapping[str, Any]] = None,
    overrides: Optional[Mapping[str, Any]] = None,
) -> DeploymentConfig:
    """
    Merge configuration sources and validate the result.

    Overrides (CLI flags and environment, already resolved by click) win over
    file values; unset overrides (None) fall through to the file and then
    to the dataclass defaults.

    Raises:
        ConfigurationError: On unknown keys, missing required values or
            invalid values
    """
    known = set(DeploymentConfig.field_names())
    merged: Dict[str, Any] = {}

    for key, value in (file_values or {}).items():
        if key not in known:
            raise ConfigurationError(
                f"Unknown configuration key: '{key}'",
                context=f"Valid keys: {', '.join(sorted(known))}",
            )
        merged[key] = value

    for key, value in (overrides or {}).items():
        if value is not None:
            merged[key] = value

    missing = [name for name in REQUIRED_FIELDS if not merged.get(name)]
    if missing:
        flags = ", ".join(f"--{name.replace('_', '-')}" for name in missing)
        raise ConfigurationError(
            f"Missing required configuration: {', '.join(missing)}",
            context=f"Pass {flags}, set ODOODEPLOY_* variables, or use --config",
        )

    for key, value in list(merged.items()):
        if key != "odoo_port":
            merged[key] = str(value)

    validate(merged)

    return DeploymentConfig(**merged)


def validate(values: Dict[str, Any]) -> None:
    """Validate merged configuration values in place."""
    domain = values["domain"]
    if not _HOSTNAME_RE.match(domain):
        raise ConfigurationError(f"Invalid domain name: '{domain}'")

    email = values["admin_email"]
    if not _EMAIL_RE.match(email):
        raise ConfigurationError(f"Invalid admin email: '{email}'")

    for key, value in values.items():
        if isinstance(value, str) and _CONTROL_RE.search(value):
            raise ConfigurationError(
                f"Invalid value for '{key}': control characters are not allowed"
            )

    for key in ("db_user", "db_name", "network_name", "site_name", "odoo_version",
                "postgres_version"):
        if key in values and not _NAME_RE.match(values[key]):
            raise ConfigurationError(f"Invalid value for '{key}': '{values[key]}'")

    if "stack_root" in values and not Path(values["stack_root"]).is_absolute():
        raise ConfigurationError(
            f"stack_root must be an absolute path: '{values['stack_root']}'"
        )

    if "odoo_port" in values:
        try:
            port = int(values["odoo_port"])
        except (TypeError, ValueError):
            raise ConfigurationError(f"Invalid odoo_port: '{values['odoo_port']}'")
        if not 1 <= port <= 65535:
            raise ConfigurationError(f"odoo_port out of range: {port}")
        values["odoo_port"] = port

"""
Deployment Configuration Model

Immutable record describing one Odoo deployment.
"""

from dataclasses import dataclass, asdict, fields
from pathlib import Path
from typing import Any, Dict

from odoodeploy.constants import (
    DEFAULT_DB_NAME,
    DEFAULT_DB_USER,
    DEFAULT_NETWORK_NAME,
    DEFAULT_ODOO_PORT,
    DEFAULT_ODOO_VERSION,
    DEFAULT_POSTGRES_VERSION,
    DEFAULT_SITE_NAME,
    DEFAULT_STACK_ROOT,
)

SECRET_FIELDS = ("master_password", "db_password")


@dataclass(frozen=True)
class DeploymentConfig:
    """Deployment parameters supplied once at start and never mutated."""

    domain: str
    admin_email: str
    master_password: str
    db_password: str
    db_user: str = DEFAULT_DB_USER
    db_name: str = DEFAULT_DB_NAME
    odoo_version: str = DEFAULT_ODOO_VERSION
    postgres_version: str = DEFAULT_POSTGRES_VERSION
    stack_root: str = DEFAULT_STACK_ROOT
    network_name: str = DEFAULT_NETWORK_NAME
    site_name: str = DEFAULT_SITE_NAME
    odoo_port: int = DEFAULT_ODOO_PORT

    @classmethod
    def field_names(cls) -> tuple:
        """Names of all configuration fields, in declaration order."""
        return tuple(f.name for f in fields(cls))

    @property
    def stack_dir(self) -> Path:
        return Path(self.stack_root)

    @property
    def conf_dir(self) -> Path:
        return self.stack_dir / "odoo-conf"

    @property
    def addons_dir(self) -> Path:
        return self.stack_dir / "custom-addons"

    @property
    def conf_file(self) -> Path:
        return self.conf_dir / "odoo.conf"

    @property
    def compose_file(self) -> Path:
        return self.stack_dir / "compose.yml"

    @property
    def url(self) -> str:
        return f"https://{self.domain}"

    def to_dict(self, redact: bool = True) -> Dict[str, Any]:
        """
        Convert config to a plain dict.

        Args:
            redact: Replace secret values with asterisks

        Returns:
            Dictionary of field values
        """
        data = asdict(self)
        if redact:
            for name in SECRET_FIELDS:
                if data.get(name):
                    data[name] = "********"
        return data

    def __repr__(self) -> str:
        return (
            f"DeploymentConfig(domain={self.domain}, email={self.admin_email}, "
            f"odoo={self.odoo_version}, root={self.stack_root})"
        )

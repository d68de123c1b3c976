"""
Configuration file rendering

Pure functions: each file kind has a parameter record and a renderer that
returns text. Identical parameters always produce byte-identical output.
"""

from dataclasses import asdict, dataclass, is_dataclass
from typing import Any, Dict, Mapping, Optional, Union

import yaml
from jinja2 import Environment, StrictUndefined, TemplateError

from odoodeploy.constants import (
    DB_SERVICE,
    ODOO_ADDONS_MOUNT,
    ODOO_LIMIT_TIME_CPU,
    ODOO_LIMIT_TIME_REAL,
    ODOO_SERVICE,
)
from odoodeploy.exceptions import ConfigRenderError
from odoodeploy.models.config import DeploymentConfig

_env = Environment(
    undefined=StrictUndefined,
    keep_trailing_newline=True,
    trim_blocks=True,
    lstrip_blocks=True,
    autoescape=False,
)

ODOO_CONF_TEMPLATE = """\
[options]
admin_passwd = {{ master_password }}
db_host = {{ db_host }}
db_port = 5432
db_user = {{ db_user }}
db_password = {{ db_password }}
addons_path = {{ addons_mount }}
proxy_mode = True
limit_time_cpu = {{ limit_time_cpu }}
limit_time_real = {{ limit_time_real }}
"""

NGINX_SITE_TEMPLATE = """\
server {
    listen 80;
    listen [::]:80;
    server_name {{ domain }};
{% if certificate_dir %}
    return 301 https://$host$request_uri;
}

server {
    listen 443 ssl;
    listen [::]:443 ssl;
    server_name {{ domain }};

    ssl_certificate {{ certificate_dir }}/fullchain.pem;
    ssl_certificate_key {{ certificate_dir }}/privkey.pem;
    ssl_protocols TLSv1.2 TLSv1.3;
    ssl_session_cache shared:SSL:10m;
    ssl_session_timeout 1d;
{% endif %}

    # increase buffers for Odoo responses
    proxy_buffers 16 64k;
    proxy_buffer_size 128k;
    client_max_body_size 64M;

    location / {
        proxy_pass http://127.0.0.1:{{ upstream_port }};
        proxy_set_header X-Forwarded-Host $host;
        proxy_set_header X-Forwarded-For $proxy_add_x_forwarded_for;
        proxy_set_header X-Forwarded-Proto $scheme;
        proxy_set_header X-Real-IP $remote_addr;
        proxy_set_header Host $host;
        proxy_redirect off;
        proxy_read_timeout 3600;
    }
}
"""


@dataclass(frozen=True)
class OdooConfParams:
    master_password: str
    db_user: str
    db_password: str
    db_host: str = DB_SERVICE
    addons_mount: str = ODOO_ADDONS_MOUNT
    limit_time_cpu: int = ODOO_LIMIT_TIME_CPU
    limit_time_real: int = ODOO_LIMIT_TIME_REAL

    @classmethod
    def from_config(cls, config: DeploymentConfig) -> "OdooConfParams":
        return cls(
            master_password=config.master_password,
            db_user=config.db_user,
            db_password=config.db_password,
        )


@dataclass(frozen=True)
class ComposeParams:
    db_user: str
    db_password: str
    db_name: str
    odoo_version: str
    postgres_version: str
    network_name: str
    conf_file: str
    addons_dir: str
    odoo_port: int

    @classmethod
    def from_config(cls, config: DeploymentConfig) -> "ComposeParams":
        return cls(
            db_user=config.db_user,
            db_password=config.db_password,
            db_name=config.db_name,
            odoo_version=config.odoo_version,
            postgres_version=config.postgres_version,
            network_name=config.network_name,
            conf_file=str(config.conf_file),
            addons_dir=str(config.addons_dir),
            odoo_port=config.odoo_port,
        )


@dataclass(frozen=True)
class NginxSiteParams:
    """Plain HTTP site, or HTTPS with an HTTP redirect when certificate_dir is set."""

    domain: str
    upstream_port: int
    certificate_dir: Optional[str] = None

    @classmethod
    def from_config(
        cls, config: DeploymentConfig, certificate_dir: Optional[str] = None
    ) -> "NginxSiteParams":
        return cls(
            domain=config.domain,
            upstream_port=config.odoo_port,
            certificate_dir=certificate_dir,
        )


def render(template: str, params: Union[Mapping[str, Any], Any]) -> str:
    """
    Render a Jinja2 template with a parameter record.

    Args:
        template: Template source
        params: Dataclass instance or mapping of template variables

    Returns:
        Rendered text

    Raises:
        ConfigRenderError: If a variable is missing or the template is invalid
    """
    context: Dict[str, Any] = asdict(params) if is_dataclass(params) else dict(params)
    try:
        return _env.from_string(template).render(**context)
    except TemplateError as e:
        raise ConfigRenderError(f"Failed to render template: {e}")


def render_odoo_conf(params: OdooConfParams) -> str:
    return render(ODOO_CONF_TEMPLATE, params)


def render_nginx_site(params: NginxSiteParams) -> str:
    return render(NGINX_SITE_TEMPLATE, params)


def compose_document(params: ComposeParams) -> Dict[str, Any]:
    """Build the compose stack as plain data."""
    return {
        "services": {
            DB_SERVICE: {
                "image": f"postgres:{params.postgres_version}",
                "restart": "unless-stopped",
                "environment": {
                    "POSTGRES_USER": params.db_user,
                    "POSTGRES_PASSWORD": params.db_password,
                    "POSTGRES_DB": params.db_name,
                },
                "volumes": ["db-data:/var/lib/postgresql/data"],
                "networks": [params.network_name],
            },
            ODOO_SERVICE: {
                "image": f"odoo:{params.odoo_version}",
                "depends_on": [DB_SERVICE],
                "restart": "unless-stopped",
                "environment": {
                    "HOST": DB_SERVICE,
                    "USER": params.db_user,
                    "PASSWORD": params.db_password,
                },
                "volumes": [
                    "odoo-data:/var/lib/odoo",
                    f"{params.conf_file}:/etc/odoo/odoo.conf:ro",
                    f"{params.addons_dir}:{ODOO_ADDONS_MOUNT}",
                ],
                # localhost only; nginx is the public entry point
                "ports": [f"127.0.0.1:{params.odoo_port}:8069"],
                "networks": [params.network_name],
            },
        },
        "volumes": {"db-data": None, "odoo-data": None},
        "networks": {params.network_name: {"external": True}},
    }


def render_compose(params: ComposeParams) -> str:
    try:
        return yaml.safe_dump(
            compose_document(params),
            sort_keys=False,
            default_flow_style=False,
            allow_unicode=True,
        )
    except yaml.YAMLError as e:
        raise ConfigRenderError(f"Failed to render compose file: {e}")


RENDERERS = {
    "odoo-conf": lambda config, certificate_dir=None: render_odoo_conf(
        OdooConfParams.from_config(config)
    ),
    "compose": lambda config, certificate_dir=None: render_compose(
        ComposeParams.from_config(config)
    ),
    "nginx-site": lambda config, certificate_dir=None: render_nginx_site(
        NginxSiteParams.from_config(config, certificate_dir)
    ),
}

"""
odoodeploy Services Layer

Adapters over the host tools the provisioning sequence drives.
"""

from .apt_service import AptService
from .certbot_service import CertbotService
from .command_runner import CommandRunner
from .docker_service import DockerService
from .filesystem_service import FilesystemService
from .firewall_service import UfwService
from .nginx_service import NginxService

__all__ = [
    "AptService",
    "CertbotService",
    "CommandRunner",
    "DockerService",
    "FilesystemService",
    "UfwService",
    "NginxService",
]

"""Reverse proxy service backed by nginx and systemd."""

from pathlib import Path

from odoodeploy.constants import NGINX_DEFAULT_SITE, NGINX_ROOT, PUBLIC_FILE_MODE
from odoodeploy.exceptions import ProxyConfigError
from odoodeploy.services.base import HostFilesystem, ReverseProxy
from odoodeploy.services.command_runner import CommandRunner, failure_context


class NginxService(ReverseProxy):
    """Manages sites-available/sites-enabled and reloads nginx."""

    def __init__(
        self,
        runner: CommandRunner,
        filesystem: HostFilesystem,
        nginx_root: str = NGINX_ROOT,
    ):
        self.runner = runner
        self.filesystem = filesystem
        self.root = Path(nginx_root)

    def site_path(self, name: str) -> Path:
        return self.root / "sites-available" / name

    def link_path(self, name: str) -> Path:
        return self.root / "sites-enabled" / name

    @property
    def default_link(self) -> Path:
        return self.link_path(NGINX_DEFAULT_SITE)

    def site_matches(self, name: str, content: str) -> bool:
        return self.filesystem.matches(self.site_path(name), content)

    def write_site(self, name: str, content: str) -> bool:
        return self.filesystem.write_if_changed(
            self.site_path(name), content, PUBLIC_FILE_MODE
        )

    def site_enabled(self, name: str) -> bool:
        link = self.link_path(name)
        if not link.is_symlink() or link.resolve() != self.site_path(name).resolve():
            return False
        # The stock default site also listens on :80 and would shadow ours
        return not self.default_link.exists() and not self.default_link.is_symlink()

    def enable_site(self, name: str) -> None:
        link = self.link_path(name)
        link.parent.mkdir(parents=True, exist_ok=True)
        if link.is_symlink() or link.exists():
            link.unlink()
        link.symlink_to(self.site_path(name))
        self.runner.logger.log(f"Enabled site {link} -> {self.site_path(name)}")

        if self.default_link.is_symlink() or self.default_link.exists():
            self.default_link.unlink()
            self.runner.logger.log(f"Removed default site {self.default_link}")

    def validate_config(self) -> None:
        result = self.runner.run(["nginx", "-t"], "Validating nginx configuration")
        if result.is_failure:
            raise ProxyConfigError(
                "nginx rejected the configuration", context=failure_context(result)
            )

    def reload(self) -> None:
        # reload-or-restart also starts nginx if the package left it stopped
        result = self.runner.run(
            ["systemctl", "reload-or-restart", "nginx"], "Reloading nginx"
        )
        if result.is_failure:
            raise ProxyConfigError(
                "Failed to reload nginx", context=failure_context(result)
            )

    def is_active(self) -> bool:
        return self.runner.run(["systemctl", "is-active", "--quiet", "nginx"]).is_success

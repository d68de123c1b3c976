"""
Default provisioning plan

Builds the ordered step list that takes a Debian/Ubuntu host to a running
Odoo + Postgres stack behind nginx with a Let's Encrypt certificate.

Order matters. Packages go in before containers and config files before the
stack starts. The firewall is up, with SSH allowed first, before the Odoo
site goes live. A plaintext site on :80 is live before certbot validates
through it.

Written-but-unapplied changes are tracked as marker files in the stack
directory, so a run that aborts between writing a file and reloading the
service that reads it finishes the job next time.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import List

from odoodeploy.constants import (
    APT_KEYRINGS_DIR,
    BASE_PACKAGES,
    CONTAINER_CONF_MODE,
    DOCKER_GPG_URL,
    DOCKER_KEYRING,
    DOCKER_PACKAGES,
    DOCKER_REPO_URL,
    DOCKER_SOURCE_LIST,
    FIREWALL_PROXY_RULE,
    FIREWALL_SSH_RULE,
    ODOO_CONTAINER_GID,
    ODOO_SERVICE,
    PENDING_MARKER_PREFIX,
    PROXY_PACKAGES,
    SECRET_FILE_MODE,
    STACK_SERVICES,
)
from odoodeploy.core.templates import (
    ComposeParams,
    NginxSiteParams,
    OdooConfParams,
    render_compose,
    render_nginx_site,
    render_odoo_conf,
)
from odoodeploy.models.config import DeploymentConfig
from odoodeploy.models.step import (
    FailurePolicy,
    HostResource,
    Idempotency,
    ResourceKind,
    SequenceStep,
)
from odoodeploy.services.base import (
    CertificateManager,
    ContainerOrchestrator,
    Firewall,
    HostFilesystem,
    PackageManager,
    ReverseProxy,
)

FATAL = FailurePolicy.FATAL
TOLERANT = FailurePolicy.TOLERANT


@dataclass
class HostAdapters:
    """The external systems a provisioning run talks to."""

    packages: PackageManager
    containers: ContainerOrchestrator
    proxy: ReverseProxy
    certificates: CertificateManager
    firewall: Firewall
    filesystem: HostFilesystem

    @classmethod
    def for_host(cls, runner) -> "HostAdapters":
        """Adapters backed by the real host tools."""
        from odoodeploy.services import (
            AptService,
            CertbotService,
            DockerService,
            FilesystemService,
            NginxService,
            UfwService,
        )

        filesystem = FilesystemService(runner.logger)
        return cls(
            packages=AptService(runner),
            containers=DockerService(runner),
            proxy=NginxService(runner, filesystem),
            certificates=CertbotService(runner),
            firewall=UfwService(runner),
            filesystem=filesystem,
        )


class PendingChanges:
    """
    On-disk record of inputs that were written but not yet applied.

    A step that changes an input drops a marker named after itself; the
    step that applies the input removes it only after succeeding. A run
    that aborts in between leaves the apply owed to the next run.
    """

    def __init__(self, filesystem: HostFilesystem, root: Path):
        self.filesystem = filesystem
        self.root = Path(root)

    def path(self, name: str) -> Path:
        return self.root / f"{PENDING_MARKER_PREFIX}{name}"

    def mark(self, name: str) -> None:
        self.filesystem.write_if_changed(self.path(name), f"{name}\n", SECRET_FILE_MODE)

    def pending(self, *names: str) -> bool:
        return any(self.filesystem.exists(self.path(name)) for name in names)

    def clear(self, *names: str) -> None:
        for name in names:
            self.filesystem.remove(self.path(name))


def _packages_step(name, description, packages, adapters, requires=()) -> SequenceStep:
    return SequenceStep(
        name=name,
        description=description,
        resource=HostResource(ResourceKind.PACKAGES, " ".join(packages)),
        idempotency=Idempotency.EXISTENCE_GATED,
        policy=FATAL,
        precondition=lambda: adapters.packages.all_installed(packages),
        action=lambda: adapters.packages.install(packages),
        requires=tuple(requires),
        remediation=f"apt-get install -y {' '.join(packages)}",
    )


def _file_step(
    name, description, path, render, mode, adapters, changes, requires=(), group=None
) -> SequenceStep:
    # Rendering happens inside the probe and the action so a render error
    # fails this step under its own policy.
    def write() -> None:
        changes.mark(name)
        adapters.filesystem.write_if_changed(path, render(), mode, group)

    return SequenceStep(
        name=name,
        description=description,
        resource=HostResource(ResourceKind.FILE, str(path)),
        idempotency=Idempotency.OVERWRITE_SAFE,
        policy=FATAL,
        precondition=lambda: adapters.filesystem.matches(path, render(), mode, group),
        action=write,
        requires=tuple(requires),
    )


def build_steps(config: DeploymentConfig, adapters: HostAdapters) -> List[SequenceStep]:
    """
    Build the ordered provisioning plan for one deployment.

    Args:
        config: Deployment configuration
        adapters: External systems to drive

    Returns:
        Steps in execution order
    """
    stack_dirs = [config.stack_dir, config.conf_dir, config.addons_dir]
    compose_file = config.compose_file
    site = config.site_name
    changes = PendingChanges(adapters.filesystem, config.stack_dir)

    def odoo_conf() -> str:
        return render_odoo_conf(OdooConfParams.from_config(config))

    def compose() -> str:
        return render_compose(ComposeParams.from_config(config))

    def nginx_site() -> str:
        certificate_dir = None
        if adapters.certificates.has_certificate(config.domain):
            certificate_dir = adapters.certificates.certificate_dir(config.domain)
        return render_nginx_site(NginxSiteParams.from_config(config, certificate_dir))

    def stack_current() -> bool:
        if changes.pending("odoo_config", "compose_descriptor"):
            return False
        return set(STACK_SERVICES) <= adapters.containers.running_services(compose_file)

    def start_stack() -> None:
        odoo_was_running = ODOO_SERVICE in adapters.containers.running_services(compose_file)
        adapters.containers.apply_stack(compose_file)
        # up -d leaves a running container alone when only a mounted file changed
        if odoo_was_running and changes.pending("odoo_config"):
            adapters.containers.restart_service(compose_file, ODOO_SERVICE)
        changes.clear("odoo_config", "compose_descriptor")

    def add_docker_repository() -> None:
        adapters.packages.add_repository(
            DOCKER_GPG_URL, DOCKER_KEYRING, DOCKER_SOURCE_LIST, DOCKER_REPO_URL
        )

    def write_site() -> None:
        changes.mark("proxy_site")
        adapters.proxy.write_site(site, nginx_site())

    def enable_site() -> None:
        changes.mark("proxy_enable")
        adapters.proxy.enable_site(site)

    def proxy_current() -> bool:
        return not changes.pending("proxy_site", "proxy_enable") and adapters.proxy.is_active()

    def reload_proxy() -> None:
        adapters.proxy.validate_config()
        adapters.proxy.reload()
        changes.clear("proxy_site", "proxy_enable")

    def tls_site_current() -> bool:
        # Renders the plain site until a certificate exists, so this holds
        # while issuance failed or is still pending.
        return not changes.pending("proxy_tls") and adapters.proxy.site_matches(site, nginx_site())

    def install_tls_site() -> None:
        changes.mark("proxy_tls")
        adapters.proxy.write_site(site, nginx_site())
        adapters.proxy.validate_config()
        adapters.proxy.reload()
        changes.clear("proxy_tls")

    return [
        _packages_step(
            "base_packages", "Installing base packages", BASE_PACKAGES, adapters
        ),
        SequenceStep(
            name="docker_repository",
            description="Adding Docker apt repository",
            resource=HostResource(ResourceKind.REPOSITORY, DOCKER_SOURCE_LIST),
            idempotency=Idempotency.EXISTENCE_GATED,
            policy=FATAL,
            precondition=lambda: adapters.packages.repository_configured(DOCKER_SOURCE_LIST),
            action=add_docker_repository,
            requires=("base_packages",),
            remediation=f"Check network access to {DOCKER_GPG_URL} and {APT_KEYRINGS_DIR}",
        ),
        _packages_step(
            "docker_engine",
            "Installing Docker Engine",
            DOCKER_PACKAGES,
            adapters,
            requires=("docker_repository",),
        ),
        SequenceStep(
            name="stack_directories",
            description="Creating stack directories",
            resource=HostResource(ResourceKind.DIRECTORY, config.stack_root),
            idempotency=Idempotency.EXISTENCE_GATED,
            policy=FATAL,
            precondition=lambda: adapters.filesystem.dirs_exist(stack_dirs),
            action=lambda: adapters.filesystem.ensure_dirs(stack_dirs),
        ),
        SequenceStep(
            name="container_network",
            description=f"Creating docker network {config.network_name}",
            resource=HostResource(ResourceKind.NETWORK, config.network_name),
            idempotency=Idempotency.EXISTENCE_GATED,
            policy=FATAL,
            precondition=lambda: adapters.containers.network_exists(config.network_name),
            action=lambda: adapters.containers.create_network(config.network_name),
            requires=("docker_engine",),
        ),
        _file_step(
            "odoo_config",
            "Writing odoo.conf",
            config.conf_file,
            odoo_conf,
            CONTAINER_CONF_MODE,
            adapters,
            changes,
            requires=("stack_directories",),
            group=ODOO_CONTAINER_GID,
        ),
        _file_step(
            "compose_descriptor",
            "Writing docker compose file",
            compose_file,
            compose,
            SECRET_FILE_MODE,
            adapters,
            changes,
            requires=("stack_directories",),
        ),
        SequenceStep(
            name="stack_up",
            description="Starting Odoo + Postgres with docker compose",
            resource=HostResource(ResourceKind.STACK, str(compose_file)),
            idempotency=Idempotency.NATIVE,
            policy=FATAL,
            precondition=stack_current,
            action=start_stack,
            requires=("docker_engine", "container_network", "odoo_config", "compose_descriptor"),
            invalidated_by=("odoo_config", "compose_descriptor"),
            remediation=f"docker compose -f {compose_file} up -d",
        ),
        _packages_step(
            "proxy_packages",
            "Installing Nginx & Certbot",
            PROXY_PACKAGES,
            adapters,
            requires=("base_packages",),
        ),
        SequenceStep(
            name="firewall_ssh",
            description="Allowing SSH through the firewall",
            resource=HostResource(ResourceKind.FIREWALL_RULE, FIREWALL_SSH_RULE),
            idempotency=Idempotency.NATIVE,
            policy=TOLERANT,
            precondition=lambda: adapters.firewall.is_allowed(FIREWALL_SSH_RULE),
            action=lambda: adapters.firewall.allow(FIREWALL_SSH_RULE),
            requires=("base_packages",),
            remediation=f"ufw allow {FIREWALL_SSH_RULE}",
        ),
        SequenceStep(
            name="firewall_proxy",
            description="Allowing HTTP/HTTPS through the firewall",
            resource=HostResource(ResourceKind.FIREWALL_RULE, FIREWALL_PROXY_RULE),
            idempotency=Idempotency.NATIVE,
            policy=TOLERANT,
            precondition=lambda: adapters.firewall.is_allowed(FIREWALL_PROXY_RULE),
            action=lambda: adapters.firewall.allow(FIREWALL_PROXY_RULE),
            requires=("proxy_packages", "firewall_ssh"),
            remediation=f"ufw allow '{FIREWALL_PROXY_RULE}'",
        ),
        SequenceStep(
            name="firewall_enable",
            description="Enabling the firewall",
            resource=HostResource(ResourceKind.FIREWALL_RULE, "ufw"),
            idempotency=Idempotency.NATIVE,
            policy=TOLERANT,
            precondition=adapters.firewall.is_enabled,
            action=adapters.firewall.enable,
            requires=("firewall_ssh",),
            remediation="ufw --force enable",
        ),
        SequenceStep(
            name="proxy_site",
            description=f"Writing Nginx site for {config.domain}",
            resource=HostResource(ResourceKind.PROXY_SITE, site),
            idempotency=Idempotency.OVERWRITE_SAFE,
            policy=FATAL,
            precondition=lambda: adapters.proxy.site_matches(site, nginx_site()),
            action=write_site,
            requires=("proxy_packages", "stack_up"),
        ),
        SequenceStep(
            name="proxy_enable",
            description="Enabling Nginx site",
            resource=HostResource(ResourceKind.PROXY_SITE, f"sites-enabled/{site}"),
            idempotency=Idempotency.EXISTENCE_GATED,
            policy=FATAL,
            precondition=lambda: adapters.proxy.site_enabled(site),
            action=enable_site,
            requires=("proxy_site",),
        ),
        SequenceStep(
            name="proxy_reload",
            description="Validating and reloading Nginx",
            resource=HostResource(ResourceKind.PROXY_SITE, "nginx"),
            idempotency=Idempotency.NATIVE,
            policy=FATAL,
            precondition=proxy_current,
            action=reload_proxy,
            requires=("proxy_enable",),
            invalidated_by=("proxy_site", "proxy_enable"),
            remediation="nginx -t && systemctl reload nginx",
        ),
        SequenceStep(
            name="tls_certificate",
            description=f"Issuing TLS certificate for {config.domain}",
            resource=HostResource(ResourceKind.CERTIFICATE, config.domain),
            idempotency=Idempotency.NATIVE,
            policy=TOLERANT,
            precondition=lambda: adapters.certificates.has_certificate(config.domain),
            action=lambda: adapters.certificates.issue(config.domain, config.admin_email),
            requires=("proxy_reload",),
            remediation=(
                f"Make sure the DNS A record for {config.domain} points to this server, "
                f"then run: {adapters.certificates.manual_command(config.domain, config.admin_email)}"
            ),
        ),
        SequenceStep(
            name="proxy_tls",
            description="Switching Nginx site to HTTPS",
            resource=HostResource(ResourceKind.PROXY_SITE, f"{site} (https)"),
            idempotency=Idempotency.OVERWRITE_SAFE,
            policy=FATAL,
            precondition=tls_site_current,
            action=install_tls_site,
            requires=("proxy_reload",),
            remediation="nginx -t && systemctl reload nginx",
        ),
    ]

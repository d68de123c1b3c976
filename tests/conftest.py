import io
from pathlib import Path

import pytest
from rich.console import Console

from odoodeploy.core.steps import HostAdapters
from odoodeploy.exceptions import StackStartError
from odoodeploy.logger import DeployLogger
from odoodeploy.models.config import DeploymentConfig
from odoodeploy.models.results import ExecutionResult
from odoodeploy.services.base import (
    CertificateManager,
    ContainerOrchestrator,
    Firewall,
    HostFilesystem,
    PackageManager,
    ReverseProxy,
)


class FakeHost:
    """In-memory host state shared by the fake adapters."""

    def __init__(self):
        self.installed = set()
        self.repos = set()
        self.dirs = set()
        self.files = {}
        self.networks = set()
        self.running = set()
        self.sites = {}
        self.enabled_sites = set()
        self.proxy_active = False
        self.certs = set()
        self.fw_rules = set()
        self.fw_enabled = False
        self.calls = []
        self.failures = {}

    def act(self, op, *args):
        self.calls.append((op,) + args)
        if op in self.failures:
            raise self.failures[op]

    def ops(self):
        return [call[0] for call in self.calls]

    def snapshot(self):
        return {
            "installed": set(self.installed),
            "repos": set(self.repos),
            "dirs": set(self.dirs),
            "files": dict(self.files),
            "networks": set(self.networks),
            "running": set(self.running),
            "sites": dict(self.sites),
            "enabled_sites": set(self.enabled_sites),
            "proxy_active": self.proxy_active,
            "certs": set(self.certs),
            "fw_rules": set(self.fw_rules),
            "fw_enabled": self.fw_enabled,
        }


class FakePackages(PackageManager):
    def __init__(self, host):
        self.host = host

    def is_installed(self, name):
        return name in self.host.installed

    def install(self, names):
        names = list(names)
        self.host.act("install", tuple(names))
        self.host.installed.update(names)

    def repository_configured(self, source_list):
        return str(source_list) in self.host.repos

    def add_repository(self, key_url, keyring, source_list, repo_url):
        self.host.act("add_repository", str(source_list))
        self.host.repos.add(str(source_list))


class FakeContainers(ContainerOrchestrator):
    def __init__(self, host):
        self.host = host

    def network_exists(self, name):
        return name in self.host.networks

    def create_network(self, name):
        self.host.act("create_network", name)
        if "docker-ce" not in self.host.installed:
            raise StackStartError("docker is not installed")
        self.host.networks.add(name)

    def apply_stack(self, descriptor):
        self.host.act("apply_stack", str(descriptor))
        if "docker-compose-plugin" not in self.host.installed:
            raise StackStartError("docker compose is not installed")
        if str(descriptor) not in self.host.files and not Path(descriptor).is_file():
            raise StackStartError(f"{descriptor} does not exist")
        self.host.running = {"db", "odoo"}

    def restart_service(self, descriptor, service):
        self.host.act("restart_service", service)

    def running_services(self, descriptor):
        return set(self.host.running)

    def stack_status(self, descriptor):
        return "\n".join(sorted(self.host.running))

    def service_logs(self, descriptor, service, tail):
        return f"{service} started"


class FakeProxy(ReverseProxy):
    def __init__(self, host):
        self.host = host

    def site_matches(self, name, content):
        return self.host.sites.get(name) == content

    def write_site(self, name, content):
        self.host.act("write_site", name)
        changed = self.host.sites.get(name) != content
        self.host.sites[name] = content
        return changed

    def site_enabled(self, name):
        return name in self.host.enabled_sites

    def enable_site(self, name):
        self.host.act("enable_site", name)
        self.host.enabled_sites.add(name)

    def validate_config(self):
        self.host.act("validate_config")

    def reload(self):
        self.host.act("reload")
        self.host.proxy_active = True

    def is_active(self):
        return self.host.proxy_active


class FakeCertificates(CertificateManager):
    def __init__(self, host):
        self.host = host

    def has_certificate(self, domain):
        return domain in self.host.certs

    def certificate_dir(self, domain):
        return f"/etc/letsencrypt/live/{domain}"

    def issue(self, domain, email):
        self.host.act("issue", domain, email)
        self.host.certs.add(domain)

    def manual_command(self, domain, email):
        return f"certbot certonly --nginx -d {domain} -m {email} --agree-tos"


class FakeFirewall(Firewall):
    def __init__(self, host):
        self.host = host

    def is_allowed(self, rule):
        return rule in self.host.fw_rules

    def allow(self, rule):
        self.host.act("allow", rule)
        self.host.fw_rules.add(rule)

    def is_enabled(self):
        return self.host.fw_enabled

    def enable(self):
        self.host.act("enable_firewall")
        self.host.fw_enabled = True


class FakeFilesystem(HostFilesystem):
    def __init__(self, host):
        self.host = host

    def dirs_exist(self, paths):
        return all(str(p) in self.host.dirs for p in paths)

    def ensure_dirs(self, paths):
        self.host.act("ensure_dirs")
        self.host.dirs.update(str(p) for p in paths)

    def matches(self, path, content, mode=None, group=None):
        stored = self.host.files.get(str(path))
        if stored is None or stored[0] != content:
            return False
        if mode is not None and stored[1] != mode:
            return False
        return group is None or stored[2] == group

    def write_if_changed(self, path, content, mode, group=None):
        self.host.act("write_file", str(path))
        changed = self.host.files.get(str(path), (None,))[0] != content
        self.host.files[str(path)] = (content, mode, group)
        return changed

    def exists(self, path):
        return str(path) in self.host.files

    def remove(self, path):
        self.host.act("remove", str(path))
        self.host.files.pop(str(path), None)


class FakeRunner:
    """Stands in for CommandRunner: records argv and returns canned results."""

    def __init__(self, logger, responses=None, tools=True):
        self.logger = logger
        self.responses = responses or {}
        self.tools = tools
        self.calls = []

    def which(self, tool):
        return self.tools

    def run(self, args, description=None, env=None, input_text=None):
        args = list(args)
        self.calls.append({"args": args, "env": env, "input": input_text})
        for prefix, result in self.responses.items():
            if tuple(args[: len(prefix)]) == prefix:
                if isinstance(result, Exception):
                    raise result
                return ExecutionResult(
                    returncode=result.returncode,
                    stdout=result.stdout,
                    stderr=result.stderr,
                    command=" ".join(args),
                )
        return ExecutionResult(returncode=0, command=" ".join(args))


def fake_adapters(host):
    return HostAdapters(
        packages=FakePackages(host),
        containers=FakeContainers(host),
        proxy=FakeProxy(host),
        certificates=FakeCertificates(host),
        firewall=FakeFirewall(host),
        filesystem=FakeFilesystem(host),
    )


@pytest.fixture
def host():
    return FakeHost()


@pytest.fixture
def adapters(host):
    return fake_adapters(host)


@pytest.fixture
def config():
    return DeploymentConfig(
        domain="a.example.com",
        admin_email="x@example.com",
        master_password="p",
        db_user="odoo",
        db_password="q",
    )


@pytest.fixture
def logger(tmp_path):
    log = DeployLogger("test", tmp_path / "logs", console=Console(file=io.StringIO()))
    yield log
    log.close()

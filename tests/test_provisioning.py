import os
import stat
from dataclasses import replace

import pytest

from odoodeploy.constants import (
    CONTAINER_CONF_MODE,
    FIREWALL_PROXY_RULE,
    FIREWALL_SSH_RULE,
    ODOO_CONTAINER_GID,
    PENDING_MARKER_PREFIX,
    SECRET_FILE_MODE,
)
from odoodeploy.core.sequencer import ProvisioningSequencer
from odoodeploy.core import steps as steps_module
from odoodeploy.core.steps import build_steps
from odoodeploy.exceptions import (
    CertificateIssuanceError,
    FirewallConfigError,
    ProvisioningError,
    ProxyConfigError,
    StackStartError,
)
from odoodeploy.models.results import StepStatus
from odoodeploy.models.step import FailurePolicy
from odoodeploy.services.filesystem_service import FilesystemService

STEP_NAMES = [
    "base_packages",
    "docker_repository",
    "docker_engine",
    "stack_directories",
    "container_network",
    "odoo_config",
    "compose_descriptor",
    "stack_up",
    "proxy_packages",
    "firewall_ssh",
    "firewall_proxy",
    "firewall_enable",
    "proxy_site",
    "proxy_enable",
    "proxy_reload",
    "tls_certificate",
    "proxy_tls",
]


def provision(config, adapters, logger):
    steps = build_steps(config, adapters)
    return ProvisioningSequencer(config, steps, logger, is_privileged=lambda: True).run()


def pending_markers(host):
    return [path for path in host.files if PENDING_MARKER_PREFIX in path]


class TestDefaultPlan:
    """Shape of the default step list."""

    def test_step_order(self, config, adapters):
        assert [s.name for s in build_steps(config, adapters)] == STEP_NAMES

    def test_plan_is_well_ordered(self, config, adapters):
        ProvisioningSequencer.validate_order(build_steps(config, adapters))

    def test_only_firewall_and_certificate_are_tolerant(self, config, adapters):
        tolerant = [
            s.name for s in build_steps(config, adapters) if s.policy == FailurePolicy.TOLERANT
        ]
        assert tolerant == ["firewall_ssh", "firewall_proxy", "firewall_enable", "tls_certificate"]

    def test_tolerant_steps_carry_remediation(self, config, adapters):
        for step in build_steps(config, adapters):
            if step.policy == FailurePolicy.TOLERANT:
                assert step.remediation

    def test_certificate_remediation_names_manual_command(self, config, adapters):
        steps = {s.name: s for s in build_steps(config, adapters)}
        remediation = steps["tls_certificate"].remediation
        assert "certbot certonly --nginx -d a.example.com" in remediation
        assert "DNS" in remediation


class TestFreshHost:
    def test_everything_executes(self, config, adapters, host, logger):
        report = provision(config, adapters, logger)

        assert report.executed == STEP_NAMES
        assert report.skipped == []
        assert report.failed == []
        assert "a.example.com" in host.certs
        assert host.running == {"db", "odoo"}
        assert host.fw_enabled is True
        assert host.fw_rules == {FIREWALL_SSH_RULE, FIREWALL_PROXY_RULE}

    def test_docker_installed_before_network_and_stack(self, config, adapters, host, logger):
        provision(config, adapters, logger)
        ops = host.ops()

        docker_install = next(
            i for i, call in enumerate(host.calls)
            if call[0] == "install" and "docker-ce" in call[1]
        )
        assert docker_install < ops.index("create_network") < ops.index("apply_stack")

    def test_config_files_written_before_stack_starts(self, config, adapters, host, logger):
        provision(config, adapters, logger)
        targets = {str(config.conf_file), str(config.compose_file)}
        writes = [
            i for i, call in enumerate(host.calls)
            if call[0] == "write_file" and call[1] in targets
        ]
        assert len(writes) == 2
        assert max(writes) < host.ops().index("apply_stack")

    def test_ssh_allowed_before_firewall_enabled(self, config, adapters, host, logger):
        provision(config, adapters, logger)
        ops = host.ops()
        assert host.calls.index(("allow", FIREWALL_SSH_RULE)) < ops.index("enable_firewall")

    def test_firewall_up_before_site_goes_live(self, config, adapters, host, logger):
        provision(config, adapters, logger)
        ops = host.ops()
        assert ops.index("enable_firewall") < ops.index("write_site")
        assert host.calls.index(("allow", FIREWALL_PROXY_RULE)) < ops.index("reload")

    def test_certificate_requested_after_proxy_serves_plain_http(
        self, config, adapters, host, logger
    ):
        provision(config, adapters, logger)
        ops = host.ops()
        assert ops.index("reload") < ops.index("issue")

    def test_secret_files_are_private(self, config, adapters, host, logger):
        provision(config, adapters, logger)
        # odoo.conf must stay readable by the odoo user inside the container
        assert host.files[str(config.conf_file)][1:] == (CONTAINER_CONF_MODE, ODOO_CONTAINER_GID)
        assert host.files[str(config.compose_file)][1:] == (SECRET_FILE_MODE, None)
        assert not CONTAINER_CONF_MODE & stat.S_IROTH

    def test_first_start_does_not_restart_odoo(self, config, adapters, host, logger):
        provision(config, adapters, logger)
        assert "restart_service" not in host.ops()

    def test_no_pending_markers_left(self, config, adapters, host, logger):
        provision(config, adapters, logger)
        assert pending_markers(host) == []

    def test_site_switches_to_https(self, config, adapters, host, logger):
        provision(config, adapters, logger)
        site = host.sites[config.site_name]
        assert "listen 443 ssl" in site
        assert "/etc/letsencrypt/live/a.example.com/fullchain.pem" in site


class TestRerun:
    """A second run against a provisioned host changes nothing."""

    def test_second_run_skips_every_step(self, config, adapters, host, logger):
        provision(config, adapters, logger)
        before = host.snapshot()
        host.calls.clear()

        report = provision(config, adapters, logger)

        assert report.skipped == STEP_NAMES
        assert report.executed == []
        assert host.calls == []
        assert host.snapshot() == before

    def test_changed_setting_rewrites_config_and_restarts_stack(
        self, config, adapters, host, logger
    ):
        provision(config, adapters, logger)
        host.calls.clear()

        changed = replace(config, db_password="rotated")
        report = provision(changed, adapters, logger)

        assert "odoo_config" in report.executed
        assert "compose_descriptor" in report.executed
        assert "stack_up" in report.executed
        assert "proxy_site" in report.skipped
        assert "apply_stack" in host.ops()
        assert ("restart_service", "odoo") in host.calls

    def test_pending_certificate_retried_on_next_run(self, config, adapters, host, logger):
        host.failures["issue"] = CertificateIssuanceError("dns not ready")
        first = provision(config, adapters, logger)
        assert first.failed == ["tls_certificate"]

        del host.failures["issue"]
        second = provision(config, adapters, logger)

        assert second.executed == ["tls_certificate", "proxy_tls"]
        assert "listen 443 ssl" in host.sites[config.site_name]


class TestTolerantFailures:
    def test_certificate_failure_keeps_plain_site(self, config, adapters, host, logger):
        host.failures["issue"] = CertificateIssuanceError(
            "certbot failed", remediation="point DNS here, then run certbot"
        )
        report = provision(config, adapters, logger)

        assert report.success is True
        assert report.failed == ["tls_certificate"]
        assert report.get("tls_certificate").remediation == "point DNS here, then run certbot"
        assert report.get("proxy_tls").status == StepStatus.SKIPPED
        assert "listen 443" not in host.sites[config.site_name]

    def test_firewall_ssh_failure_blocks_enable(self, config, adapters, host, logger):
        host.failures["allow"] = FirewallConfigError("ufw missing", remediation="apt-get install -y ufw")
        report = provision(config, adapters, logger)

        assert report.success is True
        assert report.get("firewall_ssh").status == StepStatus.FAILED
        assert report.get("firewall_proxy").status == StepStatus.BLOCKED
        assert report.get("firewall_enable").status == StepStatus.BLOCKED
        assert host.fw_enabled is False
        # later steps still ran
        assert report.get("tls_certificate").status == StepStatus.EXECUTED
        assert all(o.remediation for o in report.outcomes if o.name.startswith("firewall"))


class TestFatalFailures:
    def test_stack_failure_aborts_before_proxy(self, config, adapters, host, logger):
        host.failures["apply_stack"] = StackStartError("image pull failed")

        with pytest.raises(ProvisioningError) as exc:
            provision(config, adapters, logger)

        report = exc.value.report
        assert exc.value.step == "stack_up"
        assert [o.name for o in report.outcomes] == STEP_NAMES[: STEP_NAMES.index("stack_up") + 1]
        assert "write_site" not in host.ops()
        # earlier work left in place
        assert str(config.conf_file) in host.files

    def test_rejected_proxy_config_is_not_reloaded(self, config, adapters, host, logger):
        host.failures["validate_config"] = ProxyConfigError("nginx -t failed")

        with pytest.raises(ProvisioningError) as exc:
            provision(config, adapters, logger)

        assert exc.value.step == "proxy_reload"
        assert "reload" not in host.ops()
        assert "issue" not in host.ops()

    def test_rerun_after_fix_completes(self, config, adapters, host, logger):
        host.failures["apply_stack"] = StackStartError("image pull failed")
        with pytest.raises(ProvisioningError):
            provision(config, adapters, logger)

        del host.failures["apply_stack"]
        report = provision(config, adapters, logger)

        assert report.failed == []
        assert "base_packages" in report.skipped
        assert "stack_up" in report.executed



class TestInterruptedApply:
    """Changes written by an aborted run are still applied by the next one."""

    def test_reload_owed_after_rejected_proxy_config(self, config, adapters, host, logger):
        provision(config, adapters, logger)
        host.failures["validate_config"] = ProxyConfigError("nginx -t failed")
        changed = replace(config, odoo_port=8070)

        with pytest.raises(ProvisioningError) as exc:
            provision(changed, adapters, logger)
        assert exc.value.step == "proxy_reload"
        assert pending_markers(host)

        del host.failures["validate_config"]
        host.calls.clear()
        report = provision(changed, adapters, logger)

        assert report.get("proxy_site").status == StepStatus.SKIPPED
        assert report.get("proxy_reload").status == StepStatus.EXECUTED
        assert host.ops().index("validate_config") < host.ops().index("reload")
        assert pending_markers(host) == []

    def test_restart_owed_after_failed_stack_start(self, config, adapters, host, logger):
        provision(config, adapters, logger)
        host.failures["apply_stack"] = StackStartError("image pull failed")
        changed = replace(config, db_password="rotated")

        with pytest.raises(ProvisioningError) as exc:
            provision(changed, adapters, logger)
        assert exc.value.step == "stack_up"

        del host.failures["apply_stack"]
        host.calls.clear()
        report = provision(changed, adapters, logger)

        assert report.get("odoo_config").status == StepStatus.SKIPPED
        assert report.get("compose_descriptor").status == StepStatus.SKIPPED
        assert report.get("stack_up").status == StepStatus.EXECUTED
        assert "apply_stack" in host.ops()
        assert ("restart_service", "odoo") in host.calls
        assert pending_markers(host) == []

    def test_https_site_reloaded_after_rejected_switch(self, config, adapters, host, logger):
        host.failures["issue"] = CertificateIssuanceError("dns not ready")
        provision(config, adapters, logger)

        del host.failures["issue"]
        host.failures["validate_config"] = ProxyConfigError("nginx -t failed")
        with pytest.raises(ProvisioningError) as exc:
            provision(config, adapters, logger)
        assert exc.value.step == "proxy_tls"
        # the HTTPS site is on disk but nginx never loaded it
        assert "listen 443 ssl" in host.sites[config.site_name]

        del host.failures["validate_config"]
        host.calls.clear()
        report = provision(config, adapters, logger)

        assert report.executed == ["proxy_tls"]
        assert "reload" in host.ops()
        assert pending_markers(host) == []

    def test_second_clean_run_after_recovery_is_a_no_op(self, config, adapters, host, logger):
        host.failures["apply_stack"] = StackStartError("image pull failed")
        with pytest.raises(ProvisioningError):
            provision(config, adapters, logger)
        del host.failures["apply_stack"]
        provision(config, adapters, logger)

        report = provision(config, adapters, logger)
        assert report.executed == []


class TestRealFilesystem:
    """Rendered files on disk with the real filesystem adapter."""

    @pytest.fixture
    def on_disk(self, tmp_path, config, adapters, logger, monkeypatch):
        # chown to a foreign group needs root; our own group is always allowed
        monkeypatch.setattr(steps_module, "ODOO_CONTAINER_GID", os.getgid())
        adapters.filesystem = FilesystemService(logger)
        return replace(config, stack_root=str(tmp_path / "stack"))

    def test_files_are_byte_identical_across_runs(self, on_disk, adapters, host, logger):
        config = on_disk

        provision(config, adapters, logger)
        conf = config.conf_file.read_bytes()
        compose = config.compose_file.read_bytes()
        mtime = os.stat(config.conf_file).st_mtime_ns

        report = provision(config, adapters, logger)

        assert config.conf_file.read_bytes() == conf
        assert config.compose_file.read_bytes() == compose
        assert os.stat(config.conf_file).st_mtime_ns == mtime
        assert report.get("odoo_config").status == StepStatus.SKIPPED
        assert stat.S_IMODE(os.stat(config.conf_file).st_mode) == CONTAINER_CONF_MODE
        assert os.stat(config.conf_file).st_gid == os.getgid()
        assert stat.S_IMODE(os.stat(config.compose_file).st_mode) == SECRET_FILE_MODE
        assert config.addons_dir.is_dir()
        assert list(config.stack_dir.glob(f"{PENDING_MARKER_PREFIX}*")) == []

    def test_owner_only_conf_is_opened_up_for_the_container(
        self, on_disk, adapters, host, logger
    ):
        config = on_disk
        provision(config, adapters, logger)
        os.chmod(config.conf_file, SECRET_FILE_MODE)
        host.calls.clear()

        report = provision(config, adapters, logger)

        assert report.get("odoo_config").status == StepStatus.EXECUTED
        assert stat.S_IMODE(os.stat(config.conf_file).st_mode) == CONTAINER_CONF_MODE
        assert ("restart_service", "odoo") in host.calls
        assert list(config.stack_dir.glob(f"{PENDING_MARKER_PREFIX}*")) == []

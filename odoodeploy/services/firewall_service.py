"""Firewall service backed by ufw."""

import shlex

from odoodeploy.exceptions import CommandError, FirewallConfigError
from odoodeploy.services.base import Firewall
from odoodeploy.services.command_runner import CommandRunner, failure_context


class UfwService(Firewall):
    """Uncomplicated Firewall rules and activation."""

    def __init__(self, runner: CommandRunner):
        self.runner = runner

    def _run(self, args, description=None):
        if not self.runner.which("ufw"):
            raise FirewallConfigError(
                "ufw is not installed",
                remediation="apt-get install -y ufw",
            )
        try:
            return self.runner.run(["ufw", *args], description)
        except CommandError as e:
            raise FirewallConfigError(e.message, context=e.context)

    def is_allowed(self, rule: str) -> bool:
        """
        Check the added rule set rather than `ufw status`, which lists
        nothing while the firewall is still inactive.
        """
        result = self._run(["show", "added"])
        if result.is_failure:
            return False
        for line in result.stdout.splitlines():
            parts = shlex.split(line) if line.strip().startswith("ufw") else []
            if parts[:2] == ["ufw", "allow"] and " ".join(parts[2:]) == rule:
                return True
        return False

    def allow(self, rule: str) -> None:
        result = self._run(["allow", rule], f"Allowing {rule}")
        if result.is_failure:
            raise FirewallConfigError(
                f"Failed to allow '{rule}'",
                context=failure_context(result),
                remediation=shlex.join(["ufw", "allow", rule]),
            )

    def is_enabled(self) -> bool:
        result = self._run(["status"])
        return result.is_success and "Status: active" in result.stdout

    def enable(self) -> None:
        result = self._run(["--force", "enable"], "Enabling firewall")
        if result.is_failure:
            raise FirewallConfigError(
                "Failed to enable ufw",
                context=failure_context(result),
                remediation="ufw --force enable",
            )

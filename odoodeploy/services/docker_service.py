"""Container orchestration service backed by docker and the compose plugin."""

from pathlib import Path
from typing import List, Set

from odoodeploy.exceptions import StackStartError
from odoodeploy.services.base import ContainerOrchestrator
from odoodeploy.services.command_runner import CommandRunner, failure_context


class DockerService(ContainerOrchestrator):
    """Docker networks and compose stacks on the local engine."""

    def __init__(self, runner: CommandRunner):
        self.runner = runner

    @staticmethod
    def _compose(descriptor: Path, *args: str) -> List[str]:
        return ["docker", "compose", "-f", str(descriptor), *args]

    def network_exists(self, name: str) -> bool:
        return self.runner.run(["docker", "network", "inspect", name]).is_success

    def create_network(self, name: str) -> None:
        result = self.runner.run(
            ["docker", "network", "create", name], f"Creating network {name}"
        )
        if result.is_failure:
            raise StackStartError(
                f"Failed to create docker network '{name}'",
                context=failure_context(result),
            )

    def apply_stack(self, descriptor: Path) -> None:
        """
        Bring the compose stack up in the background.

        `up -d` recreates only services whose definition changed, so calling
        it on a running stack is safe.

        Raises:
            StackStartError: If compose exits non-zero
        """
        result = self.runner.run(
            self._compose(descriptor, "up", "-d"), "Starting Odoo + Postgres"
        )
        if result.is_failure:
            raise StackStartError(
                "docker compose failed to start the stack",
                context=failure_context(result),
            )

    def restart_service(self, descriptor: Path, service: str) -> None:
        result = self.runner.run(
            self._compose(descriptor, "restart", service), f"Restarting {service}"
        )
        if result.is_failure:
            raise StackStartError(
                f"Failed to restart the {service} service",
                context=failure_context(result),
            )

    def running_services(self, descriptor: Path) -> Set[str]:
        if not Path(descriptor).is_file():
            return set()
        result = self.runner.run(
            self._compose(
                descriptor, "ps", "--services", "--filter", "status=running"
            )
        )
        if result.is_failure:
            return set()
        return {line.strip() for line in result.stdout.splitlines() if line.strip()}

    def stack_status(self, descriptor: Path) -> str:
        result = self.runner.run(self._compose(descriptor, "ps"))
        return result.output

    def service_logs(self, descriptor: Path, service: str, tail: int) -> str:
        result = self.runner.run(
            self._compose(descriptor, "logs", f"--tail={tail}", "--no-color", service)
        )
        return result.output

"""Command runner for executing host tools with logging and progress."""

import os
import shlex
import shutil
import subprocess
from typing import Dict, List, Optional, Sequence

from rich.live import Live
from rich.padding import Padding
from rich.spinner import Spinner
from rich.text import Text

from odoodeploy.exceptions import CommandError
from odoodeploy.logger import DeployLogger
from odoodeploy.models.results import ExecutionResult


class CommandRunner:
    """Runs external commands on the local host and records them in the log."""

    def __init__(self, logger: DeployLogger):
        self.logger = logger

    @staticmethod
    def which(tool: str) -> bool:
        """Check if a tool is available on PATH."""
        return shutil.which(tool) is not None

    def run(
        self,
        args: Sequence[str],
        description: Optional[str] = None,
        env: Optional[Dict[str, str]] = None,
        input_text: Optional[str] = None,
    ) -> ExecutionResult:
        """
        Run a command and capture its output.

        Probes (no description) run silently; actions show a spinner unless
        the logger is verbose, in which case output is echoed.

        Args:
            args: Command and arguments
            description: Progress text for long-running actions
            env: Extra environment variables
            input_text: Text piped to stdin

        Returns:
            ExecutionResult with return code and captured output

        Raises:
            CommandError: If the executable cannot be started
        """
        command = shlex.join(args)
        self.logger.log_command(command)

        full_env = None
        if env:
            full_env = dict(os.environ)
            full_env.update(env)

        if description and not self.logger.verbose:
            spinner = Spinner("dots", text=f"[cyan]{description}...[/cyan]")
            with Live(
                Padding(spinner, (0, 0, 0, 2)),
                console=self.logger.console,
                refresh_per_second=10,
                transient=False,
            ) as live:
                result = self._execute(args, command, full_env, input_text)

                if result.is_success:
                    mark = Text("  ✓ ", style="dim")
                else:
                    mark = Text("  ✗ ", style="red")
                mark.append(description, style="dim")
                live.update(mark)
        else:
            result = self._execute(args, command, full_env, input_text)

        return result

    def _execute(
        self,
        args: Sequence[str],
        command: str,
        env: Optional[Dict[str, str]],
        input_text: Optional[str],
    ) -> ExecutionResult:
        try:
            completed = subprocess.run(
                list(args),
                env=env,
                input=input_text,
                capture_output=True,
                text=True,
                errors="replace",
            )
        except (FileNotFoundError, PermissionError) as e:
            raise CommandError(f"Cannot run '{args[0]}': {e}", context=command)

        self.logger.log_output(completed.stdout, "stdout")
        self.logger.log_output(completed.stderr, "stderr")
        if completed.returncode != 0:
            self.logger.log(f"Exit code {completed.returncode}: {command}", "DEBUG")

        return ExecutionResult(
            returncode=completed.returncode,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
            command=command,
        )


def failure_context(result: ExecutionResult, tail: int = 5) -> str:
    """Last lines of a failed command's output, for error context."""
    lines: List[str] = [line for line in result.output.splitlines() if line.strip()]
    detail = "\n".join(lines[-tail:]) if lines else "(no output)"
    return f"$ {result.command}\n{detail}"

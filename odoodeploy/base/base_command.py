"""
Base Command Class

Abstract base for all odoodeploy CLI commands.
Provides common functionality and structure.
"""

import json
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from rich.console import Console
from rich.markup import escape

from odoodeploy.core.config_loader import build_config, load_config_file
from odoodeploy.exceptions import OdooDeployError
from odoodeploy.logger import DeployLogger
from odoodeploy.models.config import DeploymentConfig
from odoodeploy.ui_components import show_header

FALLBACK_LOG_DIR = Path.home() / ".odoodeploy" / "logs"


class BaseCommand(ABC):
    """
    Abstract base command class.

    Provides:
    - Configuration loading
    - Logger initialization
    - Header display
    - Error handling
    - JSON output support
    """

    def __init__(
        self,
        verbose: bool = False,
        json_output: bool = False,
        log_dir: Optional[str] = None,
    ):
        self.verbose = verbose
        self.json_output = json_output
        self.log_dir = log_dir
        # JSON mode keeps stdout clean for the payload
        self.console = Console(quiet=json_output)
        self.logger: Optional[DeployLogger] = None

    def load_config(
        self, config_file: Optional[str], overrides: Mapping[str, Any]
    ) -> DeploymentConfig:
        """
        Build the deployment configuration from file, environment and flags.

        Raises:
            ConfigurationError: If the result is incomplete or invalid
        """
        file_values = load_config_file(Path(config_file)) if config_file else {}
        return build_config(file_values, overrides)

    def init_logger(self, command_name: str) -> DeployLogger:
        """
        Initialize command logger.

        Falls back to a per-user log directory when the configured one is
        not writable (e.g. `plan` run without root).
        """
        try:
            self.logger = DeployLogger(
                command_name, self.log_dir, verbose=self.verbose, console=self.console
            )
        except PermissionError:
            self.logger = DeployLogger(
                command_name, FALLBACK_LOG_DIR, verbose=self.verbose, console=self.console
            )
        return self.logger

    def output_json(self, data: Dict[str, Any], exit_code: int = 0) -> None:
        """
        Output data as JSON and exit.

        Args:
            data: Data to output as JSON
            exit_code: Exit code (0 for success, non-zero for error)
        """
        print(json.dumps(data, indent=2))
        if exit_code != 0:
            raise SystemExit(exit_code)

    def show_header(
        self,
        title: str,
        subtitle: Optional[str] = None,
        details: Optional[dict] = None,
    ) -> None:
        """Show command header (skip in JSON or verbose mode)."""
        if not self.verbose and not self.json_output:
            show_header(
                title=title,
                subtitle=subtitle,
                details=details,
                console=self.console,
            )

    def print_success(self, message: str) -> None:
        self.console.print(f"[green]✓ {escape(message)}[/green]")

    def print_warning(self, message: str) -> None:
        self.console.print(f"[yellow]⚠ {escape(message)}[/yellow]")

    def print_dim(self, message: str) -> None:
        self.console.print(f"[dim]{escape(message)}[/dim]")

    def _logs_hint(self) -> None:
        if self.logger:
            self.console.print(f"[dim]Logs saved to:[/dim] {self.logger.log_path}\n")

    @abstractmethod
    def execute(self, **kwargs) -> None:
        """
        Execute command logic.

        Must be implemented by subclasses.
        """
        pass

    def run(self, **kwargs) -> None:
        """
        Run command with error handling.

        Args:
            **kwargs: Command arguments
        """
        try:
            self.execute(**kwargs)
        except KeyboardInterrupt:
            self.console.print("\n[yellow]⚠️  Operation cancelled by user[/yellow]")
            self._logs_hint()
            raise SystemExit(130)
        except SystemExit:
            raise
        except OdooDeployError as e:
            if self.json_output:
                self.output_json(
                    {"error": e.message, "context": e.context}, exit_code=1
                )
            self.console.print(f"\n[bold red]✗ Error:[/bold red] {escape(e.message)}")
            if e.context:
                self.console.print(f"  [dim]{escape(e.context)}[/dim]")
            self.console.print()
            self._logs_hint()
            raise SystemExit(1)
        except PermissionError as e:
            self.console.print(f"\n[bold red]✗ Permission denied:[/bold red] {escape(str(e))}\n")
            self.console.print("[dim]Try running as root (sudo -i)[/dim]\n")
            if self.logger:
                self.logger.log_error(f"Permission error: {e}")
            self._logs_hint()
            raise SystemExit(1)
        finally:
            if self.logger:
                self.logger.close()

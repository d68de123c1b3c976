"""
odoodeploy Exception Hierarchy

Clean exception hierarchy for consistent error handling across the provisioner.
"""

from typing import Optional


class OdooDeployError(Exception):
    """Base exception for all odoodeploy errors."""

    def __init__(self, message: str, context: Optional[str] = None):
        self.message = message
        self.context = context
        super().__init__(self.format_message())

    def format_message(self) -> str:
        """Format error message with optional context."""
        if self.context:
            return f"{self.message}\nContext: {self.context}"
        return self.message


class ConfigurationError(OdooDeployError):
    """Raised when deployment configuration is invalid or missing."""

    pass


class PrivilegeError(OdooDeployError):
    """Raised when the provisioner lacks administrative rights on the host."""

    def __init__(self, message: str = "Root privileges are required"):
        super().__init__(message, context="Run as root (sudo -i)")


class CommandError(OdooDeployError):
    """Raised when an external command cannot be started at all."""

    pass


class DependencyInstallError(OdooDeployError):
    """Raised when the package manager fails to install packages."""

    pass


class StackStartError(OdooDeployError):
    """Raised when docker compose fails to bring the stack up."""

    pass


class ConfigRenderError(OdooDeployError):
    """Raised when a configuration file cannot be rendered."""

    pass


class ProxyConfigError(OdooDeployError):
    """Raised when nginx rejects the rendered configuration."""

    pass


class TolerantStepError(OdooDeployError):
    """Base for failures that degrade the deployment without aborting it."""

    def __init__(
        self,
        message: str,
        context: Optional[str] = None,
        remediation: Optional[str] = None,
    ):
        self.remediation = remediation
        super().__init__(message, context)


class CertificateIssuanceError(TolerantStepError):
    """Raised when certbot fails to issue or install a certificate."""

    pass


class FirewallConfigError(TolerantStepError):
    """Raised when a firewall rule cannot be applied."""

    pass


class SequenceOrderError(ValueError):
    """Raised when a step list violates its declared ordering."""

    pass


class ProvisioningError(OdooDeployError):
    """Raised by the sequencer when a fatal step fails."""

    def __init__(self, step: str, cause: BaseException, report=None):
        self.step = step
        self.cause = cause
        self.report = report
        message = f"Step '{step}' failed: {cause}"
        super().__init__(message, context=type(cause).__name__)

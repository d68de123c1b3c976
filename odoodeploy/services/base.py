"""
Adapter Contracts

Abstract interfaces for every external system the sequencer drives.
Concrete classes wrap host tools; tests substitute in-memory fakes.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Iterable, Optional, Set


class PackageManager(ABC):
    """OS package installation. Must tolerate repeated invocation."""

    @abstractmethod
    def is_installed(self, name: str) -> bool:
        pass

    @abstractmethod
    def install(self, names: Iterable[str]) -> None:
        """Install packages; raises DependencyInstallError on failure."""
        pass

    def all_installed(self, names: Iterable[str]) -> bool:
        return all(self.is_installed(name) for name in names)

    @abstractmethod
    def repository_configured(self, source_list: Path) -> bool:
        pass

    @abstractmethod
    def add_repository(
        self, key_url: str, keyring: Path, source_list: Path, repo_url: str
    ) -> None:
        """Register a signed apt source; raises DependencyInstallError on failure."""
        pass


class ContainerOrchestrator(ABC):
    """Container runtime: networks and declarative stacks."""

    @abstractmethod
    def network_exists(self, name: str) -> bool:
        pass

    @abstractmethod
    def create_network(self, name: str) -> None:
        pass

    @abstractmethod
    def apply_stack(self, descriptor: Path) -> None:
        """Create or update services to match the descriptor; raises StackStartError."""
        pass

    @abstractmethod
    @abstractmethod
    def restart_service(self, descriptor: Path, service: str) -> None:
        """Restart one running service in place; raises StackStartError."""
        pass

    def running_services(self, descriptor: Path) -> Set[str]:
        pass

    @abstractmethod
    def stack_status(self, descriptor: Path) -> str:
        pass

    @abstractmethod
    def service_logs(self, descriptor: Path, service: str, tail: int) -> str:
        pass


class ReverseProxy(ABC):
    """Reverse proxy site management."""

    @abstractmethod
    def site_matches(self, name: str, content: str) -> bool:
        pass

    @abstractmethod
    def write_site(self, name: str, content: str) -> bool:
        """Write the site definition; returns True if the file changed."""
        pass

    @abstractmethod
    def site_enabled(self, name: str) -> bool:
        pass

    @abstractmethod
    def enable_site(self, name: str) -> None:
        pass

    @abstractmethod
    def validate_config(self) -> None:
        """Raise ProxyConfigError if the proxy rejects its configuration."""
        pass

    @abstractmethod
    def reload(self) -> None:
        pass

    @abstractmethod
    def is_active(self) -> bool:
        pass


class CertificateManager(ABC):
    """TLS certificate issuance. Re-issuing a valid certificate is a no-op."""

    @abstractmethod
    def has_certificate(self, domain: str) -> bool:
        pass

    @abstractmethod
    def certificate_dir(self, domain: str) -> str:
        """Directory holding fullchain.pem and privkey.pem for the domain."""
        pass

    @abstractmethod
    def issue(self, domain: str, email: str) -> None:
        """Raise CertificateIssuanceError on failure."""
        pass

    @abstractmethod
    def manual_command(self, domain: str, email: str) -> str:
        """Exact command an operator runs to retry issuance by hand."""
        pass


class Firewall(ABC):
    """Host firewall with idempotent allow rules."""

    @abstractmethod
    def is_allowed(self, rule: str) -> bool:
        pass

    @abstractmethod
    def allow(self, rule: str) -> None:
        """Raise FirewallConfigError on failure."""
        pass

    @abstractmethod
    def is_enabled(self) -> bool:
        pass

    @abstractmethod
    def enable(self) -> None:
        pass


class HostFilesystem(ABC):
    """Directory creation and deterministic file writes."""

    @abstractmethod
    def dirs_exist(self, paths: Iterable[Path]) -> bool:
        pass

    @abstractmethod
    def ensure_dirs(self, paths: Iterable[Path]) -> None:
        pass

    @abstractmethod
    def matches(
        self,
        path: Path,
        content: str,
        mode: Optional[int] = None,
        group: Optional[int] = None,
    ) -> bool:
        """True when the file exists with exactly this content (and mode/group, if given)."""
        pass

    @abstractmethod
    def write_if_changed(
        self, path: Path, content: str, mode: int, group: Optional[int] = None
    ) -> bool:
        """
        Write content unless identical; returns True if the file changed.

        Mode (and group, when given) are enforced either way.
        """
        pass

    @abstractmethod
    def exists(self, path: Path) -> bool:
        pass

    @abstractmethod
    def remove(self, path: Path) -> None:
        """Delete a file; a missing file is not an error."""
        pass

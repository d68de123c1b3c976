"""Package manager service backed by apt/dpkg."""

import os
from pathlib import Path
from typing import Iterable

import requests
from dotenv import dotenv_values

from odoodeploy.constants import OS_RELEASE_FILE
from odoodeploy.exceptions import DependencyInstallError
from odoodeploy.services.base import PackageManager
from odoodeploy.services.command_runner import CommandRunner, failure_context

APT_ENV = {"DEBIAN_FRONTEND": "noninteractive"}


class AptService(PackageManager):
    """Installs Debian/Ubuntu packages and third-party apt sources."""

    def __init__(self, runner: CommandRunner, os_release: str = OS_RELEASE_FILE):
        self.runner = runner
        self.os_release = Path(os_release)

    def is_installed(self, name: str) -> bool:
        result = self.runner.run(["dpkg-query", "-W", "-f=${Status}", name])
        return result.is_success and result.stdout.strip().endswith(" installed")

    def install(self, names: Iterable[str]) -> None:
        """
        Install packages with apt-get.

        apt-get install is itself idempotent; already installed packages are
        left untouched.

        Args:
            names: Package names

        Raises:
            DependencyInstallError: If update or install fails
        """
        names = list(names)

        result = self.runner.run(
            ["apt-get", "update", "-y"], "Updating package index", env=APT_ENV
        )
        if result.is_failure:
            raise DependencyInstallError(
                "apt-get update failed", context=failure_context(result)
            )

        result = self.runner.run(
            ["apt-get", "install", "-y", *names],
            f"Installing {', '.join(names)}",
            env=APT_ENV,
        )
        if result.is_failure:
            raise DependencyInstallError(
                f"Failed to install packages: {', '.join(names)}",
                context=failure_context(result),
            )

    def repository_configured(self, source_list: Path) -> bool:
        return Path(source_list).is_file()

    def distribution_codename(self) -> str:
        """Read VERSION_CODENAME from /etc/os-release."""
        values = dotenv_values(self.os_release)
        codename = values.get("VERSION_CODENAME") or values.get("UBUNTU_CODENAME")
        if not codename:
            raise DependencyInstallError(
                "Cannot determine distribution codename",
                context=f"VERSION_CODENAME missing from {self.os_release}",
            )
        return codename

    def architecture(self) -> str:
        result = self.runner.run(["dpkg", "--print-architecture"])
        if result.is_failure or not result.stdout.strip():
            raise DependencyInstallError(
                "Cannot determine dpkg architecture", context=failure_context(result)
            )
        return result.stdout.strip()

    def add_repository(
        self, key_url: str, keyring: Path, source_list: Path, repo_url: str
    ) -> None:
        """
        Register a signed apt source.

        Args:
            key_url: URL of the ASCII-armored signing key
            keyring: Destination of the dearmored keyring
            source_list: apt sources.list.d file to write
            repo_url: Repository base URL

        Raises:
            DependencyInstallError: If the key cannot be fetched or installed
        """
        keyring = Path(keyring)
        source_list = Path(source_list)

        try:
            response = requests.get(key_url, timeout=30)
            response.raise_for_status()
        except requests.RequestException as e:
            raise DependencyInstallError(
                "Failed to download repository signing key", context=f"{key_url}: {e}"
            )

        keyring.parent.mkdir(mode=0o755, parents=True, exist_ok=True)
        result = self.runner.run(
            ["gpg", "--dearmor", "--yes", "-o", str(keyring)],
            "Importing repository key",
            input_text=response.text,
        )
        if result.is_failure:
            raise DependencyInstallError(
                "Failed to import repository signing key",
                context=failure_context(result),
            )
        os.chmod(keyring, 0o644)

        line = (
            f"deb [arch={self.architecture()} signed-by={keyring}] "
            f"{repo_url} {self.distribution_codename()} stable\n"
        )
        source_list.parent.mkdir(parents=True, exist_ok=True)
        source_list.write_text(line)
        self.runner.logger.log(f"Added apt source {source_list}: {line.strip()}")

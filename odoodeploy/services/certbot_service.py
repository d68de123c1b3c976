"""Certificate service backed by certbot's nginx authenticator."""

import shlex
from pathlib import Path
from typing import List

from odoodeploy.constants import LETSENCRYPT_LIVE_DIR
from odoodeploy.exceptions import CertificateIssuanceError
from odoodeploy.services.base import CertificateManager
from odoodeploy.services.command_runner import CommandRunner, failure_context


class CertbotService(CertificateManager):
    """
    Obtains Let's Encrypt certificates.

    certbot only obtains the certificate (`certonly`); the HTTPS site itself
    is rendered by odoodeploy so re-runs never fight over the nginx file.
    """

    def __init__(self, runner: CommandRunner, live_dir: str = LETSENCRYPT_LIVE_DIR):
        self.runner = runner
        self.live_dir = Path(live_dir)

    def certificate_dir(self, domain: str) -> str:
        return str(self.live_dir / domain)

    def has_certificate(self, domain: str) -> bool:
        live = self.live_dir / domain
        return (live / "fullchain.pem").is_file() and (live / "privkey.pem").is_file()

    @staticmethod
    def _command(domain: str, email: str, interactive: bool) -> List[str]:
        args = ["certbot", "certonly", "--nginx", "-d", domain, "-m", email, "--agree-tos"]
        if not interactive:
            args.append("-n")
        # renewals run from certbot's timer; nginx must pick up the new files
        args.extend(["--deploy-hook", "systemctl reload nginx"])
        return args

    def manual_command(self, domain: str, email: str) -> str:
        return shlex.join(self._command(domain, email, interactive=True))

    def issue(self, domain: str, email: str) -> None:
        """
        Request a certificate for the domain.

        Raises:
            CertificateIssuanceError: With the manual retry command attached
        """
        result = self.runner.run(
            self._command(domain, email, interactive=False),
            f"Issuing TLS certificate for {domain}",
        )
        if result.is_failure:
            raise CertificateIssuanceError(
                f"certbot failed for {domain}",
                context=failure_context(result),
                remediation=(
                    f"Make sure the DNS A record for {domain} points to this server, "
                    f"then run: {self.manual_command(domain, email)} "
                    f"&& odoodeploy provision"
                ),
            )

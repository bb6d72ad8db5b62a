"""
Subdomain provisioning through the hosting control panel CLI.
"""

import logging
from typing import Optional

from rebrand_tool.core.exceptions import ConfigurationError, ConnectivityError
from rebrand_tool.models.config import AppConfig, PhpMode
from rebrand_tool.models.results import ProvisioningResult
from rebrand_tool.utils.helpers import is_valid_label, join_remote, quote


class ProvisioningService:
    """
    Creates subdomains with the control panel's command line.

    Domain creation is mandatory; PHP configuration afterwards is best
    effort and only produces a warning on the result when it fails.
    """

    def __init__(self, executor, config: AppConfig):
        self.executor = executor
        self.config = config
        self.logger = logging.getLogger(f"rebrand_tool.provisioning.{self.__class__.__name__}")

    @property
    def panel(self) -> str:
        return self.config.provisioning.control_panel_command

    def web_root_for(self, fqdn: str) -> str:
        return join_remote(self.config.paths.domains_root, fqdn, self.config.paths.web_root_name)

    def create_domain_command(self, fqdn: str, parent: str, description: str) -> str:
        return (
            f"{self.panel} create-domain --domain {quote(fqdn)} --parent {quote(parent)} "
            f"--desc {quote(description)} --web --dir"
        )

    def php_commands(self, fqdn: str, php_mode: str, php_version: str):
        """Primary and fallback PHP configuration commands, in order."""
        return [
            (
                "Setting PHP version",
                f"{self.panel} modify-web --domain {quote(fqdn)} "
                f"--php-mode {quote(php_mode)} --php-version {quote(php_version)}",
            ),
            (
                "Setting PHP version (alternative method)",
                f"{self.panel} modify-domain --domain {quote(fqdn)} "
                f"--set-php-version {quote(php_version)}",
            ),
        ]

    async def create_subdomain(
        self,
        subdomain: str,
        description: Optional[str] = None,
        php_mode: Optional[str] = None,
        php_version: Optional[str] = None
    ) -> ProvisioningResult:
        """
        Create ``subdomain`` under the configured parent domain.

        Args:
            subdomain: Single DNS label, e.g. ``demo``
            description: Text stored with the domain
            php_mode: PHP execution mode (defaults to configuration)
            php_version: PHP version (defaults to configuration)

        Returns:
            ProvisioningResult; ``success`` is False only when the domain
            itself could not be created

        Raises:
            ConfigurationError: If no parent domain is configured or the
                subdomain is not a valid label
        """
        parent = self.config.parent_domain
        if not parent:
            raise ConfigurationError(
                "Parent domain is not configured",
                details={'setting': 'provisioning.parent_domain'}
            )
        if not is_valid_label(subdomain):
            raise ConfigurationError(f"Invalid subdomain: {subdomain!r}")

        settings = self.config.provisioning
        fqdn = f"{subdomain}.{parent}"
        try:
            mode = PhpMode(php_mode or settings.php_mode).value
        except ValueError:
            raise ConfigurationError(f"Unsupported PHP mode: {php_mode!r}")
        version = php_version or settings.php_version
        description = description or settings.default_description

        self.logger.info(f"Creating subdomain: {fqdn}")
        try:
            created = await self.executor.run(
                self.create_domain_command(fqdn, parent, description),
                label="Creating subdomain"
            )
        except ConnectivityError as e:
            return ProvisioningResult(success=False, domain_name=fqdn, error=e.message)

        if not created.ok:
            error = created.stderr.strip() or f"Domain creation failed ({created.status.value})"
            if created.stdout.strip():
                error += f"\nCommand output: {created.stdout.strip()}"
            self.logger.error(f"Error creating subdomain {fqdn}: {error}")
            return ProvisioningResult(
                success=False,
                domain_name=fqdn,
                error=error,
                output=created.stdout.strip() or None
            )

        warning = await self._configure_php(fqdn, mode, version)

        self.logger.info(f"Successfully created subdomain {fqdn}")
        return ProvisioningResult(
            success=True,
            domain_name=fqdn,
            web_root_path=self.web_root_for(fqdn),
            php_config_warning=warning,
            output=created.stdout.strip() or None
        )

    async def _configure_php(self, fqdn: str, mode: str, version: str) -> Optional[str]:
        failures = []
        for label, command in self.php_commands(fqdn, mode, version):
            try:
                result = await self.executor.run(command, label=label)
            except ConnectivityError as e:
                failures.append(e.message)
                continue
            if result.ok:
                self.logger.info(f"PHP {version} ({mode}) configured for {fqdn}")
                return None
            reason = result.stderr.strip() or result.stdout.strip() or result.status.value
            self.logger.warning(f"{label} failed: {reason}")
            failures.append(reason)

        warning = f"Failed to set PHP version {version} for {fqdn}, but domain was created"
        if failures:
            warning += f": {failures[-1]}"
        self.logger.warning(warning)
        return warning

"""
DNS record creation for new subdomains.
"""

import asyncio
import logging
from typing import Iterable, Optional

from rebrand_tool.core.exceptions import ConfigurationError, RebrandToolError
from rebrand_tool.dns.backends import DnsBackend
from rebrand_tool.dns.templates import DEFAULT_TEMPLATES, DnsRecordTemplate, expand_templates
from rebrand_tool.models.config import DnsConfig
from rebrand_tool.models.results import DnsCreationResult, DnsRecordResult, ItemStatus
from rebrand_tool.utils.helpers import is_valid_label

FALLBACK_ROOT_DOMAIN = "streamnet.live"


def root_domain_or_default(config: DnsConfig) -> str:
    """The configured root domain, or the built-in fallback."""
    return config.root_domain or FALLBACK_ROOT_DOMAIN


class DnsService:
    """
    Creates the standard record set for a subdomain.

    Records are created one at a time; a failed record is recorded and the
    next one is attempted. Cancellation is checked between records.
    """

    def __init__(
        self,
        config: DnsConfig,
        backend: DnsBackend,
        cancel_event: Optional[asyncio.Event] = None,
        templates: Iterable[DnsRecordTemplate] = DEFAULT_TEMPLATES
    ):
        self.config = config
        self.backend = backend
        self.templates = tuple(templates)
        self._cancel_event = cancel_event or asyncio.Event()
        self.logger = logging.getLogger(f"rebrand_tool.dns.{self.__class__.__name__}")

    def cancel(self) -> None:
        self._cancel_event.set()

    def is_cancelled(self) -> bool:
        return self._cancel_event.is_set()

    def check_preconditions(self, subdomain: str) -> None:
        """
        Validate configuration and input before any request is made.

        Raises:
            ConfigurationError: If the root domain, authentication or zone is
                missing, or the subdomain is not a valid DNS label
        """
        if not self.config.root_domain:
            raise ConfigurationError(
                "DNS root domain is not configured",
                details={'setting': 'dns.root_domain'}
            )
        if not self.config.has_auth:
            raise ConfigurationError(
                "DNS authentication is not configured: set an API token, or an email and global API key",
                details={'setting': 'dns.api_token'}
            )
        if not self.config.zone_id:
            raise ConfigurationError(
                "DNS zone ID is not configured",
                details={'setting': 'dns.zone_id'}
            )
        if not subdomain or not is_valid_label(subdomain):
            raise ConfigurationError(f"Invalid subdomain: {subdomain!r}")

    async def create_records(self, subdomain: str) -> DnsCreationResult:
        """
        Create every templated record for ``subdomain``.

        Returns:
            DnsCreationResult listing each record's outcome

        Raises:
            ConfigurationError: If a precondition fails (no request is sent)
        """
        self.check_preconditions(subdomain)

        records = expand_templates(subdomain, self.config, self.templates)
        result = DnsCreationResult(subdomain=subdomain, root_domain=self.config.root_domain)
        self.logger.info(
            f"Creating {len(records)} DNS records for {subdomain}.{self.config.root_domain} "
            f"via {self.backend.name}"
        )

        for record in records:
            if self.is_cancelled():
                self.logger.warning("DNS record creation cancelled")
                result.cancelled = True
                result.records.append(DnsRecordResult(
                    name=record.name, type=record.type,
                    status=ItemStatus.SKIPPED, error="Cancelled"
                ))
                continue

            if not record.content:
                result.records.append(DnsRecordResult(
                    name=record.name, type=record.type, status=ItemStatus.ERROR,
                    error=f"No address configured for {record.type} record"
                ))
                continue

            try:
                created = await self.backend.create_record(self.config.zone_id, record)
            except RebrandToolError as e:
                self.logger.error(f"Failed to create {record.type} record {record.name}: {e.message}")
                result.records.append(DnsRecordResult(
                    name=record.name, type=record.type, status=ItemStatus.ERROR,
                    content=record.content, error=e.message
                ))
                continue

            self.logger.debug(f"Created {record.type} record {record.name}")
            result.records.append(DnsRecordResult(
                name=created.get('name') or record.name,
                type=created.get('type') or record.type,
                status=ItemStatus.CREATED,
                id=created.get('id'),
                content=record.content,
            ))

        if result.success:
            self.logger.info(result.message)
        else:
            result.error = result.error or "Failed to create any DNS records"
            self.logger.error(result.error)
        return result

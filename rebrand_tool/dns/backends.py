"""
DNS provider backends.

``CloudflareSdkBackend`` drives the official ``cloudflare`` client;
``HttpxRestBackend`` posts to the REST endpoint directly. ``create_backend``
picks the SDK when it is installed and exposes the expected
``dns.records.create`` method, and falls back to plain HTTPS otherwise.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional

import httpx

try:
    import cloudflare
    from cloudflare import AsyncCloudflare
    CLOUDFLARE_AVAILABLE = True
except ImportError:
    CLOUDFLARE_AVAILABLE = False

from rebrand_tool.core.exceptions import ConfigurationError, DnsError
from rebrand_tool.models.config import DnsConfig
from rebrand_tool.models.results import DnsRecord

logger = logging.getLogger("rebrand_tool.dns.backends")


class DnsBackend(ABC):
    """Creates one DNS record in a zone."""

    name = "base"

    def __init__(self, config: DnsConfig):
        self.config = config
        self.logger = logging.getLogger(f"rebrand_tool.dns.{self.__class__.__name__}")

    @abstractmethod
    async def create_record(self, zone_id: str, record: DnsRecord) -> Dict[str, Any]:
        """
        Create a record.

        Returns:
            ``{'id', 'name', 'type'}`` of the created record

        Raises:
            DnsError: If the provider rejects the request
        """
        pass

    async def aclose(self) -> None:
        pass


class CloudflareSdkBackend(DnsBackend):
    """Backend using the official Cloudflare Python SDK."""

    name = "cloudflare-sdk"

    def __init__(self, config: DnsConfig, client: Any = None):
        super().__init__(config)
        if client is None:
            if not CLOUDFLARE_AVAILABLE:
                raise ImportError(
                    "cloudflare is required for the SDK backend. "
                    "Install with: pip install cloudflare"
                )
            client = _build_sdk_client(config)
        self.client = client

    @staticmethod
    def supports(client: Any) -> bool:
        """Capability probe for the ``dns.records.create`` method path."""
        dns = getattr(client, "dns", None)
        records = getattr(dns, "records", None)
        return callable(getattr(records, "create", None))

    async def create_record(self, zone_id: str, record: DnsRecord) -> Dict[str, Any]:
        try:
            created = await self.client.dns.records.create(zone_id=zone_id, **record.to_payload())
        except Exception as e:
            if CLOUDFLARE_AVAILABLE and isinstance(e, cloudflare.APIError):
                raise DnsError(
                    f"Cloudflare rejected {record.type} {record.name}: {e}",
                    details={'record': record.name}
                ) from e
            raise
        return {
            'id': getattr(created, "id", None),
            'name': getattr(created, "name", record.name),
            'type': getattr(created, "type", record.type),
        }

    async def aclose(self) -> None:
        close = getattr(self.client, "close", None)
        if close is not None:
            await close()


class HttpxRestBackend(DnsBackend):
    """Backend posting to ``/zones/{zone_id}/dns_records`` with httpx."""

    name = "rest"

    def __init__(self, config: DnsConfig, client: Optional[httpx.AsyncClient] = None):
        super().__init__(config)
        self._client = client
        self._owns_client = client is None

    def auth_headers(self) -> Dict[str, str]:
        if self.config.has_token_auth:
            return {'Authorization': f"Bearer {self.config.api_token}"}
        if self.config.has_key_auth:
            return {'X-Auth-Email': self.config.email, 'X-Auth-Key': self.config.api_key}
        raise ConfigurationError("No DNS provider authentication configured")

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.config.api_base_url,
                timeout=self.config.request_timeout
            )
        return self._client

    async def create_record(self, zone_id: str, record: DnsRecord) -> Dict[str, Any]:
        headers = {'Content-Type': 'application/json', **self.auth_headers()}
        try:
            response = await self.client.post(
                f"/zones/{zone_id}/dns_records",
                json=record.to_payload(),
                headers=headers
            )
        except httpx.HTTPError as e:
            raise DnsError(f"Request for {record.name} failed: {e}", details={'record': record.name}) from e

        try:
            body = response.json()
        except ValueError:
            body = {}

        if response.status_code >= 400 or not body.get('success'):
            errors = body.get('errors') or []
            message = "; ".join(str(err.get('message', err)) for err in errors if err) or response.reason_phrase
            raise DnsError(
                f"DNS provider error for {record.type} {record.name}: {message}",
                details={'record': record.name, 'status_code': response.status_code}
            )

        result = body.get('result') or {}
        return {
            'id': result.get('id'),
            'name': result.get('name', record.name),
            'type': result.get('type', record.type),
        }

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None


def _build_sdk_client(config: DnsConfig):
    if config.has_token_auth:
        return AsyncCloudflare(api_token=config.api_token, timeout=config.request_timeout)
    return AsyncCloudflare(
        api_email=config.email,
        api_key=config.api_key,
        timeout=config.request_timeout
    )


def create_backend(
    config: DnsConfig,
    sdk_client_factory: Optional[Callable[[DnsConfig], Any]] = None
) -> DnsBackend:
    """
    Select a backend by capability probe.

    The SDK backend is used when the client can be built and exposes
    ``dns.records.create``; otherwise the REST backend is returned.
    """
    if not config.has_auth:
        return HttpxRestBackend(config)

    factory = sdk_client_factory or (_build_sdk_client if CLOUDFLARE_AVAILABLE else None)
    if factory is not None:
        try:
            client = factory(config)
        except Exception as e:
            logger.warning(f"Could not build Cloudflare SDK client, using REST: {e}")
        else:
            if CloudflareSdkBackend.supports(client):
                logger.debug("Using Cloudflare SDK backend")
                return CloudflareSdkBackend(config, client=client)
            logger.warning("Cloudflare SDK client has an unexpected shape, using REST")

    logger.debug("Using REST backend")
    return HttpxRestBackend(config)
